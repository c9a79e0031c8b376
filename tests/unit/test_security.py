"""
Unit tests for password hashing and JWT handling.

Tests token creation, verification, and expiration.
"""

from uuid import uuid4

import jwt

from chatline.core.security import (
    create_jwt_token,
    create_oauth_state,
    hash_password,
    verify_jwt_token,
    verify_oauth_state,
    verify_password,
)


def test_hash_password_is_salted():
    first = hash_password("password123")
    second = hash_password("password123")

    assert first != "password123"
    assert first != second
    assert verify_password("password123", first)
    assert verify_password("password123", second)


def test_verify_wrong_password():
    assert not verify_password("wrong", hash_password("password123"))


def test_verify_password_without_hash():
    """OAuth-only accounts have no hash and never match."""
    assert verify_password("anything", None) is False
    assert verify_password("anything", "") is False


def test_verify_password_with_garbage_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_access_token_round_trip():
    user_id = uuid4()
    token = create_jwt_token(user_id, token_type="access")

    payload = verify_jwt_token(token, expected_type="access")
    assert payload is not None
    assert payload.sub == str(user_id)
    assert payload.type == "access"
    assert payload.exp > payload.iat


def test_refresh_token_is_not_an_access_token():
    token = create_jwt_token(uuid4(), token_type="refresh")

    assert verify_jwt_token(token, expected_type="access") is None
    assert verify_jwt_token(token, expected_type="refresh") is not None


def test_refresh_token_lives_longer():
    access = verify_jwt_token(create_jwt_token(uuid4(), "access"), "access")
    refresh = verify_jwt_token(create_jwt_token(uuid4(), "refresh"), "refresh")
    assert refresh.exp - refresh.iat > access.exp - access.iat


def test_expired_token():
    token = create_jwt_token(uuid4(), token_type="access", expires_minutes=-1)
    assert verify_jwt_token(token) is None


def test_token_signed_with_other_secret():
    token = create_jwt_token(uuid4())
    payload = jwt.decode(token, options={"verify_signature": False})
    forged = jwt.encode(payload, "some-other-secret", algorithm="HS256")

    assert verify_jwt_token(token) is not None
    assert verify_jwt_token(forged) is None


def test_garbage_token():
    assert verify_jwt_token("not.a.token") is None


def test_oauth_state_round_trip():
    user_id = uuid4()
    state = create_oauth_state("google", link_user_id=user_id)

    payload = verify_oauth_state(state, "google")
    assert payload is not None
    assert payload.link_user_id == str(user_id)


def test_oauth_state_without_link():
    payload = verify_oauth_state(create_oauth_state("facebook"), "facebook")
    assert payload is not None
    assert payload.link_user_id is None


def test_oauth_state_is_bound_to_provider():
    state = create_oauth_state("google")
    assert verify_oauth_state(state, "facebook") is None


def test_access_token_is_not_an_oauth_state():
    assert verify_oauth_state(create_jwt_token(uuid4()), "google") is None
