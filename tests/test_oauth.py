"""
OAuth sign-in and account linking tests.

The Google endpoints are served by an httpx.MockTransport.
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from chatline.dependencies import get_http_client
from chatline.server import app
from chatline.services.oauth_service import (
    GOOGLE_AUTH_URL,
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
)


@pytest.fixture
def google():
    """Fake Google. Mutate the returned profile to change who signs in."""
    profile = {
        "sub": "google-123",
        "email": "gina@example.com",
        "email_verified": True,
        "name": "Gina",
        "picture": "https://images.test/gina.png",
    }

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.startswith(GOOGLE_TOKEN_URL):
            if b"code=bad" in request.content:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "provider-token"})
        if url.startswith(GOOGLE_USERINFO_URL):
            assert request.headers["Authorization"] == "Bearer provider-token"
            return httpx.Response(200, json=profile)
        return httpx.Response(404)

    async def fake_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
            yield c

    app.dependency_overrides[get_http_client] = fake_client
    yield profile
    app.dependency_overrides.pop(get_http_client, None)


def query_param(url: str, name: str) -> str:
    return parse_qs(urlparse(url).query)[name][0]


async def start_state(client) -> str:
    response = await client.get("/auth/google")
    return query_param(response.headers["location"], "state")


async def sign_in(client, code: str = "ok"):
    state = await start_state(client)
    return await client.get("/auth/google/callback", params={"code": code, "state": state})


class TestOAuthLogin:
    """Sign in with a provider."""

    async def test_start_redirects_to_provider(self, client, google):
        response = await client.get("/auth/google")
        assert response.status_code == 307
        location = response.headers["location"]
        assert location.startswith(GOOGLE_AUTH_URL)
        assert query_param(location, "client_id") == "google-client-id"
        assert query_param(location, "redirect_uri") == "http://api.test/auth/google/callback"

    async def test_unknown_provider(self, client):
        response = await client.get("/auth/myspace")
        assert response.status_code == 404

    async def test_unconfigured_provider(self, client):
        response = await client.get("/auth/facebook")
        assert response.status_code == 503

    async def test_callback_creates_user(self, client, google):
        response = await sign_in(client)
        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("http://frontend.test/auth/callback?token=")
        assert "refresh_token=" in response.headers["set-cookie"]

        token = query_param(location, "token")
        me = (await client.get("/api/me", headers={"Authorization": f"Bearer {token}"})).json()
        assert me["name"] == "Gina"
        assert me["email"] == "gina@example.com"
        assert me["provider"] == "google"
        assert me["email_verified"] is True
        assert me["avatar_url"] == "https://images.test/gina.png"
        assert me["google_linked"] is True
        assert me["has_password"] is False

    async def test_repeat_sign_in_finds_same_user(self, client, google):
        first = query_param((await sign_in(client)).headers["location"], "token")
        second = query_param((await sign_in(client)).headers["location"], "token")

        me_first = (await client.get("/api/me", headers={"Authorization": f"Bearer {first}"})).json()
        me_second = (await client.get("/api/me", headers={"Authorization": f"Bearer {second}"})).json()
        assert me_first["id"] == me_second["id"]

    async def test_callback_links_existing_email(self, client, google, alice):
        google["email"] = alice.email.upper()

        location = (await sign_in(client)).headers["location"]
        token = query_param(location, "token")

        me = (await client.get("/api/me", headers={"Authorization": f"Bearer {token}"})).json()
        assert me["id"] == alice.id
        assert me["google_linked"] is True
        assert me["has_password"] is True

    async def test_callback_with_bad_state(self, client, google):
        response = await client.get(
            "/auth/google/callback", params={"code": "ok", "state": "forged"}
        )
        assert response.status_code == 302
        assert response.headers["location"] == "http://frontend.test/login?error=oauth_failed"

    async def test_callback_with_provider_error(self, client, google):
        state = await start_state(client)
        response = await client.get(
            "/auth/google/callback", params={"error": "access_denied", "state": state}
        )
        assert response.headers["location"] == "http://frontend.test/login?error=oauth_failed"

    async def test_callback_with_rejected_code(self, client, google):
        response = await sign_in(client, code="bad")
        assert response.status_code == 302
        assert response.headers["location"] == "http://frontend.test/login?error=oauth_failed"


class TestOAuthLinking:
    """Attach and detach provider accounts."""

    async def test_link_account(self, client, google, alice):
        response = await client.post("/auth/link/google", headers=alice.headers)
        assert response.status_code == 200
        state = query_param(response.json()["authorization_url"], "state")

        response = await client.get("/auth/google/callback", params={"code": "ok", "state": state})
        assert response.headers["location"] == "http://frontend.test/settings?linked=google"

        me = (await client.get("/api/me", headers=alice.headers)).json()
        assert me["google_linked"] is True
        assert me["provider"] == "local"

    async def test_link_account_already_linked_elsewhere(self, client, google, alice):
        await sign_in(client)

        url = (await client.post("/auth/link/google", headers=alice.headers)).json()["authorization_url"]
        response = await client.get(
            "/auth/google/callback", params={"code": "ok", "state": query_param(url, "state")}
        )
        assert response.headers["location"] == "http://frontend.test/settings?error=already_linked"

        me = (await client.get("/api/me", headers=alice.headers)).json()
        assert me["google_linked"] is False

    async def test_link_requires_auth(self, client, google):
        response = await client.post("/auth/link/google")
        assert response.status_code == 401

    async def test_unlink(self, client, google, alice):
        url = (await client.post("/auth/link/google", headers=alice.headers)).json()["authorization_url"]
        await client.get("/auth/google/callback", params={"code": "ok", "state": query_param(url, "state")})

        response = await client.post("/auth/unlink/google", headers=alice.headers)
        assert response.status_code == 200
        assert response.json()["google_linked"] is False

    async def test_unlink_only_sign_in_method(self, client, google):
        token = query_param((await sign_in(client)).headers["location"], "token")

        response = await client.post(
            "/auth/unlink/google", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot unlink the only sign-in method"

    async def test_unlink_when_not_linked(self, client, alice):
        response = await client.post("/auth/unlink/google", headers=alice.headers)
        assert response.status_code == 400
