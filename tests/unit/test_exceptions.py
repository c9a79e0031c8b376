"""Unit tests for exception hierarchy."""

import pytest

from chatline.core.exceptions import (
    ChatlineException,
    ConflictError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidTokenError,
    ResourceAccessDeniedError,
    ResourceNotFoundError,
    ServiceUnavailableError,
    UploadNotFoundError,
    ValidationError,
)


def test_base_exception():
    exc = ChatlineException("test error")
    assert exc.message == "test error"
    assert exc.status_code == 400
    assert str(exc) == "test error"


def test_resource_not_found_message():
    exc = ResourceNotFoundError("Chat", "abc")
    assert exc.status_code == 404
    assert exc.message == "Chat with id abc not found"


@pytest.mark.parametrize(
    "exc, status_code, message",
    [
        (InvalidCredentialsError(), 401, "Invalid credentials"),
        (InvalidTokenError(), 401, "Invalid token"),
        (EmailAlreadyExistsError(), 409, "Email already exists"),
        (ResourceAccessDeniedError(), 403, "Access denied"),
        (InvalidInputError(), 400, "Invalid input data"),
        (UploadNotFoundError(), 404, "No pending upload found for this key"),
    ],
)
def test_default_messages(exc, status_code, message):
    assert exc.status_code == status_code
    assert exc.message == message


def test_errors_with_required_message():
    assert ConflictError("taken").status_code == 409
    assert ValidationError("bad").status_code == 400
    assert ServiceUnavailableError("down").status_code == 503


def test_all_errors_share_base():
    with pytest.raises(ChatlineException):
        raise UploadNotFoundError()
