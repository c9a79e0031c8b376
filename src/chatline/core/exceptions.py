"""Custom exceptions for the application."""


class ChatlineException(Exception):
    """Base exception for all Chatline errors."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


# Authentication Exceptions
class InvalidCredentialsError(ChatlineException):
    """Invalid email or password."""
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, status_code=401)


class EmailAlreadyExistsError(ChatlineException):
    """Email already registered."""
    def __init__(self, message: str = "Email already exists"):
        super().__init__(message, status_code=409)


class InvalidTokenError(ChatlineException):
    """Invalid or expired token."""
    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, status_code=401)


# Resource Exceptions
class ResourceNotFoundError(ChatlineException):
    """Resource not found."""
    def __init__(self, resource: str, id: str):
        super().__init__(f"{resource} with id {id} not found", status_code=404)


class ResourceAccessDeniedError(ChatlineException):
    """Access denied to resource."""
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, status_code=403)


class ConflictError(ChatlineException):
    """Request conflicts with existing state."""
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


# Upload Exceptions
class UploadNotFoundError(ChatlineException):
    """No live upload grant for a key."""
    def __init__(self, message: str = "No pending upload found for this key"):
        super().__init__(message, status_code=404)


class ServiceUnavailableError(ChatlineException):
    """A backing service is not configured or not reachable."""
    def __init__(self, message: str):
        super().__init__(message, status_code=503)


# Validation Exceptions
class ValidationError(ChatlineException):
    """Validation error."""
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class InvalidInputError(ChatlineException):
    """Invalid input data."""
    def __init__(self, message: str = "Invalid input data"):
        super().__init__(message, status_code=400)
