"""Typed service-layer errors.

Services raise these; ``taskdesk_service.rest.errors`` is the only place that
turns them into HTTP responses.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 400
    error_code: str = "BAD_REQUEST"
    title: str = "Bad Request"

    def __init__(self, message: str, *, errors: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationFailedError(ServiceError):
    status_code = 400
    error_code = "VALIDATION_FAILED"
    title = "Validation Error"


class PasswordMismatchError(ValidationFailedError):
    def __init__(self) -> None:
        super().__init__(
            "Validation failed",
            errors={"confirmPassword": "Passwords do not match"},
        )


class DuplicateResourceError(ServiceError):
    status_code = 400
    error_code = "DUPLICATE_RESOURCE"
    title = "Duplicate Resource"


class DuplicateEmailError(DuplicateResourceError):
    def __init__(self) -> None:
        super().__init__("Email is already registered", errors={"email": "Email is already taken"})


class DuplicateUsernameError(DuplicateResourceError):
    def __init__(self) -> None:
        super().__init__(
            "Username is already registered", errors={"username": "Username is already taken"}
        )


class InvalidCredentialsError(ServiceError):
    status_code = 401
    error_code = "INVALID_CREDENTIALS"
    title = "Authentication Failed"

    def __init__(self) -> None:
        # Same detail for every cause so callers can't tell which factor failed.
        super().__init__("Invalid credentials")


class InvalidRefreshTokenError(ServiceError):
    status_code = 401
    error_code = "INVALID_REFRESH_TOKEN"
    title = "Invalid Refresh Token"


class UnauthenticatedError(ServiceError):
    status_code = 401
    error_code = "UNAUTHENTICATED"
    title = "Unauthorized"

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class PrincipalNotFoundError(UnauthenticatedError):
    def __init__(self) -> None:
        super().__init__("Authenticated account no longer exists")


class AccessDeniedError(ServiceError):
    status_code = 403
    error_code = "ACCESS_DENIED"
    title = "Access Denied"

    def __init__(self, message: str = "You do not have permission to access this resource") -> None:
        super().__init__(message)


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "NOT_FOUND"
    title = "Not Found"
