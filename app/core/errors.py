"""Service-level exceptions. The API layer maps them to HTTP responses."""

from typing import Any


class ServiceError(Exception):
    """Base for errors raised by services; message is safe to return to the client."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidInputError(ServiceError):
    """Malformed or missing input. details maps field name to message when known."""

    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationFailedError(ServiceError):
    """Bad credentials or unknown user. Message is deliberately generic."""

    status_code = 401
    code = "AUTHENTICATION_FAILED"


class PermissionDeniedError(ServiceError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    """Unique key already taken."""

    status_code = 409
    code = "CONFLICT"


class DependencyUnavailableError(ServiceError):
    """Credential store still unreachable after the retry policy gave up."""

    status_code = 500
    code = "DEPENDENCY_UNAVAILABLE"


class InvariantViolationError(ServiceError):
    """State that defaults should make impossible (e.g. authenticated user without role)."""

    status_code = 500
    code = "INTERNAL_ERROR"
