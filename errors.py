from typing import List, Optional


class ServiceError(Exception):
    """Base for errors the HTTP layer turns into an error envelope."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(ServiceError):
    """Caller-supplied data violates an invariant."""

    status_code = 400

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationError":
        return cls(", ".join(errors), errors)


class NotFoundError(ServiceError):
    status_code = 404


class PermissionDenied(ServiceError):
    status_code = 403


class AuthenticationRequired(PermissionDenied):
    status_code = 401


class ConflictError(ServiceError):
    status_code = 409
