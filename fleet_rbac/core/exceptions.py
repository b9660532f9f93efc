"""Exception taxonomy for the RBAC service.

Every error carries the HTTP status it maps to, so the API layer needs a
single handler for the whole family.
"""

from typing import Optional, List, Dict

from fastapi import status


class RBACError(Exception):
    """Base exception for the RBAC service."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(RBACError):
    """Raised when input fails validation, before anything is written."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[Dict[str, str]]] = None,
    ):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])

    def to_dict(self) -> dict:
        return {"detail": self.message, "errors": self.errors}


class ConflictError(RBACError):
    """Raised on a duplicate key/name/email or a still-referenced resource."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(RBACError):
    """Raised when a referenced id does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(RBACError):
    """Raised when the principal lacks the required permission."""

    status_code = status.HTTP_403_FORBIDDEN


class AuthenticationError(RBACError):
    """Raised when the credential is missing or invalid."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InternalError(RBACError):
    """Raised on unexpected persistence failures. Message is always generic."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
