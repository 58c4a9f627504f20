"""
Domain errors for edubook.

Services raise these; the API layer turns them into HTTP responses through
``to_http_exception`` or the application-wide exception handler.
"""

from typing import Any

from fastapi import HTTPException, status


class DomainError(Exception):
    """Base class for every business-level failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class FormValidationError(DomainError):
    """Missing or malformed input, detected before any write."""

    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(DomainError):
    """The acting account lacks the rights for the operation."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class SlotIndexError(DomainError, IndexError):
    """No availability slot exists at the requested position."""

    status_code = status.HTTP_404_NOT_FOUND


class OverlapError(DomainError):
    """A new slot intersects an existing slot on the same day."""

    status_code = status.HTTP_409_CONFLICT


class InvalidTransitionError(DomainError):
    status_code = status.HTTP_409_CONFLICT


class StoreUnavailableError(DomainError):
    """The document store could not be reached or rejected the write."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


AUTH_ERROR_MESSAGES = {
    "auth/invalid-email": "Invalid email address.",
    "auth/user-disabled": "This account has been disabled.",
    "auth/user-not-found": "No account found with this email.",
    "auth/wrong-password": "Incorrect password.",
    "auth/email-already-in-use": "Email is already registered.",
    "auth/weak-password": "Password is too weak.",
    "auth/operation-not-allowed": "Email/password accounts are not enabled.",
    "auth/invalid-token": "Your session is invalid or has expired. Please sign in again.",
}


AUTH_ERROR_STATUS = {
    "auth/invalid-email": status.HTTP_400_BAD_REQUEST,
    "auth/weak-password": status.HTTP_400_BAD_REQUEST,
    "auth/email-already-in-use": status.HTTP_409_CONFLICT,
    "auth/operation-not-allowed": status.HTTP_403_FORBIDDEN,
}


class AuthError(DomainError):
    """Identity provider failure keyed on a provider error code."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or AUTH_ERROR_MESSAGES.get(code, "Authentication failed."), code=code)
        self.status_code = AUTH_ERROR_STATUS.get(code, status.HTTP_401_UNAUTHORIZED)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail=self.to_dict(),
            headers={"WWW-Authenticate": "Bearer"},
        )


DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'
