from __future__ import annotations

from typing import Optional, Sequence


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries the HTTP status code the API layer answers with.
    """

    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[Sequence[str]] = None):
        self.message = message or self.default_message
        self.errors = list(errors) if errors else None
        super().__init__(self.message)


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400
    default_message = "Validation error"


class InvalidCredentials(DomainError):
    status_code = 401
    default_message = "Invalid credentials"


class AccountLocked(DomainError):
    status_code = 423
    default_message = "Account is locked"

    def __init__(self, message: Optional[str] = None, *, remaining_minutes: Optional[int] = None):
        self.remaining_minutes = remaining_minutes
        super().__init__(message)


class AccountDeactivated(DomainError):
    status_code = 403
    default_message = "Account is deactivated. Please contact administrator"


class Unauthenticated(DomainError):
    status_code = 401
    default_message = "Not authorized - No token provided"


class InvalidToken(DomainError):
    status_code = 401
    default_message = "Not authorized - Invalid token"


class TokenExpired(DomainError):
    status_code = 401
    default_message = "Not authorized - Token expired"


class SessionExpired(DomainError):
    status_code = 401
    default_message = "Session expired - Please login again"


class AuthenticationFailed(DomainError):
    status_code = 401
    default_message = "Not authorized - Authentication failed"


class InvalidOrExpiredToken(DomainError):
    status_code = 400
    default_message = "Invalid or expired reset token"


class Forbidden(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403
    default_message = "Forbidden access"


class NotFound(DomainError):
    status_code = 404
    default_message = "Resource not found"


class DuplicateEntry(DomainError):
    status_code = 409
    default_message = "Duplicate entry found"


class Conflict(DomainError):
    status_code = 409
    default_message = "Conflict"
