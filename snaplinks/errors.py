"""
Error classes for consistent error handling.

Every error carries the HTTP status it maps to, so the web layer can render
any of them without knowing which component raised it.
"""

from typing import Optional, Dict, Any


class SnaplinksError(Exception):
    """
    Base error class.

    Attributes:
        status_code: HTTP status code (default: 500)
        message: Error message (default: "Internal server error")
        details: Optional additional error details
    """
    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """
        Initialize error.

        Args:
            message: Error message (overrides default)
            details: Optional additional error details
        """
        self.message = message or self.message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(SnaplinksError):
    """404 Not Found error."""
    status_code = 404
    message = "Not found"


class ForbiddenError(NotFoundError):
    """Visibility denied.

    Rendered exactly like NotFoundError so callers cannot tell a private
    code from a missing one.
    """


class UnauthorizedError(SnaplinksError):
    """403 Mutation attempted by a non-owner."""
    status_code = 403
    message = "Not allowed to modify this asset"


class AuthenticationRequiredError(SnaplinksError):
    """401 Anonymous caller on an authenticated route."""
    status_code = 401
    message = "Authentication required"


class ValidationError(SnaplinksError):
    """400 Validation error."""
    status_code = 400
    message = "Validation error"


class QuotaExceededError(SnaplinksError):
    """413 Upload too large."""
    status_code = 413
    message = "Upload exceeds the size limit"


class ConflictError(SnaplinksError):
    """409 Short code already taken. Handled by retrying, never returned."""
    status_code = 409
    message = "Short code already exists"


class CodeSpaceExhaustedError(SnaplinksError):
    """503 Could not find a free short code within the retry bound."""
    status_code = 503
    message = "Unable to generate a unique short code"


class StorageError(SnaplinksError):
    """502 Object storage failure."""
    status_code = 502
    message = "Storage error"


class AccountError(SnaplinksError):
    """400 Identity platform rejected an account operation."""
    status_code = 400
    message = "Account operation failed"
