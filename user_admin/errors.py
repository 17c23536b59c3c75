"""
Error taxonomy for account workflows.

Every error carries a stable message and a machine-readable code. The API
layer maps each class to an HTTP status; the domain never deals with HTTP.
"""

from __future__ import annotations

from typing import Any, Optional


class AccountError(Exception):
    """Base class for all errors raised by the account workflows."""

    status_code: int = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to the JSON body returned to API clients."""
        return {"message": self.message, "error": self.code}


class ValidationError(AccountError):
    """Missing or malformed input; nothing was changed."""

    status_code = 400


class ConflictError(AccountError):
    """An account with the same email already exists."""

    status_code = 409

    def __init__(self, message: str = "User with this email already exists"):
        super().__init__(message, code="EMAIL_TAKEN")


class AuthenticationError(AccountError):
    """Bad credentials, a missing or invalid session, or a deleted account."""

    status_code = 401


class ForbiddenError(AccountError):
    """The account is blocked."""

    status_code = 403

    def __init__(self, message: str = "User is blocked"):
        super().__init__(message, code="USER_BLOCKED")


class NotFoundError(AccountError):
    """Resource not found."""

    status_code = 404


class RateLimitedError(AccountError):
    status_code = 429

    def __init__(self, message: str = "rate limited"):
        super().__init__(message, code="RATE_LIMITED")


class StoreUnavailableError(AccountError):
    """The credential store failed; the caller only sees a generic message."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, code="INTERNAL_ERROR")
