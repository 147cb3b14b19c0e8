from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    AUTH_FAILURE = "auth_failure"
    CONFLICT = "conflict"
    DECODE = "decode"
    NOT_FOUND = "not_found"
    EXTERNAL = "external"


class FailureReason(str, Enum):
    """Every way an operation of the store can fail without side effects."""

    MISSING_FIELD = "missing_field"
    PASSWORD_MISMATCH = "password_mismatch"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    NOT_ADMIN = "not_admin"
    USERNAME_TAKEN = "username_taken"
    PHONE_TAKEN = "phone_taken"
    MALFORMED_TOKEN = "malformed_token"
    NO_ACTIVE_SESSION = "no_active_session"
    USER_NOT_FOUND = "user_not_found"
    UNKNOWN = "unknown"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_CATEGORIES = {
    FailureReason.MISSING_FIELD: ErrorCategory.VALIDATION,
    FailureReason.PASSWORD_MISMATCH: ErrorCategory.VALIDATION,
    FailureReason.INVALID_AMOUNT: ErrorCategory.VALIDATION,
    FailureReason.INVALID_CREDENTIALS: ErrorCategory.AUTH_FAILURE,
    FailureReason.ACCOUNT_DEACTIVATED: ErrorCategory.AUTH_FAILURE,
    FailureReason.NOT_ADMIN: ErrorCategory.AUTH_FAILURE,
    FailureReason.USERNAME_TAKEN: ErrorCategory.CONFLICT,
    FailureReason.PHONE_TAKEN: ErrorCategory.CONFLICT,
    FailureReason.MALFORMED_TOKEN: ErrorCategory.DECODE,
    FailureReason.NO_ACTIVE_SESSION: ErrorCategory.NOT_FOUND,
    FailureReason.USER_NOT_FOUND: ErrorCategory.NOT_FOUND,
    FailureReason.UNKNOWN: ErrorCategory.EXTERNAL,
}

_MESSAGES = {
    FailureReason.MISSING_FIELD: "Please fill in all required fields.",
    FailureReason.PASSWORD_MISMATCH: "Passwords do not match.",
    FailureReason.INVALID_AMOUNT: "Please choose a valid points amount.",
    FailureReason.INVALID_CREDENTIALS: "Invalid username or password.",
    FailureReason.ACCOUNT_DEACTIVATED: (
        "Your account has been deactivated. Please contact support."
    ),
    FailureReason.NOT_ADMIN: "This account does not have admin access.",
    FailureReason.USERNAME_TAKEN: (
        "Username already exists. Please choose a different username."
    ),
    FailureReason.PHONE_TAKEN: (
        "Phone number already registered. Please use a different number."
    ),
    FailureReason.MALFORMED_TOKEN: (
        "Invalid secure link. Please enter credentials manually."
    ),
    FailureReason.NO_ACTIVE_SESSION: "You are not logged in.",
    FailureReason.USER_NOT_FOUND: "User not found.",
    FailureReason.UNKNOWN: "An unexpected error occurred. Please try again.",
}


class AuthorityError(Exception):
    """
    Raised by `AuthAuthority` adapters when the remote call fails.

    `code` carries a structured error code when the adapter can supply one;
    otherwise callers fall back to inspecting the message text.
    """

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        self.code = code
        super().__init__(message)
