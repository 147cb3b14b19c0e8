from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from domain.errors import ErrorCategory, FailureReason
from domain.models import User


@dataclass
class OperationResult:
    """Generic result type for store operations."""

    success: bool
    error: Optional[FailureReason] = None
    error_message: Optional[str] = None

    @property
    def category(self) -> Optional[ErrorCategory]:
        return self.error.category if self.error else None


@dataclass
class AuthResult(OperationResult):
    """Result of login, admin login and registration."""

    user: Optional[User] = None


@dataclass
class LedgerResult(OperationResult):
    """Result of a points mutation; `new_balance` is set on success."""

    new_balance: Optional[int] = None


def auth_failure(reason: FailureReason, message: Optional[str] = None) -> AuthResult:
    return AuthResult(success=False, error=reason, error_message=message or reason.message)


def ledger_failure(reason: FailureReason, message: Optional[str] = None) -> LedgerResult:
    return LedgerResult(success=False, error=reason, error_message=message or reason.message)
