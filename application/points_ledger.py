from __future__ import annotations

from dataclasses import replace
from typing import List

from loguru import logger

from application.record_store import RecordStore
from application.results import LedgerResult, ledger_failure
from domain.errors import FailureReason
from domain.models import Role, User

# Fixed top-up menu; free-form amounts are only available to admins.
TOP_UP_OPTIONS = (50, 100, 200, 500, 1000, 2000)


def _is_positive_int(amount: object) -> bool:
    return isinstance(amount, int) and not isinstance(amount, bool) and amount > 0


class PointsLedger:
    """
    Points mutations against a `RecordStore`.

    Both operations are read-modify-write with no locking. Between the two
    writes of a top-up another reader can see the session and the users
    collection disagree; the next write or read reconciles them.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    def top_up(self, session_user_id: str, amount: int) -> LedgerResult:
        """
        Add one of the `TOP_UP_OPTIONS` to the logged-in user's balance.

        The new balance is written to the session record and to the
        matching entry of the users collection.
        """

        if amount not in TOP_UP_OPTIONS or not _is_positive_int(amount):
            return ledger_failure(FailureReason.INVALID_AMOUNT)

        session = self._store.get_session()
        if session is None or session.id != session_user_id:
            return ledger_failure(FailureReason.NO_ACTIVE_SESSION)

        new_balance = session.points + amount
        self._store.put_session(replace(session, points=new_balance))
        self._store.update_user(session.id, points=new_balance)

        logger.info("Topped up {} points for user {}", amount, session.id)
        return LedgerResult(success=True, new_balance=new_balance)

    def admin_grant(self, target_user_id: str, amount: int) -> LedgerResult:
        """
        Add `amount` points to another user's entry.

        The current session must belong to an admin. Only the target entry
        of the users collection changes; no session record is touched.
        """

        session = self._store.get_session()
        if session is None or session.role is not Role.ADMIN:
            return ledger_failure(FailureReason.NOT_ADMIN)

        if not _is_positive_int(amount):
            return ledger_failure(FailureReason.INVALID_AMOUNT)

        target = self._store.find_user(target_user_id)
        if target is None:
            return ledger_failure(FailureReason.USER_NOT_FOUND)

        new_balance = target.points + amount
        self._store.update_user(target_user_id, points=new_balance)
        logger.info("Admin {} granted {} points to user {}", session.id, amount, target_user_id)
        return LedgerResult(success=True, new_balance=new_balance)

    def regular_users(self) -> List[User]:
        """Users shown on the admin dashboard (everyone with the `user` role)."""

        return [u for u in self._store.get_all_users() if u.role is Role.USER]
