from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

from loguru import logger

from application.record_store import RecordStore
from application.results import AuthResult, auth_failure
from domain.errors import AuthorityError, FailureReason
from domain.models import CanonicalUser, Role, Status, User
from domain.repositories import AuthAuthority

# Substrings the authority puts in its error text for known conflicts.
USERNAME_TAKEN_TEXT = "Username already exists"
PHONE_TAKEN_TEXT = "Phone number already registered"

_CONFLICT_CODES = {
    "username_taken": FailureReason.USERNAME_TAKEN,
    "phone_taken": FailureReason.PHONE_TAKEN,
}


def classify_registration_error(exc: AuthorityError) -> FailureReason:
    """
    Map an authority failure to a registration failure reason.

    A structured code wins when the adapter provides one; the message
    substrings are the compatibility fallback.
    """

    if exc.code and exc.code in _CONFLICT_CODES:
        return _CONFLICT_CODES[exc.code]

    message = str(exc)
    if USERNAME_TAKEN_TEXT in message:
        return FailureReason.USERNAME_TAKEN
    if PHONE_TAKEN_TEXT in message:
        return FailureReason.PHONE_TAKEN
    return FailureReason.UNKNOWN


class AuthBridge:
    """
    Projects the external authority's verdicts into the local records.

    The authority decides who the user is and whether the password is
    right. Role, points and local status come from the cached compatibility
    record. Admin access is granted to whoever matches a local entry with
    the `admin` role: the authority issues no admin claim, so this is a
    trust boundary the local cache cannot actually enforce.
    """

    def __init__(self, store: RecordStore, authority: AuthAuthority) -> None:
        self._store = store
        self._authority = authority

    def login(self, username: str, password: str) -> AuthResult:
        return self._login(username, password, require_admin=False)

    def admin_login(self, username: str, password: str) -> AuthResult:
        return self._login(username, password, require_admin=True)

    def _login(self, username: str, password: str, require_admin: bool) -> AuthResult:
        username = (username or "").strip()
        if not username or not (password or "").strip():
            return auth_failure(FailureReason.MISSING_FIELD)

        try:
            records = self._authority.authenticate_user(username, password)
        except AuthorityError as exc:
            logger.error("Authentication call failed for {!r}: {}", username, exc)
            return auth_failure(
                FailureReason.UNKNOWN,
                f"Authentication failed: {exc}",
            )

        if not records:
            logger.info("Rejected credentials for {!r}", username)
            return auth_failure(FailureReason.INVALID_CREDENTIALS)

        try:
            canonical = RecordStore.canonical_from_record(records[0])
        except (TypeError, ValueError):
            logger.error("Authority returned an unusable record for {!r}", username)
            return auth_failure(FailureReason.UNKNOWN)

        local = self._store.find_user(canonical.id)
        if not canonical.is_active or (local is not None and not local.is_active):
            logger.info("Login refused for deactivated account {}", canonical.id)
            return auth_failure(FailureReason.ACCOUNT_DEACTIVATED)

        session = self._build_session(canonical, local)
        if require_admin and session.role is not Role.ADMIN:
            logger.warning("Non-admin {} attempted admin login", canonical.id)
            return auth_failure(FailureReason.NOT_ADMIN)

        self._store.put_canonical(canonical)
        self._store.put_session(session)
        self._sync_users_entry(session, local)

        logger.info("User {} logged in as {}", session.id, session.role.value)
        return AuthResult(success=True, user=session)

    @staticmethod
    def _build_session(canonical: CanonicalUser, local: Optional[User]) -> User:
        if local is None:
            return User(
                id=canonical.id,
                username=canonical.username,
                role=Role.USER,
                phone=canonical.phone,
                points=0,
                status=Status.ACTIVE,
                created_at=canonical.created_at,
            )

        return replace(
            local,
            username=canonical.username,
            phone=canonical.phone or local.phone,
            status=Status.ACTIVE,
        )

    def _sync_users_entry(self, session: User, local: Optional[User]) -> None:
        if local is None:
            self._store.append_user(session)
            return

        if (local.status, local.phone, local.username) == (
            session.status,
            session.phone,
            session.username,
        ):
            return

        self._store.update_user(
            session.id,
            username=session.username,
            phone=session.phone,
            status=session.status,
        )

    def register(
        self,
        username: str,
        password: str,
        phone: Optional[str] = None,
        *,
        confirm_password: Optional[str] = None,
        referral_code: str = "",
    ) -> AuthResult:
        """
        Create an account with the authority and cache a local copy.

        Registration does not log the user in. Nothing local changes on
        failure.
        """

        username = (username or "").strip()
        phone = (phone or "").strip()
        referral_code = (referral_code or "").strip()

        if not username or not (password or "").strip():
            return auth_failure(FailureReason.MISSING_FIELD)
        if confirm_password is not None:
            if not confirm_password.strip():
                return auth_failure(FailureReason.MISSING_FIELD)
            if confirm_password != password:
                return auth_failure(FailureReason.PASSWORD_MISMATCH)

        if self._store.find_by_username(username) is not None:
            return auth_failure(FailureReason.USERNAME_TAKEN)
        if self._store.find_by_phone(phone) is not None:
            return auth_failure(FailureReason.PHONE_TAKEN)

        try:
            records = self._authority.register_user(username, password, phone or None)
        except AuthorityError as exc:
            reason = classify_registration_error(exc)
            logger.info("Registration of {!r} rejected: {}", username, reason.value)
            return auth_failure(reason)

        created = self._first_record(records)
        if created is None:
            logger.error("Authority returned no record after registering {!r}", username)
            return auth_failure(FailureReason.UNKNOWN)

        user = User(
            id=str(created["id"]),
            username=username,
            role=Role.USER,
            phone=phone,
            points=0,
            status=Status.ACTIVE,
            referral_code=referral_code,
            created_at=None if created.get("created_at") is None else str(created["created_at"]),
        )
        self._store.append_user(user)

        logger.info("Registered user {} ({!r})", user.id, username)
        return AuthResult(success=True, user=user)

    @staticmethod
    def _first_record(records: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not records:
            return None
        first = records[0]
        if not isinstance(first, dict) or first.get("id") is None:
            return None
        return first

    def logout(self) -> None:
        """Clear the session record; the users collection is untouched."""

        session = self._store.get_stored_session()
        self._store.clear_session()
        if session is not None:
            logger.info("User {} logged out", session.id)
