from __future__ import annotations

import json
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from domain.models import CanonicalUser, Role, Status, StorageEvent, User
from domain.repositories import KeyValueMedium

SESSION_KEY = "currentUser"
USERS_KEY = "users"
CANONICAL_KEY = "wagerWaveUser"

# Logical collection names passed to change listeners.
SESSION = "session"
ALL_USERS = "allUsers"
CANONICAL = "canonical"

ChangeListener = Callable[[str], None]

_CANONICAL_FIELDS = ("id", "username", "phone", "is_active", "created_at")

# `User` field name -> key in a stored users entry.
_RECORD_KEYS = {
    "id": "id",
    "username": "username",
    "role": "role",
    "phone": "phone",
    "points": "points",
    "status": "status",
    "referral_code": "referralCode",
    "created_at": "createdAt",
}
_KNOWN_RECORD_KEYS = frozenset(_RECORD_KEYS.values())


class RecordStore:
    """
    Typed access to the session record and the all-users collection.

    This is the only place raw stored content is parsed. Reads never fail:
    a missing key, invalid JSON or a structurally invalid record reads as
    the empty default. Writes are last-writer-wins.

    `context_id` identifies the execution context (one open view) doing the
    writes. `scope` namespaces the session keys so several independent
    sessions can share one medium; the users collection is always shared.
    """

    def __init__(
        self,
        medium: KeyValueMedium,
        context_id: Optional[str] = None,
        scope: Optional[str] = None,
    ) -> None:
        self._medium = medium
        self.context_id = context_id or uuid.uuid4().hex
        self.scope = scope
        self._session_key = f"{SESSION_KEY}:{scope}" if scope else SESSION_KEY
        self._canonical_key = f"{CANONICAL_KEY}:{scope}" if scope else CANONICAL_KEY
        self._collections = {
            self._session_key: SESSION,
            USERS_KEY: ALL_USERS,
            self._canonical_key: CANONICAL,
        }
        self._listeners: List[ChangeListener] = []
        self._unsubscribe_medium: Optional[Callable[[], None]] = None

    # -- reading ---------------------------------------------------------

    def _read_json(self, key: str) -> Any:
        raw = self._medium.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed content stored under {!r}", key)
            return None

    def get_session(self) -> Optional[User]:
        """
        Return the active session, or None.

        When the users collection holds an entry with the session's id the
        view is derived from that entry, so the two can never disagree on
        read. The stored session copy is only used when no entry exists.
        """

        stored = self.get_stored_session()
        if stored is None:
            return None
        entry = self.find_user(stored.id)
        return entry if entry is not None else stored

    def get_stored_session(self) -> Optional[User]:
        """Return the session copy exactly as persisted, without derivation."""

        data = self._read_json(self._session_key)
        try:
            return self._to_domain(data)
        except (TypeError, ValueError):
            if data is not None:
                logger.warning("Ignoring invalid session record")
            return None

    def get_all_users(self) -> List[User]:
        users = []
        for item in self._read_user_entries():
            try:
                users.append(self._to_domain(item))
            except (TypeError, ValueError):
                logger.warning("Skipping invalid entry in users collection")
        return users

    def _read_user_entries(self) -> List[Any]:
        data = self._read_json(USERS_KEY)
        if not isinstance(data, list):
            if data is not None:
                logger.warning("Ignoring users collection of type {}", type(data).__name__)
            return []
        return data

    def find_user(self, user_id: str) -> Optional[User]:
        for user in self.get_all_users():
            if user.id == user_id:
                return user
        return None

    def find_by_username(self, username: str) -> Optional[User]:
        for user in self.get_all_users():
            if user.username == username:
                return user
        return None

    def find_by_phone(self, phone: str) -> Optional[User]:
        if not phone:
            return None
        for user in self.get_all_users():
            if user.phone == phone:
                return user
        return None

    def get_canonical(self) -> Optional[CanonicalUser]:
        data = self._read_json(self._canonical_key)
        try:
            return self.canonical_from_record(data)
        except (TypeError, ValueError):
            return None

    # -- writing ---------------------------------------------------------

    def _write_json(self, key: str, value: Any) -> None:
        self._medium.set_item(key, json.dumps(value, default=str), self.context_id)
        self._notify_local(key)

    def put_session(self, user: User) -> None:
        self._write_json(self._session_key, self._to_record(user))

    def clear_session(self) -> None:
        self._medium.remove_item(self._session_key, self.context_id)
        self._notify_local(self._session_key)

    def put_all_users(self, users: List[User]) -> None:
        """Replace the whole users collection. Prefer `append_user` and `update_user`."""

        self._write_json(USERS_KEY, [self._to_record(user) for user in users])

    def append_user(self, user: User) -> None:
        entries = self._read_user_entries()
        entries.append(self._to_record(user))
        self._write_json(USERS_KEY, entries)

    def update_user(self, user_id: str, **changes: Any) -> Optional[User]:
        """
        Change the named fields of one users entry and return the result.

        Only the keys behind `changes` are rewritten. Every other entry,
        including ones that do not parse, is written back unchanged.
        Returns None (and writes nothing) when no entry has `user_id`.
        """

        entries = self._read_user_entries()
        for index, item in enumerate(entries):
            try:
                user = self._to_domain(item)
            except (TypeError, ValueError):
                continue
            if user.id != user_id:
                continue

            updated = replace(user, **changes)
            fresh = self._to_record(updated)
            record = dict(item)
            for name in changes:
                key = _RECORD_KEYS[name]
                if key in fresh:
                    record[key] = fresh[key]
                else:
                    record.pop(key, None)
            entries[index] = record
            self._write_json(USERS_KEY, entries)
            return updated
        return None

    def put_canonical(self, record: CanonicalUser) -> None:
        payload = dict(record.extra)
        payload.update(
            id=record.id,
            username=record.username,
            phone=record.phone or None,
            is_active=record.is_active,
            created_at=record.created_at,
        )
        self._write_json(self._canonical_key, payload)

    # -- change notification --------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register `listener` for changes to this store's collections.

        The listener receives the logical collection name (`session`,
        `allUsers` or `canonical`). It fires synchronously for this
        context's own writes and for storage events from other contexts.
        """

        self._listeners.append(listener)
        if self._unsubscribe_medium is None:
            self._unsubscribe_medium = self._medium.subscribe(
                self.context_id, self._on_storage_event
            )

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
            if not self._listeners and self._unsubscribe_medium is not None:
                self._unsubscribe_medium()
                self._unsubscribe_medium = None

        return unsubscribe

    def _on_storage_event(self, event: StorageEvent) -> None:
        self._dispatch(event.key)

    def _notify_local(self, key: str) -> None:
        self._dispatch(key)

    def _dispatch(self, key: str) -> None:
        collection = self._collections.get(key)
        if collection is None:
            return
        for listener in list(self._listeners):
            listener(collection)

    # -- mapping ---------------------------------------------------------

    @staticmethod
    def _to_domain(data: Any) -> User:
        if not isinstance(data, dict):
            raise TypeError("user record must be an object")

        user_id = data.get("id")
        username = data.get("username")
        if not isinstance(user_id, str) or not user_id:
            raise ValueError("user record has no id")
        if not isinstance(username, str):
            raise ValueError("user record has no username")

        points = data.get("points", 0)
        if isinstance(points, float) and points.is_integer():
            points = int(points)
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValueError(f"invalid points value: {points!r}")

        return User(
            id=user_id,
            username=username,
            role=Role(data.get("role") or Role.USER.value),
            phone=str(data.get("phone") or ""),
            points=points,
            status=Status(data.get("status") or Status.ACTIVE.value),
            referral_code=str(data.get("referralCode") or ""),
            created_at=data.get("createdAt"),
            extra={k: v for k, v in data.items() if k not in _KNOWN_RECORD_KEYS},
        )

    @staticmethod
    def _to_record(user: User) -> Dict[str, Any]:
        record: Dict[str, Any] = dict(user.extra)
        record.update(
            id=user.id,
            username=user.username,
            role=user.role.value,
            phone=user.phone,
            points=user.points,
            status=user.status.value,
        )
        if user.referral_code:
            record["referralCode"] = user.referral_code
        if user.created_at:
            record["createdAt"] = user.created_at
        return record

    @staticmethod
    def canonical_from_record(data: Any) -> CanonicalUser:
        """Map an authority record (stored or freshly returned) to `CanonicalUser`."""

        if not isinstance(data, dict):
            raise TypeError("canonical record must be an object")
        if data.get("id") is None or not isinstance(data.get("username"), str):
            raise ValueError("canonical record has no id or username")

        return CanonicalUser(
            id=str(data["id"]),
            username=data["username"],
            phone=data.get("phone") or "",
            is_active=bool(data.get("is_active", True)),
            created_at=None if data.get("created_at") is None else str(data["created_at"]),
            extra={k: v for k, v in data.items() if k not in _CANONICAL_FIELDS},
        )
