from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol

from .models import StorageEvent

StorageListener = Callable[[StorageEvent], None]


class KeyValueMedium(Protocol):
    """
    Abstraction over the persistent string key/value medium.

    Implementations are responsible for:
    - Storing raw string values under string keys (no parsing).
    - Notifying listeners registered by *other* execution contexts
      whenever a key is written or removed.
    """

    def get_item(self, key: str) -> Optional[str]:
        """Return the raw value stored under `key`, or None."""

        ...

    def set_item(self, key: str, value: str, origin: str) -> None:
        """Store `value` under `key` on behalf of context `origin`."""

        ...

    def remove_item(self, key: str, origin: str) -> None:
        """Delete `key`; a missing key is not an error."""

        ...

    def subscribe(self, origin: str, listener: StorageListener) -> Callable[[], None]:
        """
        Register `listener` for changes made by contexts other than `origin`.

        Returns a callable that removes the registration.
        """

        ...


class AuthAuthority(Protocol):
    """
    The remote service that verifies credentials and issues identities.

    Both calls return plain records (dicts with at least `id`, `username`,
    `phone`, `is_active`) and raise `AuthorityError` on failure.
    """

    def authenticate_user(self, username: str, password: str) -> List[Dict[str, Any]]:
        """Return one record for valid credentials, an empty list otherwise."""

        ...

    def register_user(
        self,
        username: str,
        password: str,
        phone: Optional[str],
    ) -> List[Dict[str, Any]]:
        """Create an account and return the created record as a one-item list."""

        ...


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, hashed: str) -> bool:
        ...
