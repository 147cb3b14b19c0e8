from __future__ import annotations

from typing import Callable, Dict, Optional

from domain.repositories import KeyValueMedium, StorageListener

from .storage_events import StorageEventHub


class InMemoryKeyValueMedium(KeyValueMedium):
    """
    Process-local implementation of `KeyValueMedium`.

    Used for tests and for the `memory` storage backend; contents are lost
    when the process exits.
    """

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}
        self._events = StorageEventHub()

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str, origin: str) -> None:
        old_value = self._items.get(key)
        self._items[key] = value
        self._events.publish(key, old_value, value, origin)

    def remove_item(self, key: str, origin: str) -> None:
        old_value = self._items.pop(key, None)
        self._events.publish(key, old_value, None, origin)

    def subscribe(self, origin: str, listener: StorageListener) -> Callable[[], None]:
        return self._events.subscribe(origin, listener)
