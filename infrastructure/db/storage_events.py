from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from loguru import logger

from domain.models import StorageEvent
from domain.repositories import StorageListener


class StorageEventHub:
    """
    Fan-out of storage-change notifications shared by all mediums.

    Mirrors the browser `storage` event: a write is announced to every
    listener except those registered by the writing context.
    """

    def __init__(self) -> None:
        self._listeners: List[Tuple[str, StorageListener]] = []

    def subscribe(self, origin: str, listener: StorageListener) -> Callable[[], None]:
        entry = (origin, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def publish(
        self,
        key: str,
        old_value: Optional[str],
        new_value: Optional[str],
        origin: str,
    ) -> None:
        if old_value == new_value:
            return

        event = StorageEvent(key=key, old_value=old_value, new_value=new_value, origin=origin)
        # Copy: listeners may unsubscribe while being notified.
        for listener_origin, listener in list(self._listeners):
            if listener_origin == origin:
                continue
            try:
                listener(event)
            except Exception:
                logger.exception("Storage listener failed for key {!r}", key)
