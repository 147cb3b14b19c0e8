from __future__ import annotations

import asyncio
from typing import Callable, Generic, List, Optional, TypeVar

from loguru import logger

from application.record_store import RecordStore
from domain.models import User

T = TypeVar("T")

SESSION_POLL_INTERVAL = 1.0
USERS_POLL_INTERVAL = 2.0


class Subscription:
    """Cancellation handle returned by `SyncPoller.start`."""

    def __init__(self, poller: "SyncPoller") -> None:
        self._poller = poller

    @property
    def cancelled(self) -> bool:
        return self._poller.cancelled

    def cancel(self) -> None:
        self._poller.stop()


class SyncPoller(Generic[T]):
    """
    Re-reads the store and hands the current value to a callback.

    The callback runs immediately on `start`, then every `interval`
    seconds, and whenever `store` reports a change (own writes or storage
    events from other contexts). Triggers are not ordered relative to each
    other, so callbacks must re-render current state rather than apply
    deltas.

    Must be started from inside a running asyncio event loop.
    """

    def __init__(
        self,
        store: RecordStore,
        read: Callable[[], T],
        callback: Callable[[T], None],
        interval: float,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._store = store
        self._read = read
        self._callback = callback
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.cancelled = False

    def start(self) -> Subscription:
        if self._task is not None or self.cancelled:
            raise RuntimeError("SyncPoller can only be started once")

        loop = asyncio.get_running_loop()
        self._unsubscribe = self._store.subscribe(self._on_change)
        self._task = loop.create_task(self._run())
        self.refresh()
        return Subscription(self)

    def stop(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._task is not None:
            self._task.cancel()

    def refresh(self) -> None:
        """Read once and deliver the value, unless the poller was cancelled."""

        if self.cancelled:
            return
        try:
            value = self._read()
            self._callback(value)
        except Exception:
            logger.exception("Sync callback failed")

    def _on_change(self, collection: str) -> None:
        logger.debug("Store change in {!r}, refreshing", collection)
        self.refresh()

    async def _run(self) -> None:
        while not self.cancelled:
            await asyncio.sleep(self._interval)
            self.refresh()


def watch_session(
    store: RecordStore,
    callback: Callable[[Optional[User]], None],
    interval: float = SESSION_POLL_INTERVAL,
) -> Subscription:
    """Follow the session record (header / dashboard presence checks)."""

    return SyncPoller(store, store.get_session, callback, interval).start()


def watch_users(
    store: RecordStore,
    callback: Callable[[List[User]], None],
    interval: float = USERS_POLL_INTERVAL,
) -> Subscription:
    """Follow the full users collection (admin table refresh)."""

    return SyncPoller(store, store.get_all_users, callback, interval).start()
