from __future__ import annotations

import sqlite3
from typing import Callable, Optional

from domain.repositories import KeyValueMedium, StorageListener

from .storage_events import StorageEventHub


class SqliteKeyValueMedium(KeyValueMedium):
    """
    SQLite-backed implementation of `KeyValueMedium`.

    This medium owns the `kv_store` table and stores raw string values.
    It is self-initialising: the table is created if needed. Change
    notifications only reach contexts living in the same process; other
    processes sharing the file converge by polling.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._events = StorageEventHub()
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def get_item(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cur.fetchone()
            if not row:
                return None
            return str(row[0])

    def set_item(self, key: str, value: str, origin: str) -> None:
        old_value = self.get_item(key)
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO kv_store (key, value)
                VALUES (?, ?)
                ON CONFLICT (key)
                DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            conn.commit()
        self._events.publish(key, old_value, value, origin)

    def remove_item(self, key: str, origin: str) -> None:
        old_value = self.get_item(key)
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
        self._events.publish(key, old_value, None, origin)

    def subscribe(self, origin: str, listener: StorageListener) -> Callable[[], None]:
        return self._events.subscribe(origin, listener)
