from __future__ import annotations

from typing import Callable, Optional

import psycopg2

from domain.repositories import KeyValueMedium, StorageListener

from .storage_events import StorageEventHub


class PostgresKeyValueMedium(KeyValueMedium):
    """
    Postgres-backed implementation of `KeyValueMedium`.

    Uses a dedicated `kv_store` table. Several bot processes may point at
    the same database; each one only hears about its own writes and picks
    up the others on its next poll.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._events = StorageEventHub()
        self._ensure_table()

    def _get_connection(self):
        return psycopg2.connect(**self._db_params)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
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
            with conn.cursor() as cur:
                cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                row = cur.fetchone()
                if not row:
                    return None
                return str(row[0])

    def set_item(self, key: str, value: str, origin: str) -> None:
        old_value = self.get_item(key)
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO kv_store (key, value)
                    VALUES (%s, %s)
                    ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
                    """,
                    (key, value),
                )
                conn.commit()
        self._events.publish(key, old_value, value, origin)

    def remove_item(self, key: str, origin: str) -> None:
        old_value = self.get_item(key)
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM kv_store WHERE key = %s", (key,))
                conn.commit()
        self._events.publish(key, old_value, None, origin)

    def subscribe(self, origin: str, listener: StorageListener) -> Callable[[], None]:
        return self._events.subscribe(origin, listener)
