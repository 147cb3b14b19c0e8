from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from domain.errors import AuthorityError
from domain.repositories import AuthAuthority, PasswordHasher
from infrastructure.password_hashing import WerkzeugPasswordHasher

_COLUMNS = "id, username, password_hash, phone, is_active, created_at"


class SqliteAuthority(AuthAuthority):
    """
    Local stand-in for the remote authentication service.

    Owns the `wager_wave_users` table (username/password hash/phone) and
    answers with the same record shape and error texts as the remote
    functions, plus a structured error code.
    """

    def __init__(self, db_path: str, hasher: Optional[PasswordHasher] = None) -> None:
        self._db_path = db_path
        self._hasher = hasher or WerkzeugPasswordHasher()
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS wager_wave_users (
                    id TEXT PRIMARY KEY,
                    username TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    phone TEXT UNIQUE,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    @staticmethod
    def _to_record(row: tuple) -> Dict[str, Any]:
        return {
            "id": str(row[0]),
            "username": row[1],
            "phone": row[3],
            "is_active": bool(row[4]),
            "created_at": row[5],
        }

    def _fetch_one(self, column: str, value: str) -> Optional[tuple]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT {_COLUMNS} FROM wager_wave_users WHERE {column} = ?",
                (value,),
            )
            return cur.fetchone()

    def authenticate_user(self, username: str, password: str) -> List[Dict[str, Any]]:
        try:
            row = self._fetch_one("username", username)
        except sqlite3.Error as exc:
            raise AuthorityError(str(exc)) from exc

        if not row or not self._hasher.verify(password, row[2]):
            return []
        return [self._to_record(row)]

    def register_user(
        self,
        username: str,
        password: str,
        phone: Optional[str],
    ) -> List[Dict[str, Any]]:
        try:
            if self._fetch_one("username", username):
                raise AuthorityError("Username already exists", code="username_taken")
            if phone and self._fetch_one("phone", phone):
                raise AuthorityError(
                    "Phone number already registered", code="phone_taken"
                )

            row = (
                str(uuid.uuid4()),
                username,
                self._hasher.hash(password),
                phone or None,
                1,
                datetime.now(timezone.utc).isoformat(),
            )
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    f"INSERT INTO wager_wave_users ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                    row,
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise AuthorityError(str(exc)) from exc

        return [self._to_record(row)]

    def set_active(self, user_id: str, is_active: bool) -> None:
        """Activate or deactivate an account (operator tooling)."""

        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "UPDATE wager_wave_users SET is_active = ? WHERE id = ?",
                (1 if is_active else 0, user_id),
            )
            conn.commit()
