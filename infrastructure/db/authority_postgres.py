from __future__ import annotations

from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from domain.errors import AuthorityError
from domain.repositories import AuthAuthority


class PostgresAuthority(AuthAuthority):
    """
    Calls the authority's stored functions directly.

    `authenticate_wager_user(username_input, password_input)` and
    `register_wager_user(username_input, password_input, phone_input)` are
    owned by the remote database; this adapter only invokes them and turns
    driver errors into `AuthorityError`. Conflicts are reported through the
    function's exception text.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params

    def _get_connection(self):
        return psycopg2.connect(**self._db_params)

    @staticmethod
    def _to_record(row: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(row)
        record["id"] = str(record["id"])
        if record.get("created_at") is not None:
            record["created_at"] = str(record["created_at"])
        return record

    def _call(self, sql: str, params: tuple) -> List[Dict[str, Any]]:
        try:
            with self._get_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(sql, params)
                    rows = cur.fetchall()
                    conn.commit()
        except psycopg2.Error as exc:
            message = (exc.pgerror or str(exc)).strip()
            raise AuthorityError(message, code=exc.pgcode) from exc

        return [self._to_record(row) for row in rows]

    def authenticate_user(self, username: str, password: str) -> List[Dict[str, Any]]:
        return self._call(
            "SELECT * FROM authenticate_wager_user(%s, %s)",
            (username, password),
        )

    def register_user(
        self,
        username: str,
        password: str,
        phone: Optional[str],
    ) -> List[Dict[str, Any]]:
        return self._call(
            "SELECT * FROM register_wager_user(%s, %s, %s)",
            (username, password, phone),
        )
