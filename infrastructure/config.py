from __future__ import annotations

import dataclasses
import os
from typing import Mapping, Optional

from dotenv import load_dotenv


def _env_float(value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclasses.dataclass(frozen=True)
class Settings:
    """
    Runtime configuration shared by both bots.

    Parameters
    ----------
    storage_backend : str
        ``"sqlite"``, ``"postgres"`` or ``"memory"`` for the key-value medium.
    authority_backend : str
        ``"sqlite"`` (local accounts table) or ``"postgres"`` (remote functions).
    db_path : str
        SQLite file used by the sqlite backends.
    session_poll_interval, users_poll_interval : float
        Seconds between refreshes of the session and the users table.
    """

    telegram_bot_token: Optional[str] = None
    discord_token: Optional[str] = None
    storage_backend: str = "sqlite"
    authority_backend: str = "sqlite"
    db_path: str = "wagerwave.db"
    pg_host: str = "localhost"
    pg_port: int = 5432
    pg_database: str = "postgres"
    pg_user: str = "postgres"
    pg_password: str = ""
    log_level: str = "INFO"
    session_poll_interval: float = 1.0
    users_poll_interval: float = 2.0

    @property
    def db_params(self) -> dict:
        return {
            "host": self.pg_host,
            "port": self.pg_port,
            "dbname": self.pg_database,
            "user": self.pg_user,
            "password": self.pg_password,
        }

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            telegram_bot_token=env.get("TELEGRAM_BOT_TOKEN") or None,
            discord_token=env.get("DISCORD_TOKEN") or None,
            storage_backend=env.get("STORAGE_BACKEND", "sqlite").strip().lower(),
            authority_backend=env.get("AUTHORITY_BACKEND", "sqlite").strip().lower(),
            db_path=env.get("DB_PATH", "wagerwave.db"),
            pg_host=env.get("PG_HOST", "localhost"),
            pg_port=int(env.get("PG_PORT", "5432")),
            pg_database=env.get("PG_DATABASE", "postgres"),
            pg_user=env.get("PG_USER", "postgres"),
            pg_password=env.get("PG_PASSWORD", ""),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            session_poll_interval=_env_float(env.get("SESSION_POLL_INTERVAL"), 1.0),
            users_poll_interval=_env_float(env.get("USERS_POLL_INTERVAL"), 2.0),
        )


def load_settings() -> Settings:
    """Load `.env` (if present) into the environment and read `Settings`."""

    load_dotenv()
    return Settings.from_env()
