from __future__ import annotations

from domain.repositories import AuthAuthority, KeyValueMedium
from infrastructure.config import Settings
from infrastructure.db.authority_postgres import PostgresAuthority
from infrastructure.db.authority_sqlite import SqliteAuthority
from infrastructure.db.kv_store_memory import InMemoryKeyValueMedium
from infrastructure.db.kv_store_postgres import PostgresKeyValueMedium
from infrastructure.db.kv_store_sqlite import SqliteKeyValueMedium


def build_medium(settings: Settings) -> KeyValueMedium:
    if settings.storage_backend == "sqlite":
        return SqliteKeyValueMedium(settings.db_path)
    if settings.storage_backend == "postgres":
        return PostgresKeyValueMedium(settings.db_params)
    if settings.storage_backend == "memory":
        return InMemoryKeyValueMedium()
    raise RuntimeError(f"Unknown STORAGE_BACKEND: {settings.storage_backend!r}")


def build_authority(settings: Settings) -> AuthAuthority:
    if settings.authority_backend == "sqlite":
        return SqliteAuthority(settings.db_path)
    if settings.authority_backend == "postgres":
        return PostgresAuthority(settings.db_params)
    raise RuntimeError(f"Unknown AUTHORITY_BACKEND: {settings.authority_backend!r}")
