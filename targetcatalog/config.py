"""Environment-driven settings for catalog ingestion.

Values come from the process environment (populate it from .env with
python-dotenv before calling load_settings()).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from targetcatalog.errors import StorageError
from targetcatalog.storage.catalog_store import BaseCatalogStore

DEFAULT_PG_DSN = "dbname=targetcatalog user=catalog password=catalogpass host=localhost port=5432"
DEFAULT_SOURCE_URL = "https://www.tedpella.com/example-sputter-targets"
DEFAULT_VENDOR = "Ted Pella"


def _env_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class IngestSettings:
    pg_dsn: str = DEFAULT_PG_DSN
    store: str = "postgres"
    sqlite_path: str = "data/catalog.db"
    vendor: str = DEFAULT_VENDOR
    source_url: str = DEFAULT_SOURCE_URL
    cache_dir: str = ".cache"
    use_cache: bool = False
    strict_units: bool = False
    fetch_timeout: float = 30.0
    mode: str = "once"
    every_hours: int = 24


def load_settings(env: Optional[Mapping[str, str]] = None) -> IngestSettings:
    env = os.environ if env is None else env
    return IngestSettings(
        pg_dsn=env.get("PG_DSN", DEFAULT_PG_DSN),
        store=(env.get("CATALOG_STORE") or "postgres").strip().lower(),
        sqlite_path=env.get("CATALOG_SQLITE_PATH", "data/catalog.db"),
        vendor=env.get("CATALOG_VENDOR", DEFAULT_VENDOR),
        source_url=env.get("CATALOG_SOURCE_URL", DEFAULT_SOURCE_URL),
        cache_dir=env.get("CATALOG_CACHE_DIR", ".cache"),
        use_cache=_env_bool(env.get("CATALOG_USE_CACHE")),
        strict_units=_env_bool(env.get("CATALOG_STRICT_UNITS")),
        fetch_timeout=float(env.get("CATALOG_FETCH_TIMEOUT", "30")),
        mode=(env.get("INGEST_MODE") or "once").strip().lower(),
        every_hours=int(env.get("INGEST_EVERY_HOURS", "24")),
    )


def build_store(settings: IngestSettings) -> BaseCatalogStore:
    """Instantiate the configured catalog store (Postgres schema is ensured first)."""
    if settings.store == "sqlite":
        from targetcatalog.storage.sqlite_repo import SQLiteCatalogRepo

        return SQLiteCatalogRepo(settings.sqlite_path)
    if settings.store == "postgres":
        import psycopg

        from targetcatalog.storage.postgres_repo import PostgresCatalogRepo
        from targetcatalog.storage.postgres_schema import ensure_postgres_schema

        try:
            ensure_postgres_schema(settings.pg_dsn)
        except psycopg.Error as e:
            raise StorageError(f"Failed to prepare catalog schema: {e}") from e
        return PostgresCatalogRepo(settings.pg_dsn)
    raise ValueError(f"Unknown CATALOG_STORE {settings.store!r} (expected 'postgres' or 'sqlite')")
