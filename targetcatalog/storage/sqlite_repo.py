"""SQLite-backed catalog store for local runs and tests.

Mirrors the Postgres schema closely enough that the ingestion core cannot tell
the two apart. Timestamps are stored as ISO-8601 UTC strings.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from targetcatalog.errors import StorageError
from targetcatalog.ingestion.target_types import NormalizedRecord
from targetcatalog.ingestion.url_utils import canonicalize_url
from targetcatalog.storage.catalog_store import (
    INSERT,
    TARGET_COLUMNS,
    UPDATE,
    BaseCatalogStore,
    SourceRef,
    target_params,
)
from targetcatalog.storage.postgres_schema import MATERIAL_SEEDS

logger = logging.getLogger(__name__)

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS sources (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        vendor TEXT NOT NULL,
        source_url TEXT NOT NULL,
        source_page_title TEXT,
        last_fetched_at TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (vendor, source_url)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS targets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source_id INTEGER REFERENCES sources(id) ON DELETE SET NULL,
        part_number TEXT NOT NULL UNIQUE,
        target_type TEXT NOT NULL DEFAULT 'disc' CHECK (target_type IN ('disc', 'annular', 'other')),
        material TEXT NOT NULL,
        purity TEXT,
        diameter_mm REAL,
        outer_diameter_mm REAL,
        inner_diameter_mm REAL,
        thickness_mm REAL,
        backing_plate TEXT,
        alloy_ratio TEXT,
        notes TEXT,
        price_usd REAL,
        price_notes TEXT,
        raw_excerpt TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_targets_material ON targets (material)",
    "CREATE INDEX IF NOT EXISTS idx_targets_diameter ON targets (diameter_mm)",
    "CREATE INDEX IF NOT EXISTS idx_targets_source ON targets (source_id)",
    """
    CREATE TABLE IF NOT EXISTS materials (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        symbol TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        category TEXT
    )
    """,
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _advance(previous: Optional[str]) -> datetime:
    """Current time, bumped past `previous` so the timestamp strictly increases."""
    now = _utcnow()
    if previous:
        prev = datetime.fromisoformat(previous)
        if now <= prev:
            now = prev + timedelta(microseconds=1)
    return now


def _source_ref(row: sqlite3.Row) -> SourceRef:
    return SourceRef(
        id=int(row["id"]),
        vendor=row["vendor"],
        source_url=row["source_url"],
        last_fetched_at=datetime.fromisoformat(row["last_fetched_at"]),
        page_title=row["source_page_title"],
    )


class SQLiteCatalogRepo(BaseCatalogStore):
    name = "sqlite"

    def __init__(self, db_path: str = "data/catalog.db"):
        self.db_path = db_path
        self.max_retries = 3
        self.retry_delay = 0.5
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.init_database()

    @contextmanager
    def get_connection(self):
        """Open a connection in autocommit mode; callers manage BEGIN/COMMIT explicitly."""
        conn = None
        for attempt in range(self.max_retries):
            try:
                conn = sqlite3.connect(self.db_path, timeout=30.0, isolation_level=None)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys=ON;")
                break
            except sqlite3.OperationalError as e:
                if "database is locked" in str(e) and attempt < self.max_retries - 1:
                    logger.warning(f"Database locked, retrying in {self.retry_delay}s (attempt {attempt + 1})")
                    time.sleep(self.retry_delay)
                    continue
                raise StorageError(f"Database connection failed: {e}") from e
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self):
        with self.get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def init_database(self) -> None:
        try:
            with self._transaction() as conn:
                for stmt in _SCHEMA:
                    conn.execute(stmt)
                conn.executemany(
                    "INSERT OR IGNORE INTO materials (symbol, name, category) VALUES (?, ?, ?)",
                    MATERIAL_SEEDS,
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialize catalog database: {e}") from e

    def upsert_source(self, vendor: str, source_url: str, page_title: Optional[str] = None) -> SourceRef:
        url = canonicalize_url(source_url) or source_url
        try:
            with self._transaction() as conn:
                row = conn.execute(
                    "SELECT * FROM sources WHERE vendor = ? AND source_url = ?", (vendor, url)
                ).fetchone()
                if row is None:
                    now = _utcnow().isoformat()
                    conn.execute(
                        """
                        INSERT INTO sources (vendor, source_url, source_page_title, last_fetched_at, created_at)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (vendor, url, page_title, now, now),
                    )
                else:
                    conn.execute(
                        """
                        UPDATE sources
                        SET last_fetched_at = ?, source_page_title = COALESCE(?, source_page_title)
                        WHERE id = ?
                        """,
                        (_advance(row["last_fetched_at"]).isoformat(), page_title, row["id"]),
                    )
                row = conn.execute(
                    "SELECT * FROM sources WHERE vendor = ? AND source_url = ?", (vendor, url)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to upsert source {vendor} {url}: {e}") from e
        return _source_ref(row)

    def upsert_target(self, record: NormalizedRecord, source_id: Optional[int]) -> str:
        params = target_params(record, source_id)
        try:
            with self._transaction() as conn:
                existing = conn.execute(
                    "SELECT id, updated_at FROM targets WHERE part_number = ?", (record.part_number,)
                ).fetchone()
                if existing is None:
                    now = _utcnow().isoformat()
                    columns = ("part_number",) + TARGET_COLUMNS + ("created_at", "updated_at")
                    values = [params[c] for c in ("part_number",) + TARGET_COLUMNS] + [now, now]
                    conn.execute(
                        f"INSERT INTO targets ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                        values,
                    )
                    return INSERT
                assignments = ", ".join(f"{c} = ?" for c in TARGET_COLUMNS)
                values = [params[c] for c in TARGET_COLUMNS]
                values += [_advance(existing["updated_at"]).isoformat(), existing["id"]]
                conn.execute(f"UPDATE targets SET {assignments}, updated_at = ? WHERE id = ?", values)
                return UPDATE
        except sqlite3.Error as e:
            raise StorageError(f"Failed to upsert target {record.part_number}: {e}") from e

    def get_target(self, part_number: str) -> Optional[Dict[str, Any]]:
        try:
            with self.get_connection() as conn:
                row = conn.execute("SELECT * FROM targets WHERE part_number = ?", (part_number,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read target {part_number}: {e}") from e
        if row is None:
            return None
        out = dict(row)
        out["created_at"] = datetime.fromisoformat(out["created_at"])
        out["updated_at"] = datetime.fromisoformat(out["updated_at"])
        return out

    def get_source(self, vendor: str, source_url: str) -> Optional[SourceRef]:
        url = canonicalize_url(source_url) or source_url
        try:
            with self.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM sources WHERE vendor = ? AND source_url = ?", (vendor, url)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read source {vendor} {url}: {e}") from e
        return _source_ref(row) if row else None

    def _count(self, table: str) -> int:
        try:
            with self.get_connection() as conn:
                return int(conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] or 0)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count {table}: {e}") from e

    def count_targets(self) -> int:
        return self._count("targets")

    def count_sources(self) -> int:
        return self._count("sources")
