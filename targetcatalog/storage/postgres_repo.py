"""Postgres repository for sources and catalog targets.

Plain psycopg + SQL. Each call is its own autocommit transaction, so a failed
target upsert never affects the rows written before it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

import psycopg

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

_TARGET_SELECT_COLUMNS = ("id", "part_number") + TARGET_COLUMNS + ("created_at", "updated_at")

_UPSERT_TARGET_SQL = """
INSERT INTO targets (
  part_number, source_id, target_type, material, purity,
  diameter_mm, outer_diameter_mm, inner_diameter_mm, thickness_mm,
  backing_plate, alloy_ratio, notes, price_usd, price_notes, raw_excerpt
)
VALUES (
  %(part_number)s, %(source_id)s, %(target_type)s::target_type, %(material)s, %(purity)s,
  %(diameter_mm)s, %(outer_diameter_mm)s, %(inner_diameter_mm)s, %(thickness_mm)s,
  %(backing_plate)s, %(alloy_ratio)s, %(notes)s, %(price_usd)s, %(price_notes)s, %(raw_excerpt)s
)
ON CONFLICT (part_number) DO UPDATE SET
  source_id = EXCLUDED.source_id,
  target_type = EXCLUDED.target_type,
  material = EXCLUDED.material,
  purity = EXCLUDED.purity,
  diameter_mm = EXCLUDED.diameter_mm,
  outer_diameter_mm = EXCLUDED.outer_diameter_mm,
  inner_diameter_mm = EXCLUDED.inner_diameter_mm,
  thickness_mm = EXCLUDED.thickness_mm,
  backing_plate = EXCLUDED.backing_plate,
  alloy_ratio = EXCLUDED.alloy_ratio,
  notes = EXCLUDED.notes,
  price_usd = EXCLUDED.price_usd,
  price_notes = EXCLUDED.price_notes,
  raw_excerpt = EXCLUDED.raw_excerpt,
  updated_at = GREATEST(now(), targets.updated_at + interval '1 microsecond')
RETURNING (xmax = 0) AS inserted
"""


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


class PostgresCatalogRepo(BaseCatalogStore):
    name = "postgres"

    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _connect(self):
        return psycopg.connect(self.pg_dsn, autocommit=True)

    def upsert_source(self, vendor: str, source_url: str, page_title: Optional[str] = None) -> SourceRef:
        url = canonicalize_url(source_url) or source_url
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO sources (vendor, source_url, source_page_title, last_fetched_at)
                        VALUES (%s, %s, %s, now())
                        ON CONFLICT (vendor, source_url) DO UPDATE SET
                          last_fetched_at = GREATEST(now(), sources.last_fetched_at + interval '1 microsecond'),
                          source_page_title = COALESCE(EXCLUDED.source_page_title, sources.source_page_title)
                        RETURNING id, vendor, source_url, last_fetched_at, source_page_title
                        """,
                        (vendor, url, page_title),
                    )
                    row = cur.fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Failed to upsert source {vendor} {url}: {e}") from e
        return SourceRef(*row)

    def upsert_target(self, record: NormalizedRecord, source_id: Optional[int]) -> str:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(_UPSERT_TARGET_SQL, target_params(record, source_id))
                    inserted = cur.fetchone()[0]
        except psycopg.Error as e:
            raise StorageError(f"Failed to upsert target {record.part_number}: {e}") from e
        return INSERT if inserted else UPDATE

    def get_target(self, part_number: str) -> Optional[Dict[str, Any]]:
        sql = f"SELECT {', '.join(_TARGET_SELECT_COLUMNS)} FROM targets WHERE part_number = %s"
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (part_number,))
                    row = cur.fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Failed to read target {part_number}: {e}") from e
        if not row:
            return None
        return {col: _plain(val) for col, val in zip(_TARGET_SELECT_COLUMNS, row)}

    def get_source(self, vendor: str, source_url: str) -> Optional[SourceRef]:
        url = canonicalize_url(source_url) or source_url
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT id, vendor, source_url, last_fetched_at, source_page_title
                        FROM sources
                        WHERE vendor = %s AND source_url = %s
                        """,
                        (vendor, url),
                    )
                    row = cur.fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Failed to read source {vendor} {url}: {e}") from e
        return SourceRef(*row) if row else None

    def _count(self, table: str) -> int:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(f"SELECT COUNT(*) FROM {table}")
                    return int(cur.fetchone()[0] or 0)
        except psycopg.Error as e:
            raise StorageError(f"Failed to count {table}: {e}") from e

    def count_targets(self) -> int:
        return self._count("targets")

    def count_sources(self) -> int:
        return self._count("sources")
