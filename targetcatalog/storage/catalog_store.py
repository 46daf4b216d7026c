"""Catalog store contract shared by the Postgres and SQLite repositories."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from targetcatalog.ingestion.target_types import NormalizedRecord

INSERT = "insert"
UPDATE = "update"

# Mutable target columns, in the order the repositories bind them.
TARGET_COLUMNS = (
    "source_id",
    "target_type",
    "material",
    "purity",
    "diameter_mm",
    "outer_diameter_mm",
    "inner_diameter_mm",
    "thickness_mm",
    "backing_plate",
    "alloy_ratio",
    "notes",
    "price_usd",
    "price_notes",
    "raw_excerpt",
)


@dataclass(frozen=True)
class SourceRef:
    id: int
    vendor: str
    source_url: str
    last_fetched_at: datetime
    page_title: Optional[str] = None


def target_params(record: NormalizedRecord, source_id: Optional[int]) -> Dict[str, Any]:
    return {
        "part_number": record.part_number,
        "source_id": source_id,
        "target_type": record.shape.value,
        "material": record.material,
        "purity": record.purity,
        "diameter_mm": record.diameter_mm,
        "outer_diameter_mm": record.outer_diameter_mm,
        "inner_diameter_mm": record.inner_diameter_mm,
        "thickness_mm": record.thickness_mm,
        "backing_plate": record.backing_plate,
        "alloy_ratio": record.alloy_ratio,
        "notes": record.notes,
        "price_usd": record.price_usd,
        "price_notes": record.price_notes,
        "raw_excerpt": record.raw_excerpt,
    }


class BaseCatalogStore:
    """Key-value style upsert contract the ingestion core writes against.

    Implementations wrap driver failures in targetcatalog.errors.StorageError.
    """

    name: str = "base"

    def upsert_source(self, vendor: str, source_url: str, page_title: Optional[str] = None) -> SourceRef:
        """Insert the (vendor, source_url) row or refresh its last_fetched_at."""
        raise NotImplementedError

    def upsert_target(self, record: NormalizedRecord, source_id: Optional[int]) -> str:
        """Insert or fully replace the target keyed by part number. Returns INSERT or UPDATE."""
        raise NotImplementedError

    def get_target(self, part_number: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def get_source(self, vendor: str, source_url: str) -> Optional[SourceRef]:
        raise NotImplementedError

    def count_targets(self) -> int:
        raise NotImplementedError

    def count_sources(self) -> int:
        raise NotImplementedError
