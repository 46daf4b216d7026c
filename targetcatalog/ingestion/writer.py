"""Idempotent per-record writes of normalized targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from targetcatalog.errors import StorageError
from targetcatalog.ingestion.target_types import NormalizedRecord
from targetcatalog.storage.catalog_store import INSERT, BaseCatalogStore

logger = logging.getLogger(__name__)


@dataclass
class WriteStats:
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    failed_part_numbers: List[str] = field(default_factory=list)


def write_targets(
    store: BaseCatalogStore,
    records: Iterable[NormalizedRecord],
    source_id: Optional[int],
) -> WriteStats:
    """Upsert each record on its part number.

    Records are independent: a storage failure is logged and counted, and the
    remaining records are still written.
    """
    stats = WriteStats()
    for record in records:
        try:
            outcome = store.upsert_target(record, source_id)
        except StorageError as e:
            stats.failed += 1
            stats.failed_part_numbers.append(record.part_number)
            logger.error(f"Failed to upsert {record.part_number}: {e}")
            continue
        if outcome == INSERT:
            stats.inserted += 1
        else:
            stats.updated += 1
    return stats
