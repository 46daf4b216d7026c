"""One ingestion run: page content in, catalog upserts and a report out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from targetcatalog.errors import NoCandidatesError
from targetcatalog.ingestion.attribution import attribute_source
from targetcatalog.ingestion.extractors import extract_candidates
from targetcatalog.ingestion.reconcile import reconcile
from targetcatalog.ingestion.writer import write_targets
from targetcatalog.storage.catalog_store import BaseCatalogStore

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 3


@dataclass
class IngestionReport:
    vendor: str
    source_url: str
    source_id: Optional[int] = None
    candidates_found: int = 0
    candidates_by_strategy: Dict[str, int] = field(default_factory=dict)
    normalized: int = 0
    dropped_missing_material: int = 0
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    failed_part_numbers: List[str] = field(default_factory=list)
    sample: List[Dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "vendor": self.vendor,
            "source_url": self.source_url,
            "source_id": self.source_id,
            "candidates_found": self.candidates_found,
            "candidates_by_strategy": dict(self.candidates_by_strategy),
            "normalized": self.normalized,
            "dropped_missing_material": self.dropped_missing_material,
            "inserted": self.inserted,
            "updated": self.updated,
            "failed": self.failed,
            "failed_part_numbers": list(self.failed_part_numbers),
            "sample": list(self.sample),
        }

    def summary_line(self) -> str:
        return (
            f"candidates={self.candidates_found} normalized={self.normalized} "
            f"dropped={self.dropped_missing_material} inserted={self.inserted} "
            f"updated={self.updated} failed={self.failed}"
        )


def page_title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title and soup.title.string:
        title = " ".join(soup.title.string.split())
        return title[:255] or None
    return None


def run_ingestion(
    content: str,
    *,
    store: BaseCatalogStore,
    vendor: str,
    source_url: str,
    title: Optional[str] = None,
    diameter_context: Optional[str] = None,
    strict_units: bool = False,
    sample_size: int = SAMPLE_SIZE,
) -> IngestionReport:
    """Extract, reconcile and upsert every target found in `content`.

    Raises NoCandidatesError when no strategy recognizes the page. Per-record
    problems (missing material, storage failures) are only counted.
    """
    soup = BeautifulSoup(content or "", "lxml")
    report = IngestionReport(vendor=vendor, source_url=source_url)

    candidates = extract_candidates(soup, diameter_context)
    report.candidates_found = len(candidates)
    for cand in candidates:
        key = cand.strategy.value
        report.candidates_by_strategy[key] = report.candidates_by_strategy.get(key, 0) + 1
    if not candidates:
        raise NoCandidatesError(f"No targets found on {source_url}; extraction heuristics do not match this page")

    result = reconcile(candidates, allow_bare=not strict_units)
    report.normalized = len(result.records)
    report.dropped_missing_material = len(result.dropped)
    report.sample = [r.as_dict() for r in result.records[:sample_size]]

    source = attribute_source(store, vendor, source_url, title or page_title(soup))
    report.source_id = source.id

    stats = write_targets(store, result.records, source.id)
    report.inserted = stats.inserted
    report.updated = stats.updated
    report.failed = stats.failed
    report.failed_part_numbers = stats.failed_part_numbers

    logger.info("Ingestion complete for %s: %s", vendor, report.summary_line())
    return report
