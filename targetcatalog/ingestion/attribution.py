"""Source attribution: one provenance row per (vendor, page URL)."""

from __future__ import annotations

import logging
from typing import Optional

from targetcatalog.storage.catalog_store import BaseCatalogStore, SourceRef

logger = logging.getLogger(__name__)


def attribute_source(
    store: BaseCatalogStore,
    vendor: str,
    source_url: str,
    page_title: Optional[str] = None,
) -> SourceRef:
    """Insert-or-touch the Source row for this run.

    Must be called once per ingestion run, before any target upsert, so every
    target written in the run shares the same source id and fetch timestamp.
    """
    ref = store.upsert_source(vendor, source_url, page_title)
    logger.info("Source %s (%s) id=%s last_fetched_at=%s", vendor, ref.source_url, ref.id, ref.last_fetched_at.isoformat())
    return ref
