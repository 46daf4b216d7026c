#!/usr/bin/env python3
"""Catalog ingestion worker.

Runs one ingestion cycle (or scheduled cycles) for a vendor's sputter target page:
- fetch the page (or read a saved copy with --html-file)
- extract and reconcile target candidates
- upsert the source row, then every target, into the catalog store

INGEST_MODE selects the behaviour: once (default), scheduled/daemon, migrate, seed.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional

import schedule
from dotenv import load_dotenv

from targetcatalog.config import IngestSettings, build_store, load_settings
from targetcatalog.errors import CatalogError, ContentFetchError
from targetcatalog.ingestion.fetch import fetch_page
from targetcatalog.ingestion.pipeline import IngestionReport, run_ingestion
from targetcatalog.ingestion.sample_catalog import seed_sample_catalog
from targetcatalog.storage.postgres_schema import ensure_postgres_schema

logger = logging.getLogger("catalog_ingest")


def run_once(settings: IngestSettings, html_file: Optional[str] = None) -> IngestionReport:
    if html_file:
        try:
            content = Path(html_file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ContentFetchError(html_file, str(e)) from e
        logger.info("Read %.1f KB of HTML from %s", len(content) / 1024, html_file)
    else:
        content = fetch_page(
            settings.source_url,
            timeout=settings.fetch_timeout,
            cache_dir=settings.cache_dir,
            use_cache=settings.use_cache,
        )
        logger.info("Fetched %.1f KB of HTML", len(content) / 1024)

    store = build_store(settings)
    report = run_ingestion(
        content,
        store=store,
        vendor=settings.vendor,
        source_url=settings.source_url,
        strict_units=settings.strict_units,
    )
    print(f"[ingest] {report.summary_line()}")
    for item in report.sample:
        print(f"[ingest] sample {json.dumps(item)}")
    return report


def _run_logged(settings: IngestSettings, html_file: Optional[str] = None) -> bool:
    try:
        run_once(settings, html_file)
        return True
    except CatalogError as e:
        logger.error(f"Ingestion failed: {e}")
        return False


def run_scheduled(settings: IngestSettings) -> None:
    schedule.every(settings.every_hours).hours.do(_run_logged, settings)
    _run_logged(settings)
    while True:
        schedule.run_pending()
        time.sleep(5)


def migrate(settings: IngestSettings) -> None:
    if settings.store == "postgres":
        ensure_postgres_schema(settings.pg_dsn)
    else:
        build_store(settings)
    print(f"[migrate] schema ready ({settings.store})")


def seed(settings: IngestSettings) -> None:
    stats = seed_sample_catalog(build_store(settings))
    print(f"[seed] inserted={stats.inserted} updated={stats.updated} failed={stats.failed}")


def main(argv: Optional[list] = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Ingest a vendor sputter target catalog page")
    parser.add_argument("--html-file", help="Ingest a saved HTML page instead of fetching the source URL")
    parser.add_argument("--url", help="Override CATALOG_SOURCE_URL")
    parser.add_argument("--vendor", help="Override CATALOG_VENDOR")
    args = parser.parse_args(argv)

    settings = load_settings()
    overrides = {}
    if args.url:
        overrides["source_url"] = args.url
    if args.vendor:
        overrides["vendor"] = args.vendor
    if overrides:
        settings = replace(settings, **overrides)

    if settings.mode == "migrate":
        migrate(settings)
        return 0
    if settings.mode == "seed":
        try:
            seed(settings)
        except CatalogError as e:
            logger.error(f"Seeding failed: {e}")
            return 1
        return 0
    if settings.mode in ("scheduled", "daemon"):
        run_scheduled(settings)
        return 0
    return 0 if _run_logged(settings, args.html_file) else 1


if __name__ == "__main__":
    sys.exit(main())
