"""Sample catalog for local development (INGEST_MODE=seed).

Writes a representative set of disc, annular and alloy targets under one
sample Source through the same attribution and upsert path as a real run.
"""

from __future__ import annotations

import logging
from typing import List

from targetcatalog.ingestion.attribution import attribute_source
from targetcatalog.ingestion.target_types import NormalizedRecord, Strategy, TargetShape
from targetcatalog.ingestion.writer import WriteStats, write_targets
from targetcatalog.storage.catalog_store import BaseCatalogStore

logger = logging.getLogger(__name__)

SAMPLE_VENDOR = "Ted Pella"
SAMPLE_SOURCE_URL = "https://www.tedpella.com/sputter-targets"
SAMPLE_PAGE_TITLE = "Disc or Annular Sputter Targets (Sample Data)"

# (part, material, purity, diameter_mm, thickness_mm)
_DISCS = [
    ("91700", "Gold", "99.99%", 62, 0.1),
    ("91701", "Gold", "99.99%", 62, 0.2),
    ("91710", "Silver", "99.99%", 62, 0.1),
    ("91720", "Platinum", "99.95%", 62, 0.1),
    ("91730", "Copper", "99.99%", 62, 0.2),
    ("91750", "Titanium", "99.995%", 62, 0.2),
    ("91760", "Chromium", "99.95%", 62, 0.2),
    ("91800", "Gold", "99.99%", 60, 0.1),
    ("91820", "Palladium", "99.95%", 60, 0.1),
    ("91830", "Iridium", "99.9%", 60, 0.1),
    ("91900", "Gold", "99.999%", 57, 0.1),
    ("91901", "Gold", "99.99%", 57, 0.076),
    ("91930", "Carbon", "99.95%", 57, 3.2),
    ("92000", "Gold", "99.99%", 54, 0.1),
    ("92020", "Aluminum", "99.999%", 54, 0.2),
    ("92100", "Gold", "99.99%", 50, 0.1),
    ("92120", "Titanium", "99.99%", 50, 0.2),
]

# (part, material, purity, outer_mm, inner_mm, thickness_mm)
_ANNULAR = [
    ("93000", "Gold", "99.99%", 60, 20, 0.1),
    ("93010", "Silver", "99.99%", 60, 20, 0.1),
    ("93020", "Platinum", "99.95%", 57, 18, 0.1),
    ("93030", "Copper", "99.99%", 54, 16, 0.2),
]

# (part, material, alloy_ratio, diameter_mm, thickness_mm)
_ALLOYS = [
    ("94000", "Gold/Palladium", "80% Au / 20% Pd", 57, 0.1),
    ("94010", "Gold/Palladium", "60% Au / 40% Pd", 57, 0.1),
]


def sample_records() -> List[NormalizedRecord]:
    records = [
        NormalizedRecord(
            part_number=part,
            shape=TargetShape.DISC,
            material=material,
            strategy=Strategy.TABLE,
            purity=purity,
            diameter_mm=float(dia),
            thickness_mm=thickness,
        )
        for part, material, purity, dia, thickness in _DISCS
    ]
    records += [
        NormalizedRecord(
            part_number=part,
            shape=TargetShape.ANNULAR,
            material=material,
            strategy=Strategy.TABLE,
            purity=purity,
            outer_diameter_mm=float(outer),
            inner_diameter_mm=float(inner),
            thickness_mm=thickness,
        )
        for part, material, purity, outer, inner, thickness in _ANNULAR
    ]
    records += [
        NormalizedRecord(
            part_number=part,
            shape=TargetShape.DISC,
            material=material,
            strategy=Strategy.TABLE,
            diameter_mm=float(dia),
            thickness_mm=thickness,
            alloy_ratio=ratio,
            notes="compound material",
        )
        for part, material, ratio, dia, thickness in _ALLOYS
    ]
    return records


def seed_sample_catalog(store: BaseCatalogStore) -> WriteStats:
    source = attribute_source(store, SAMPLE_VENDOR, SAMPLE_SOURCE_URL, SAMPLE_PAGE_TITLE)
    stats = write_targets(store, sample_records(), source.id)
    logger.info(f"Seeded sample catalog: {stats.inserted} inserted, {stats.updated} updated, {stats.failed} failed")
    return stats
