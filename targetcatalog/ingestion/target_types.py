"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Strategy(str, Enum):
    TABLE = "table"
    TEXT = "text"
    DOM = "dom"


# Lower rank wins when several strategies report the same part number.
STRATEGY_RANK = {
    Strategy.TABLE: 0,
    Strategy.TEXT: 1,
    Strategy.DOM: 2,
}


class TargetShape(str, Enum):
    DISC = "disc"
    ANNULAR = "annular"
    OTHER = "other"


# Shape classifiers emitted by the extractors (before normalization).
RAW_DISC = "disc"
RAW_ANNULAR = "annular"
RAW_UNKNOWN = "unknown"

UNKNOWN_MATERIAL = "Unknown"
EXCERPT_LIMIT = 500


@dataclass(frozen=True)
class CandidateRecord:
    """Unvalidated extraction result from a single strategy.

    Measurement fields hold the raw vendor text; nothing is converted yet.
    """

    part_number: str
    material: str
    strategy: Strategy
    shape: str = RAW_UNKNOWN
    purity: Optional[str] = None
    diameter: Optional[str] = None
    outer_diameter: Optional[str] = None
    inner_diameter: Optional[str] = None
    thickness: Optional[str] = None
    backing_plate: Optional[str] = None
    alloy_ratio: Optional[str] = None
    price: Optional[str] = None
    price_notes: Optional[str] = None
    notes: Tuple[str, ...] = ()
    raw_excerpt: Optional[str] = None


@dataclass(frozen=True)
class NormalizedRecord:
    """Candidate with every measurable field in canonical units (mm, %, USD)."""

    part_number: str
    shape: TargetShape
    material: str
    strategy: Strategy
    purity: Optional[str] = None
    diameter_mm: Optional[float] = None
    outer_diameter_mm: Optional[float] = None
    inner_diameter_mm: Optional[float] = None
    thickness_mm: Optional[float] = None
    backing_plate: Optional[str] = None
    alloy_ratio: Optional[str] = None
    price_usd: Optional[float] = None
    price_notes: Optional[str] = None
    notes: Optional[str] = None
    raw_excerpt: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "part_number": self.part_number,
            "target_type": self.shape.value,
            "material": self.material,
            "purity": self.purity,
            "diameter_mm": self.diameter_mm,
            "outer_diameter_mm": self.outer_diameter_mm,
            "inner_diameter_mm": self.inner_diameter_mm,
            "thickness_mm": self.thickness_mm,
            "backing_plate": self.backing_plate,
            "alloy_ratio": self.alloy_ratio,
            "price_usd": self.price_usd,
            "price_notes": self.price_notes,
            "notes": self.notes,
            "strategy": self.strategy.value,
        }


def excerpt(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    cleaned = " ".join(str(text).split())
    return cleaned[:EXCERPT_LIMIT] or None
