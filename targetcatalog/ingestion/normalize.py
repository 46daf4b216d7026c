"""Field normalization for vendor catalog text.

Every parser here is total: text without a recognizable pattern yields None,
never an exception. Lengths come back in millimeters, purity as a percentage
string, prices as USD floats.

The bare-numeral fallback (a number with no unit is assumed to be mm) is
permissive and a known source of misclassification; pass allow_bare=False to
reject unit-less values instead.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from targetcatalog.ingestion.target_types import (
    RAW_ANNULAR,
    CandidateRecord,
    NormalizedRecord,
    TargetShape,
)

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4

_NUM = r"(\d+(?:\.\d+)?)"
_MM_RE = re.compile(_NUM + r"\s*mm\b", re.IGNORECASE)
_INCH_RE = re.compile(_NUM + r"\s*(?:\"|″|”|''|inch(?:es)?\b|in\.)", re.IGNORECASE)
_MICRON_RE = re.compile(_NUM + r"\s*(?:[µμu]m\b|microns?\b)", re.IGNORECASE)
_BARE_RE = re.compile(_NUM)

_PERCENT_RE = re.compile(_NUM + r"\s*%")
_NINES_RE = re.compile(r"(?<![\d.])(\d)\s*N\b", re.IGNORECASE)

_PRICE_RE = re.compile(r"\$\s*(\d[\d,]*(?:\.\d+)?)")
_PRICE_BARE_RE = re.compile(r"^\s*(\d[\d,]*(?:\.\d+)?)\s*$")

# Bare "OD"/"ID" only count in capitals; "Part id" is not a marker.
_OD_RE = re.compile(r"\bO\.\s?D\.?|\bOD\b|(?i:\bO\.\s?D\.|outer\s+diam)")
_ID_RE = re.compile(r"\bI\.\s?D\.?|\bID\b|(?i:\bI\.\s?D\.|inner\s+diam)")


def _clean(text: Optional[str]) -> str:
    if text is None:
        return ""
    return str(text).strip()


def parse_length_mm(text: Optional[str], *, allow_bare: bool = True) -> Optional[float]:
    """Parse a diameter-like length into millimeters.

    Order: explicit "mm" (unchanged), inch marker (x25.4), bare numeral.
    """
    s = _clean(text)
    if not s:
        return None
    m = _MM_RE.search(s)
    if m:
        return round(float(m.group(1)), 3)
    m = _INCH_RE.search(s)
    if m:
        return round(float(m.group(1)) * MM_PER_INCH, 3)
    if not allow_bare:
        return None
    m = _BARE_RE.search(s)
    if m:
        return round(float(m.group(1)), 3)
    return None


def parse_thickness_mm(text: Optional[str], *, allow_bare: bool = True) -> Optional[float]:
    """Parse a thickness into millimeters; microns are divided by 1000.

    Zero or negative thicknesses are not meaningful and come back as None.
    """
    s = _clean(text)
    if not s:
        return None
    value: Optional[float] = None
    m = _MM_RE.search(s)
    if m:
        value = float(m.group(1))
    else:
        m = _INCH_RE.search(s)
        if m:
            value = float(m.group(1)) * MM_PER_INCH
        else:
            m = _MICRON_RE.search(s)
            if m:
                value = float(m.group(1)) / 1000
            elif allow_bare:
                m = _BARE_RE.search(s)
                if m:
                    value = float(m.group(1))
    if value is None or value <= 0:
        return None
    return round(value, 4)


def parse_purity(text: Optional[str]) -> Optional[str]:
    """Return purity as a percentage string.

    "99.99 %" -> "99.99%"; "4N" -> "99.99%"; "5N" -> "99.999%".
    kN with k < 2 has no defined meaning and yields None.
    """
    s = (text or "").strip()
    if not s:
        return None
    m = _PERCENT_RE.search(s)
    if m:
        return f"{m.group(1)}%"
    m = _NINES_RE.search(s)
    if m:
        nines = int(m.group(1))
        if nines < 2:
            logger.warning("Ignoring out-of-range purity shorthand %r", m.group(0))
            return None
        if nines == 2:
            return "99%"
        return "99." + "9" * (nines - 2) + "%"
    return None


def parse_price(text: Optional[str]) -> Optional[float]:
    """Parse "$1,200.00" (or a bare "1200.00") into a float. "Price on request" is None."""
    s = (text or "").strip()
    if not s:
        return None
    m = _PRICE_RE.search(s) or _PRICE_BARE_RE.match(s)
    if not m:
        return None
    try:
        return round(float(m.group(1).replace(",", "")), 2)
    except ValueError:
        return None


def has_annular_markers(text: Optional[str]) -> bool:
    """True when text carries both an outer- and an inner-diameter marker."""
    s = text or ""
    return bool(_OD_RE.search(s) and _ID_RE.search(s))


def resolve_shape(
    raw_shape: Optional[str],
    diameter: Optional[float],
    outer: Optional[float],
    inner: Optional[float],
) -> Tuple[TargetShape, Optional[float], Optional[float], Optional[float]]:
    """Classify the target and make the dimension fields consistent with it.

    Returns (shape, diameter_mm, outer_diameter_mm, inner_diameter_mm).
    """
    if outer is not None and inner is not None:
        return TargetShape.ANNULAR, None, outer, inner
    if raw_shape == RAW_ANNULAR:
        # Ring without a complete O.D./I.D. pair.
        return TargetShape.OTHER, None, outer, inner
    if diameter is not None:
        return TargetShape.DISC, diameter, None, None
    return TargetShape.OTHER, None, outer, inner


def _text_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    s = " ".join(str(value).split())
    return s or None


def normalize_candidate(candidate: CandidateRecord, *, allow_bare: bool = True) -> NormalizedRecord:
    diameter = parse_length_mm(candidate.diameter, allow_bare=allow_bare)
    outer = parse_length_mm(candidate.outer_diameter, allow_bare=allow_bare)
    inner = parse_length_mm(candidate.inner_diameter, allow_bare=allow_bare)
    shape, diameter, outer, inner = resolve_shape(candidate.shape, diameter, outer, inner)

    notes = "; ".join(n for n in candidate.notes if n) or None
    return NormalizedRecord(
        part_number=candidate.part_number.strip(),
        shape=shape,
        material=_text_or_none(candidate.material) or "",
        strategy=candidate.strategy,
        purity=parse_purity(candidate.purity),
        diameter_mm=diameter,
        outer_diameter_mm=outer,
        inner_diameter_mm=inner,
        thickness_mm=parse_thickness_mm(candidate.thickness, allow_bare=allow_bare),
        backing_plate=_text_or_none(candidate.backing_plate),
        alloy_ratio=_text_or_none(candidate.alloy_ratio),
        price_usd=parse_price(candidate.price),
        price_notes=_text_or_none(candidate.price_notes),
        notes=notes,
        raw_excerpt=candidate.raw_excerpt,
    )
