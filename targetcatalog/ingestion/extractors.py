"""Candidate extraction strategies for vendor catalog pages.

Each strategy is a standalone generator over the page content:
- table: structured <table> rows (disc tables under a "<n> mm" heading, annular O.D./I.D. tables)
- text: regex scan of the flattened page text for "<part> <... Target ...> <price>" entries
- dom: last-resort scan of row-like elements for a bare 4-5 digit part number

None of them do I/O, and none of them validate; that is the reconciler's job.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, List, Optional, Tuple, Union

from bs4 import BeautifulSoup, Tag

from targetcatalog.ingestion.normalize import has_annular_markers
from targetcatalog.ingestion.target_types import (
    RAW_ANNULAR,
    RAW_DISC,
    RAW_UNKNOWN,
    UNKNOWN_MATERIAL,
    CandidateRecord,
    Strategy,
    excerpt,
)

logger = logging.getLogger(__name__)

Content = Union[str, BeautifulSoup]

MIN_DISC_COLUMNS = 3
MIN_ANNULAR_COLUMNS = 4

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "strong"]
_HEADING_DIAMETER_RE = re.compile(r"\d+(?:\.\d+)?\s*mm", re.IGNORECASE)

_RATIO_RE = re.compile(r"^\s*\d+(?:\.\d+)?\s*/\s*\d+(?:\.\d+)?\s*$")
_ALLOY_RE = re.compile(
    r"\d+(?:\.\d+)?\s*%\s*[A-Z][a-z]?\s*/\s*\d+(?:\.\d+)?\s*%\s*[A-Z][a-z]?"
    r"|(?<![\d.])\d{1,2}\s*/\s*\d{1,2}(?![\d.])"
)
_COMPOUND_RE = re.compile(
    r"/|\b(?:oxide|nitride|carbide|fluoride|telluride|selenide|sulfide|boride|silicide|ITO)\b",
    re.IGNORECASE,
)
_NEW_RE = re.compile(r"^\s*new\b[!:\-\s]*", re.IGNORECASE)

# "<part> <description with Target> [each] <$price | price on request>"
# The description is bounded so a page without prices is scanned in linear time.
DESC_LIMIT = 400
_PART = r"\d{4,6}(?:-[A-Z0-9]+)?"
_DESC_CHAR = r"(?:(?!" + _PART + r"\s+[A-Z])[^$])"
_ENTRY_RE = re.compile(
    r"(?<![\w.,$])(?P<part>" + _PART + r")\s+"
    r"(?P<desc>" + _DESC_CHAR + r"{1," + str(DESC_LIMIT) + r"}?)"
    r"[\s,;:\-]*(?:(?i:each|ea\.?|per\s+\w+)\s*)?"
    r"(?P<price>\$\s*\d[\d,]*(?:\.\d{1,2})?|(?i:price\s+on\s+request))"
)
_TARGET_WORD_RE = re.compile(r"\bTargets?\b")
_DIMENSION_MARKER_RE = re.compile(r"[Ø⌀]|\d\s*mm\b|O\.\s?D\.|\d\s*(?:\"|″|”)|\d\s*inch", re.IGNORECASE)
_MATERIAL_RE = re.compile(r"^(?P<material>.*?)[\s,\-]*\b(?:Sputter(?:ing)?\s+)?Targets?\b", re.IGNORECASE)
_PURITY_PCT_RE = re.compile(r"9\d(?:\.\d+)?\s*%")
_PURITY_N_RE = re.compile(r"(?<![\w.])\d\s?N\b")
_LENGTH = r"\d+(?:\.\d+)?\s*(?:mm\b|\"|″|”|inch(?:es)?\b)"
_DIAMETER_GLYPH_RE = re.compile(r"[Ø⌀]\s*(\d+(?:\.\d+)?\s*(?:mm\b|\"|″|”|inch(?:es)?\b)?)", re.IGNORECASE)
_DIAMETER_WORD_RE = re.compile(r"(" + _LENGTH + r")\s*(?:dia\b\.?|diameter)", re.IGNORECASE)
_THICKNESS_RE = re.compile(
    r"(?<![A-Za-z])[x×]\s*(\d+(?:\.\d+)?\s*(?:mm|[µμu]m|microns?)\b)", re.IGNORECASE
)
_OD_VALUE_RE = re.compile(r"(\d+(?:\.\d+)?\s*(?:mm\b|\"|″|”)?)\s*O\.\s?D\.?", re.IGNORECASE)
_ID_VALUE_RE = re.compile(r"(\d+(?:\.\d+)?\s*(?:mm\b|\"|″|”)?)\s*I\.\s?D\.?", re.IGNORECASE)
_BACKING_RE = re.compile(r"\b([A-Za-z]+)\s+backing(?:\s+plate)?\b", re.IGNORECASE)
_BONDED_RE = re.compile(r"\bbonded\b", re.IGNORECASE)

_DOM_SELECTOR = '[class*="product"], [class*="item"], tr, .row'
_DOM_PART_RE = re.compile(r"(?<![\w.,])(\d{4,5})(?!\w|[.,]\d)")


def _as_soup(content: Content) -> BeautifulSoup:
    if isinstance(content, BeautifulSoup):
        return content
    return BeautifulSoup(content or "", "lxml")


def _text(el: Tag) -> str:
    return " ".join(el.get_text(" ", strip=True).split())


def _derive_notes(material: str, text: str = "", *, is_new: bool = False) -> Tuple[str, ...]:
    notes = []
    if is_new:
        notes.append("new product")
    if _COMPOUND_RE.search(material or ""):
        notes.append("compound material")
    if _BONDED_RE.search(text or ""):
        notes.append("bonded")
    return tuple(notes)


# -----------------------------
# Structured tables
# -----------------------------
def _heading_diameter(table: Tag) -> Optional[str]:
    """Diameter text of the nearest heading before the table, if that heading is "<n> mm"."""
    for heading in table.find_all_previous(_HEADING_TAGS):
        if heading.find_parent("table") is not None:
            continue
        m = _HEADING_DIAMETER_RE.search(_text(heading))
        return m.group(0) if m else None
    return None


def _is_annular_table(table: Tag) -> bool:
    text = _text(table)
    return "annular" in text.lower() or has_annular_markers(text)


def _data_rows(table: Tag) -> Iterator[List[str]]:
    for row in table.find_all("tr"):
        if row.find_parent("table") is not table:
            continue
        if row.find("th") is not None:
            continue
        yield [_text(td) for td in row.find_all("td", recursive=False)]


def _split_purity(cell: str) -> Tuple[Optional[str], Optional[str]]:
    """Return (purity, alloy_ratio); alloy tables put "80/20" where purity normally goes."""
    if _RATIO_RE.match(cell) or _ALLOY_RE.fullmatch(cell.strip()):
        return None, cell
    return cell or None, None


def _disc_rows(table: Tag, diameter: str) -> Iterator[CandidateRecord]:
    for cells in _data_rows(table):
        if len(cells) < MIN_DISC_COLUMNS:
            continue
        part_number, material = cells[0], cells[1]
        if not part_number or not material:
            continue
        purity, alloy_ratio = _split_purity(cells[2])
        yield CandidateRecord(
            part_number=part_number,
            material=material,
            strategy=Strategy.TABLE,
            shape=RAW_DISC,
            purity=purity,
            diameter=diameter,
            thickness=cells[3] if len(cells) > 3 else None,
            alloy_ratio=alloy_ratio,
            notes=_derive_notes(material),
            raw_excerpt=excerpt(" ".join(cells)),
        )


def _annular_rows(table: Tag) -> Iterator[CandidateRecord]:
    for cells in _data_rows(table):
        if len(cells) < MIN_ANNULAR_COLUMNS:
            continue
        part_number, material = cells[0], cells[1]
        if not part_number or not material:
            continue
        yield CandidateRecord(
            part_number=part_number,
            material=material,
            strategy=Strategy.TABLE,
            shape=RAW_ANNULAR,
            outer_diameter=cells[2],
            inner_diameter=cells[3],
            thickness=cells[4] if len(cells) > 4 else None,
            notes=_derive_notes(material),
            raw_excerpt=excerpt(" ".join(cells)),
        )


def extract_table_candidates(content: Content, diameter_context: Optional[str] = None) -> Iterator[CandidateRecord]:
    """Yield candidates from product tables.

    A table with O.D./I.D. markers is read as annular; any other table needs a
    diameter, taken from the nearest preceding "<n> mm" heading or, failing
    that, from diameter_context. Tables with neither are skipped.
    """
    soup = _as_soup(content)
    for table in soup.find_all("table"):
        if _is_annular_table(table):
            yield from _annular_rows(table)
            continue
        diameter = _heading_diameter(table) or diameter_context
        if diameter:
            yield from _disc_rows(table, diameter)


# -----------------------------
# Free-text entries
# -----------------------------
def _first_group(regex: re.Pattern, text: str) -> Optional[str]:
    m = regex.search(text)
    return m.group(1).strip() if m else None


def _parse_entry(match: re.Match) -> Optional[CandidateRecord]:
    desc = " ".join(match.group("desc").split())
    if not _DIMENSION_MARKER_RE.search(desc):
        return None
    m = _MATERIAL_RE.search(desc)
    if not m:
        return None
    material = m.group("material")
    is_new = bool(_NEW_RE.match(material))
    material = _NEW_RE.sub("", material).strip(" ,;:-")
    if not material:
        return None

    purity_match = _PURITY_PCT_RE.search(desc) or _PURITY_N_RE.search(desc)
    shape = RAW_DISC
    diameter = _first_group(_DIAMETER_GLYPH_RE, desc) or _first_group(_DIAMETER_WORD_RE, desc)
    outer = inner = None
    if has_annular_markers(desc):
        shape = RAW_ANNULAR
        diameter = None
        outer = _first_group(_OD_VALUE_RE, desc)
        inner = _first_group(_ID_VALUE_RE, desc)
    elif diameter is None:
        shape = RAW_UNKNOWN

    backing = _BACKING_RE.search(desc)
    alloy = _ALLOY_RE.search(desc)
    price = match.group("price")
    on_request = not price.lstrip().startswith("$")
    return CandidateRecord(
        part_number=match.group("part"),
        material=material,
        strategy=Strategy.TEXT,
        shape=shape,
        purity=purity_match.group(0) if purity_match else None,
        diameter=diameter,
        outer_diameter=outer,
        inner_diameter=inner,
        thickness=_first_group(_THICKNESS_RE, desc),
        backing_plate=f"{backing.group(1).capitalize()} backing plate" if backing else None,
        alloy_ratio=alloy.group(0) if alloy else None,
        price=None if on_request else price,
        price_notes="Price on request" if on_request else None,
        notes=_derive_notes(material, desc, is_new=is_new),
        raw_excerpt=excerpt(match.group(0)),
    )


def _entries(text: str) -> Iterator[re.Match]:
    """Entry matches whose description names a Target.

    A match without one is retried from the next character, so a part number
    inside it can still start an entry of its own.
    """
    pos = 0
    while True:
        match = _ENTRY_RE.search(text, pos)
        if match is None:
            return
        if _TARGET_WORD_RE.search(match.group("desc")):
            yield match
            pos = match.end()
        else:
            pos = match.start() + 1


def extract_text_candidates(content: Content) -> Iterator[CandidateRecord]:
    """Yield candidates from "<part> <description> <price>" entries in the page text."""
    soup = _as_soup(content)
    text = " ".join(soup.get_text(" ").split())
    for match in _entries(text):
        candidate = _parse_entry(match)
        if candidate is not None:
            yield candidate


# -----------------------------
# DOM fallback
# -----------------------------
def extract_dom_candidates(content: Content) -> Iterator[CandidateRecord]:
    """Low-confidence last resort: any row-like element holding a bare 4-5 digit number."""
    soup = _as_soup(content)
    for el in soup.select(_DOM_SELECTOR):
        text = _text(el)
        m = _DOM_PART_RE.search(text)
        if not m:
            continue
        yield CandidateRecord(
            part_number=m.group(1),
            material=UNKNOWN_MATERIAL,
            strategy=Strategy.DOM,
            shape=RAW_UNKNOWN,
            raw_excerpt=excerpt(text),
        )


def extract_candidates(content: Content, diameter_context: Optional[str] = None) -> List[CandidateRecord]:
    """Run every strategy over the page, in table, text, dom order.

    The DOM fallback only runs when the table and text strategies found nothing.
    """
    soup = _as_soup(content)
    table = list(extract_table_candidates(soup, diameter_context))
    text = list(extract_text_candidates(soup))
    logger.info("Extracted %d table candidates and %d text candidates", len(table), len(text))
    if table or text:
        return table + text
    dom = list(extract_dom_candidates(soup))
    logger.warning("No structured candidates; DOM fallback produced %d", len(dom))
    return dom
