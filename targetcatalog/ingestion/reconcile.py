"""Collapse per-strategy candidates into one normalized record per part number."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from targetcatalog.ingestion.normalize import normalize_candidate
from targetcatalog.ingestion.target_types import STRATEGY_RANK, CandidateRecord, NormalizedRecord

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    records: List[NormalizedRecord] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)  # part numbers without a usable material


def select_winner(group: List[Tuple[int, CandidateRecord]]) -> CandidateRecord:
    """Best strategy rank wins; within a rank the last emitted candidate wins."""
    _, winner = min(group, key=lambda item: (STRATEGY_RANK[item[1].strategy], -item[0]))
    return winner


def reconcile(candidates: Iterable[CandidateRecord], *, allow_bare: bool = True) -> ReconcileResult:
    groups: Dict[str, List[Tuple[int, CandidateRecord]]] = {}
    for order, cand in enumerate(candidates):
        key = (cand.part_number or "").strip()
        if not key:
            continue
        groups.setdefault(key, []).append((order, cand))

    result = ReconcileResult()
    for key, group in groups.items():
        record = normalize_candidate(select_winner(group), allow_bare=allow_bare)
        if not record.material:
            logger.warning("Dropping %s: no material after normalization", key)
            result.dropped.append(key)
            continue
        result.records.append(record)
    return result
