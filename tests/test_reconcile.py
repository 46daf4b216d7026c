import os
import unittest

from targetcatalog.ingestion.extractors import extract_candidates
from targetcatalog.ingestion.reconcile import reconcile
from targetcatalog.ingestion.target_types import CandidateRecord, Strategy, TargetShape


FIXTURE = os.path.join(os.path.dirname(__file__), "fixtures", "catalog_page.html")


def _cand(part, material, strategy, **kw):
    return CandidateRecord(part_number=part, material=material, strategy=strategy, **kw)


class TestReconcile(unittest.TestCase):
    def test_table_beats_text(self):
        cands = [
            _cand("91700", "Gold", Strategy.TABLE, shape="disc", diameter="62mm"),
            _cand("91700", "Platinum", Strategy.TEXT, shape="disc", diameter="Ø62mm"),
        ]
        result = reconcile(cands)
        self.assertEqual(len(result.records), 1)
        self.assertEqual(result.records[0].material, "Gold")
        self.assertEqual(result.records[0].strategy, Strategy.TABLE)

    def test_precedence_independent_of_emission_order(self):
        cands = [
            _cand("91700", "Platinum", Strategy.TEXT),
            _cand("91700", "Unknown", Strategy.DOM),
            _cand("91700", "Gold", Strategy.TABLE),
        ]
        self.assertEqual(reconcile(cands).records[0].material, "Gold")

    def test_last_emitted_wins_within_strategy(self):
        cands = [
            _cand("91700", "Gold", Strategy.TABLE, diameter="62mm", shape="disc"),
            _cand("91700", "Silver", Strategy.TABLE, diameter="60mm", shape="disc"),
        ]
        rec = reconcile(cands).records[0]
        self.assertEqual(rec.material, "Silver")
        self.assertEqual(rec.diameter_mm, 60.0)

    def test_missing_material_dropped(self):
        cands = [
            _cand("91700", "Gold", Strategy.TABLE),
            _cand("91800", "   ", Strategy.TABLE),
        ]
        with self.assertLogs("targetcatalog.ingestion.reconcile", level="WARNING"):
            result = reconcile(cands)
        self.assertEqual([r.part_number for r in result.records], ["91700"])
        self.assertEqual(result.dropped, ["91800"])

    def test_part_numbers_are_case_sensitive(self):
        cands = [
            _cand("AB-100", "Gold", Strategy.TEXT),
            _cand("ab-100", "Silver", Strategy.TEXT),
        ]
        self.assertEqual(len(reconcile(cands).records), 2)

    def test_fixture_one_record_per_part_number(self):
        with open(FIXTURE, "r", encoding="utf-8") as f:
            cands = extract_candidates(f.read())
        result = reconcile(cands)
        parts = [r.part_number for r in result.records]
        self.assertEqual(len(parts), len(set(parts)))
        self.assertEqual(set(parts), {c.part_number for c in cands})
        self.assertEqual(len(parts), 8)

    def test_fixture_shape_invariant(self):
        with open(FIXTURE, "r", encoding="utf-8") as f:
            records = reconcile(extract_candidates(f.read())).records
        for r in records:
            has_pair = r.outer_diameter_mm is not None and r.inner_diameter_mm is not None
            if r.shape == TargetShape.ANNULAR:
                self.assertTrue(has_pair)
                self.assertIsNone(r.diameter_mm)
            else:
                self.assertFalse(has_pair and r.diameter_mm is None)
            if r.shape == TargetShape.DISC:
                self.assertIsNotNone(r.diameter_mm)
                self.assertIsNone(r.outer_diameter_mm)
                self.assertIsNone(r.inner_diameter_mm)
            if r.thickness_mm is not None:
                self.assertGreater(r.thickness_mm, 0)

    def test_deterministic(self):
        with open(FIXTURE, "r", encoding="utf-8") as f:
            html = f.read()
        first = reconcile(extract_candidates(html)).records
        second = reconcile(extract_candidates(html)).records
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
