import os
import time
import unittest

from targetcatalog.ingestion.extractors import (
    extract_candidates,
    extract_dom_candidates,
    extract_table_candidates,
    extract_text_candidates,
)
from targetcatalog.ingestion.target_types import UNKNOWN_MATERIAL, Strategy


FIXTURE = os.path.join(os.path.dirname(__file__), "fixtures", "catalog_page.html")


def _load_fixture() -> str:
    with open(FIXTURE, "r", encoding="utf-8") as f:
        return f.read()


class TestTableStrategy(unittest.TestCase):
    def test_disc_row_gets_heading_diameter(self):
        html = (
            "<h3>62mm</h3><table>"
            "<tr><th>Part</th><th>Material</th><th>Purity</th><th>Thickness</th></tr>"
            "<tr><td>91700</td><td>Gold</td><td>99.99%</td><td>0.1mm</td></tr>"
            "</table>"
        )
        cands = list(extract_table_candidates(html))
        self.assertEqual(len(cands), 1)
        c = cands[0]
        self.assertEqual(c.part_number, "91700")
        self.assertEqual(c.material, "Gold")
        self.assertEqual(c.purity, "99.99%")
        self.assertEqual(c.diameter, "62mm")
        self.assertEqual(c.thickness, "0.1mm")
        self.assertEqual(c.shape, "disc")
        self.assertEqual(c.strategy, Strategy.TABLE)

    def test_table_without_diameter_context_is_skipped(self):
        html = "<h3>Accessories</h3><table><tr><td>91700</td><td>Gold</td><td>99.99%</td></tr></table>"
        self.assertEqual(list(extract_table_candidates(html)), [])

    def test_declared_diameter_context_used_without_heading(self):
        html = "<table><tr><td>92100</td><td>Gold</td><td>99.99%</td><td>0.1mm</td></tr></table>"
        cands = list(extract_table_candidates(html, diameter_context="50mm"))
        self.assertEqual(cands[0].diameter, "50mm")

    def test_short_and_sparse_rows_dropped(self):
        html = (
            "<h3>62mm</h3><table>"
            "<tr><td>91700</td><td>Gold</td></tr>"
            "<tr><td>91701</td><td></td><td>99.99%</td></tr>"
            "<tr><td></td><td>Gold</td><td>99.99%</td></tr>"
            "</table>"
        )
        self.assertEqual(list(extract_table_candidates(html)), [])

    def test_annular_table(self):
        html = (
            "<h3>Annular Targets</h3><table>"
            "<tr><th>Part</th><th>Material</th><th>O.D.</th><th>I.D.</th><th>Thickness</th></tr>"
            "<tr><td>93010</td><td>Silver</td><td>60mm</td><td>20mm</td><td>0.1mm</td></tr>"
            "<tr><td>93011</td><td>Silver</td><td>60mm</td></tr>"
            "</table>"
        )
        cands = list(extract_table_candidates(html))
        self.assertEqual(len(cands), 1)
        self.assertEqual(cands[0].shape, "annular")
        self.assertEqual((cands[0].outer_diameter, cands[0].inner_diameter), ("60mm", "20mm"))
        self.assertIsNone(cands[0].diameter)

    def test_alloy_ratio_in_purity_column(self):
        html = "<h3>57mm</h3><table><tr><td>94000</td><td>Gold/Palladium</td><td>80/20</td><td>0.1mm</td></tr></table>"
        c = list(extract_table_candidates(html))[0]
        self.assertIsNone(c.purity)
        self.assertEqual(c.alloy_ratio, "80/20")
        self.assertIn("compound material", c.notes)

    def test_lowercase_id_header_is_still_a_disc_table(self):
        html = (
            "<h3>62mm</h3><table>"
            "<tr><th>Part id</th><th>Material</th><th>Purity</th><th>Thickness (od side)</th></tr>"
            "<tr><td>91700</td><td>Gold</td><td>99.99%</td><td>0.1mm</td></tr>"
            "</table>"
        )
        cands = list(extract_table_candidates(html))
        self.assertEqual(len(cands), 1)
        self.assertEqual(cands[0].shape, "disc")
        self.assertEqual(cands[0].diameter, "62mm")


class TestTextStrategy(unittest.TestCase):
    def test_annular_entry_with_price(self):
        text = "93000 Gold Target, 99.99% Au (60mm O.D. / 20mm I.D.) each $1,200.00"
        cands = list(extract_text_candidates(text))
        self.assertEqual(len(cands), 1)
        c = cands[0]
        self.assertEqual(c.part_number, "93000")
        self.assertEqual(c.material, "Gold")
        self.assertEqual(c.purity, "99.99%")
        self.assertEqual(c.shape, "annular")
        self.assertEqual(c.outer_diameter, "60mm")
        self.assertEqual(c.inner_diameter, "20mm")
        self.assertIsNone(c.diameter)
        self.assertEqual(c.price, "$1,200.00")
        self.assertEqual(c.strategy, Strategy.TEXT)

    def test_od_id_pair_discards_single_diameter(self):
        text = "93020 Platinum Target, Ø57mm, 57mm O.D. / 18mm I.D. $900.00"
        c = list(extract_text_candidates(text))[0]
        self.assertEqual(c.shape, "annular")
        self.assertIsNone(c.diameter)
        self.assertEqual((c.outer_diameter, c.inner_diameter), ("57mm", "18mm"))

    def test_disc_entry_fields(self):
        text = '92500 New! Platinum Target, Ø2.4" x 0.2mm, 5N, Copper backing plate, $450.00'
        c = list(extract_text_candidates(text))[0]
        self.assertEqual(c.material, "Platinum")
        self.assertEqual(c.diameter, '2.4"')
        self.assertEqual(c.thickness, "0.2mm")
        self.assertEqual(c.purity, "5N")
        self.assertEqual(c.backing_plate, "Copper backing plate")
        self.assertIn("new product", c.notes)

    def test_price_on_request(self):
        text = "92600 Chromium Target, Ø50mm x 3mm, 99.95% price on request"
        c = list(extract_text_candidates(text))[0]
        self.assertIsNone(c.price)
        self.assertEqual(c.price_notes, "Price on request")
        self.assertEqual(c.thickness, "3mm")

    def test_entry_without_material_is_skipped(self):
        self.assertEqual(list(extract_text_candidates("92700 Target, Ø50mm $100.00")), [])

    def test_entry_without_dimension_is_skipped(self):
        self.assertEqual(list(extract_text_candidates("92800 Gold Target, 99.99% $100.00")), [])

    def test_multiple_entries(self):
        text = (
            "93000 Gold Target, 99.99% Au (60mm O.D. / 20mm I.D.) each $1,200.00 "
            "91700 Platinum Target, Ø62mm x 0.1mm, 99.95% $300.00"
        )
        parts = [c.part_number for c in extract_text_candidates(text)]
        self.assertEqual(parts, ["93000", "91700"])

    def test_unpriced_page_scans_in_linear_time(self):
        rows = " ".join(f"{10000 + i} gold sputter target 62mm x 0.1mm" for i in range(5000))
        started = time.perf_counter()
        cands = list(extract_text_candidates(f"<p>{rows}</p>"))
        elapsed = time.perf_counter() - started
        self.assertEqual(cands, [])
        self.assertLess(elapsed, 5.0)

    def test_non_dollar_prices_are_not_entries(self):
        rows = " ".join(f"{20000 + i} Gold Target, Ø62mm x 0.1mm, 99.99% €{100 + i}" for i in range(2000))
        started = time.perf_counter()
        self.assertEqual(list(extract_text_candidates(rows)), [])
        self.assertLess(time.perf_counter() - started, 5.0)

    def test_priced_entry_after_long_unpriced_run(self):
        filler = " ".join(f"{30000 + i} gold sputter target 62mm" for i in range(1000))
        text = filler + " 91700 Platinum Target, Ø62mm x 0.1mm, 99.95% $300.00"
        parts = [c.part_number for c in extract_text_candidates(text)]
        self.assertEqual(parts, ["91700"])


class TestDomFallback(unittest.TestCase):
    def test_bare_part_number(self):
        html = "<table><tr><td>91234</td></tr></table>"
        cands = list(extract_dom_candidates(html))
        self.assertEqual(len(cands), 1)
        self.assertEqual(cands[0].part_number, "91234")
        self.assertEqual(cands[0].material, UNKNOWN_MATERIAL)
        self.assertEqual(cands[0].strategy, Strategy.DOM)
        self.assertIsNone(cands[0].diameter)

    def test_ignores_decimals_and_long_numbers(self):
        html = '<div class="row">0.1234 and 123456</div>'
        self.assertEqual(list(extract_dom_candidates(html)), [])


class TestExtractCandidates(unittest.TestCase):
    def test_fixture_page(self):
        cands = extract_candidates(_load_fixture())
        by_strategy = {}
        for c in cands:
            by_strategy.setdefault(c.strategy, []).append(c.part_number)
        self.assertEqual(by_strategy[Strategy.TABLE], ["91700", "91701", "91710", "91900", "94000", "93010"])
        self.assertEqual(by_strategy[Strategy.TEXT], ["93000", "92500", "91700"])
        self.assertNotIn(Strategy.DOM, by_strategy)

    def test_dom_fallback_only_when_nothing_else(self):
        cands = extract_candidates("<html><body><table><tr><td>91234</td></tr></table></body></html>")
        self.assertEqual([c.strategy for c in cands], [Strategy.DOM])

    def test_no_candidates(self):
        self.assertEqual(extract_candidates("<html><body><p>Nothing to see</p></body></html>"), [])


if __name__ == "__main__":
    unittest.main()
