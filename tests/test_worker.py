import io
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest import mock

import catalog_ingest_worker
from targetcatalog.config import IngestSettings
from targetcatalog.errors import ContentFetchError
from targetcatalog.storage.sqlite_repo import SQLiteCatalogRepo


FIXTURE = os.path.join(os.path.dirname(__file__), "fixtures", "catalog_page.html")


class TestWorker(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.settings = IngestSettings(store="sqlite", sqlite_path=os.path.join(self.tmpdir, "catalog.db"))

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_run_once_from_saved_page(self):
        out = io.StringIO()
        with redirect_stdout(out):
            report = catalog_ingest_worker.run_once(self.settings, html_file=FIXTURE)
        self.assertEqual(report.inserted, 8)
        lines = out.getvalue().splitlines()
        self.assertTrue(lines[0].startswith("[ingest] candidates=9"))
        self.assertEqual(sum(1 for line in lines if line.startswith("[ingest] sample")), 3)

    def test_fetch_failure_is_reported_not_raised(self):
        with mock.patch.object(
            catalog_ingest_worker, "fetch_page", side_effect=ContentFetchError("https://x", "http_503")
        ):
            with self.assertLogs("catalog_ingest", level="ERROR"):
                self.assertFalse(catalog_ingest_worker._run_logged(self.settings))

    def test_main_exit_codes(self):
        env = {"CATALOG_STORE": "sqlite", "CATALOG_SQLITE_PATH": self.settings.sqlite_path}
        with mock.patch.dict(os.environ, env), mock.patch.object(catalog_ingest_worker, "load_dotenv"):
            with redirect_stdout(io.StringIO()):
                self.assertEqual(catalog_ingest_worker.main(["--html-file", FIXTURE]), 0)
                empty = os.path.join(self.tmpdir, "empty.html")
                with open(empty, "w", encoding="utf-8") as f:
                    f.write("<html><body><p>No products</p></body></html>")
                with self.assertLogs("catalog_ingest", level="ERROR"):
                    self.assertEqual(catalog_ingest_worker.main(["--html-file", empty]), 1)

    def test_migrate_sqlite(self):
        out = io.StringIO()
        with redirect_stdout(out):
            catalog_ingest_worker.migrate(self.settings)
        self.assertIn("[migrate] schema ready (sqlite)", out.getvalue())
        self.assertTrue(os.path.exists(self.settings.sqlite_path))

    def test_missing_html_file_is_reported_not_raised(self):
        missing = os.path.join(self.tmpdir, "nope.html")
        with self.assertRaises(ContentFetchError):
            catalog_ingest_worker.run_once(self.settings, html_file=missing)
        with self.assertLogs("catalog_ingest", level="ERROR"):
            self.assertFalse(catalog_ingest_worker._run_logged(self.settings, missing))

    def test_seed_mode_loads_sample_catalog(self):
        env = {"CATALOG_STORE": "sqlite", "CATALOG_SQLITE_PATH": self.settings.sqlite_path, "INGEST_MODE": "seed"}
        out = io.StringIO()
        with mock.patch.dict(os.environ, env), mock.patch.object(catalog_ingest_worker, "load_dotenv"):
            with redirect_stdout(out):
                self.assertEqual(catalog_ingest_worker.main([]), 0)
                self.assertEqual(catalog_ingest_worker.main([]), 0)
        self.assertIn("[seed] inserted=23 updated=0 failed=0", out.getvalue())
        self.assertIn("[seed] inserted=0 updated=23 failed=0", out.getvalue())

        store = SQLiteCatalogRepo(self.settings.sqlite_path)
        self.assertEqual(store.count_sources(), 1)
        ring = store.get_target("93020")
        self.assertEqual(ring["target_type"], "annular")
        self.assertEqual((ring["outer_diameter_mm"], ring["inner_diameter_mm"]), (57.0, 18.0))
        self.assertIsNone(ring["diameter_mm"])
        alloy = store.get_target("94010")
        self.assertEqual(alloy["alloy_ratio"], "60% Au / 40% Pd")
        self.assertEqual(alloy["diameter_mm"], 57.0)


if __name__ == "__main__":
    unittest.main()
