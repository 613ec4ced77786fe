"""Tests for the command-line report."""
import contextlib
import io
import json
import shutil
import tempfile
import unittest
from pathlib import Path

from finance_dashboard.cli import main

SAMPLE_DIR = Path(__file__).resolve().parent.parent / "sample_data"


class TestCli(unittest.TestCase):
    """Test the finance-dashboard command."""

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_report_with_exports(self):
        json_path = self.test_dir / "summary.json"
        csv_path = self.test_dir / "summary.csv"
        code, out, _ = self.run_cli(
            "--transactions", str(SAMPLE_DIR / "transactions.csv"),
            "--accounts", str(SAMPLE_DIR / "accounts.csv"),
            "--reference-date", "2024-03-15",
            "--json", str(json_path),
            "--csv", str(csv_path),
        )
        self.assertEqual(code, 0)
        self.assertIn("Total Balance: $12,010.55", out)
        summary = json.loads(json_path.read_text(encoding="utf-8"))
        self.assertEqual(summary["totals"]["income"], 12600.0)
        names = [c["name"] for c in summary["category_totals"]]
        # blank categories were filled in by the keyword rules
        self.assertIn("Transport", names)
        self.assertNotIn(None, names)
        self.assertEqual([m["month"] for m in summary["monthly"]], ["Oct", "Nov", "Dec", "Jan", "Feb", "Mar"])
        self.assertTrue(csv_path.read_text(encoding="utf-8").startswith("Section,Item,Metric,Value"))

    def test_bad_file_exits_with_error(self):
        bad = self.test_dir / "bad.csv"
        bad.write_text("date,amount\n2024-01-01,5\n", encoding="utf-8")
        code, _, err = self.run_cli("--transactions", str(bad))
        self.assertEqual(code, 2)
        self.assertIn("Missing required columns", err)

    def test_oversized_amount_exits_with_error(self):
        big = self.test_dir / "big.csv"
        big.write_text("date,description,amount\n2024-01-01,Windfall,1e30\n", encoding="utf-8")
        code, out, err = self.run_cli("--transactions", str(big))
        self.assertEqual(code, 2)
        self.assertIn("error:", err)
        self.assertIn("Amount out of range", err)
        self.assertEqual(out, "")

    def test_bad_reference_date(self):
        code, _, err = self.run_cli(
            "--transactions", str(SAMPLE_DIR / "transactions.csv"), "--reference-date", "March"
        )
        self.assertEqual(code, 2)
        self.assertIn("error:", err)


if __name__ == "__main__":
    unittest.main()
