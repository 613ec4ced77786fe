"""Tests for CSV loading and category suggestions."""
import io
import shutil
import tempfile
import unittest
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from finance_dashboard.categorizer import categorize_transactions, suggest_category
from finance_dashboard.config import DEFAULT_RULES
from finance_dashboard.data_loader import (
    load_accounts_stream,
    load_transactions_files,
    load_transactions_stream,
)


class TestTransactionLoader(unittest.TestCase):
    """Test transaction CSV parsing."""

    def test_type_column(self):
        stream = io.StringIO(
            "Date,Description,Amount,Type,Category,Payment Method\n"
            "2024-01-10,Groceries,86.40,expense,Food & Dining,Debit card\n"
            "01/31/2024,Payroll,\"4,200.00\",Income,,\n"
        )
        txns = load_transactions_stream(stream)
        self.assertEqual(len(txns), 2)
        self.assertEqual(txns[0].amount, Decimal("86.40"))
        self.assertEqual(txns[0].transaction_type, "expense")
        self.assertEqual(txns[0].payment_method, "Debit card")
        self.assertEqual(txns[1].transaction_date, datetime(2024, 1, 31))
        self.assertEqual(txns[1].amount, Decimal("4200.00"))
        self.assertEqual(txns[1].transaction_type, "income")
        self.assertIsNone(txns[1].category)

    def test_sign_decides_type_without_column(self):
        stream = io.StringIO("date,description,amount\n2024-02-01,Refund,12.00\n2024-02-02,Taxi,(23.10)\n")
        txns = load_transactions_stream(stream)
        self.assertEqual([(t.transaction_type, t.amount) for t in txns], [
            ("income", Decimal("12.00")),
            ("expense", Decimal("23.10")),
        ])

    def test_missing_columns(self):
        with self.assertRaises(ValueError):
            load_transactions_stream(io.StringIO("date,amount\n2024-01-01,5\n"))

    def test_bad_amount_reports_line(self):
        with self.assertRaises(ValueError) as ctx:
            load_transactions_stream(io.StringIO("date,description,amount\n2024-01-01,X,abc\n"), label="bank.csv")
        self.assertIn("bank.csv, line 2", str(ctx.exception))

    def test_oversized_amount_rejected(self):
        with self.assertRaises(ValueError) as ctx:
            load_transactions_stream(io.StringIO("date,description,amount\n2024-01-01,X,1e30\n"), label="bank.csv")
        self.assertIn("bank.csv, line 2: Amount out of range", str(ctx.exception))

    def test_unknown_type_rejected(self):
        with self.assertRaises(ValueError):
            load_transactions_stream(io.StringIO("date,description,amount,type\n2024-01-01,X,5,transfer\n"))

    def test_iso_timestamp_with_zone(self):
        txns = load_transactions_stream(io.StringIO("date,description,amount\n2024-01-01T23:30:00Z,X,-5\n"))
        self.assertEqual(txns[0].transaction_date, datetime(2024, 1, 1, 23, 30))

    def test_files_sorted_newest_first(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            a = tmp / "a.csv"
            b = tmp / "b.csv"
            a.write_text("date,description,amount\n2024-01-01,Old,-1\n", encoding="utf-8")
            b.write_text("date,description,amount\n2024-03-01,New,-1\n", encoding="utf-8")
            txns = load_transactions_files([a, b])
            self.assertEqual([t.description for t in txns], ["New", "Old"])
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestAccountLoader(unittest.TestCase):
    """Test account CSV parsing."""

    def test_accounts(self):
        stream = io.StringIO(
            "Bank Name,Account Type,Balance,Last Synced\n"
            "First National,Checking,100.50,2024-03-14\n"
            "Metro Card,credit,-20.25,\n"
        )
        accounts = load_accounts_stream(stream)
        self.assertEqual(accounts[0].account_type, "checking")
        self.assertEqual(accounts[0].last_synced, datetime(2024, 3, 14))
        self.assertEqual(accounts[1].balance, Decimal("-20.25"))
        self.assertIsNone(accounts[1].last_synced)

    def test_missing_balance(self):
        with self.assertRaises(ValueError):
            load_accounts_stream(io.StringIO("bank,type\nX,checking\n"))


class TestCategorizer(unittest.TestCase):
    """Test keyword category suggestions."""

    def test_keyword_match(self):
        self.assertEqual(suggest_category("UBER *TRIP 1234", "expense", DEFAULT_RULES), "Transport")
        self.assertEqual(suggest_category("Trader Joe's #55", "expense", DEFAULT_RULES), "Food & Dining")

    def test_keyword_must_be_whole_word(self):
        # "water" should not match inside "waterfront"
        self.assertEqual(suggest_category("Waterfront Gallery", "expense", DEFAULT_RULES), "Other")

    def test_income_fallback(self):
        self.assertEqual(suggest_category("Transfer from mom", "income", DEFAULT_RULES), "Salary")

    def test_existing_category_kept(self):
        stream = io.StringIO("date,description,amount,category\n2024-01-01,Uber,-5,Work Travel\n2024-01-02,Uber,-5,\n")
        txns = load_transactions_stream(stream)
        categorize_transactions(txns, DEFAULT_RULES)
        self.assertEqual([t.category for t in txns], ["Work Travel", "Transport"])


if __name__ == "__main__":
    unittest.main()
