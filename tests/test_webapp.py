"""Tests for the Flask web interface."""
import io
import unittest

from finance_dashboard import store
from finance_dashboard.config import AppConfig
from finance_dashboard.webapp import _bar_width, create_app


class WebAppTestCase(unittest.TestCase):
    def setUp(self):
        self.app = create_app(AppConfig(database_uri="sqlite://", secret_key="test"), {"TESTING": True})
        self.client = self.app.test_client()

    def signup(self, username="alice", email="alice@example.com", password="secret"):
        return self.client.post(
            "/signup",
            data={"username": username, "email": email, "password": password},
            follow_redirects=True,
        )

    def add_account(self, bank_name="First National", account_type="checking", balance="100.50"):
        return self.client.post(
            "/accounts",
            data={"bank_name": bank_name, "account_type": account_type, "balance": balance},
            follow_redirects=True,
        )

    def first_account_id(self, user="alice"):
        with self.app.app_context():
            user_row = store.authenticate(user, "secret")
            return store.list_accounts(user_row.id)[0].id

    def add_transaction(self, **overrides):
        data = {
            "account_id": str(self.first_account_id()),
            "description": "Groceries",
            "category": "Food & Dining",
            "amount": "10",
            "transaction_type": "expense",
            "payment_method": "Debit card",
            "transaction_date": "",
        }
        data.update(overrides)
        return self.client.post("/transactions", data=data, follow_redirects=True)


class TestAuth(WebAppTestCase):
    """Test session gating and login."""

    def test_pages_redirect_to_login_without_session(self):
        for path in ("/", "/accounts", "/transactions", "/analytics", "/insights", "/settings", "/api/summary"):
            with self.subTest(path=path):
                resp = self.client.get(path)
                self.assertEqual(resp.status_code, 302)
                self.assertIn("/login", resp.headers["Location"])

    def test_signup_logs_in(self):
        resp = self.signup()
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b"Welcome back, alice", resp.data)

    def test_duplicate_signup(self):
        self.signup()
        self.client.post("/logout")
        resp = self.signup(email="again@example.com")
        self.assertIn(b"Username or email already exists.", resp.data)

    def test_login_logout(self):
        self.signup()
        resp = self.client.post("/logout", follow_redirects=True)
        self.assertIn(b"Logged out successfully", resp.data)
        resp = self.client.post("/login", data={"login": "alice", "password": "nope"}, follow_redirects=True)
        self.assertIn(b"Invalid credentials.", resp.data)
        resp = self.client.post("/login", data={"login": "alice@example.com", "password": "secret"}, follow_redirects=True)
        self.assertIn(b"Dashboard", resp.data)

    def test_stale_session_redirects(self):
        with self.client.session_transaction() as sess:
            sess["user_id"] = 999
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 302)


class TestAccountsPage(WebAppTestCase):
    """Test adding and deleting accounts."""

    def setUp(self):
        super().setUp()
        self.signup()

    def test_add_account(self):
        resp = self.add_account()
        self.assertIn(b"Account added successfully", resp.data)
        self.assertIn(b"First National", resp.data)
        self.assertIn(b"$100.50", resp.data)

    def test_add_account_validation(self):
        resp = self.add_account(balance="lots")
        self.assertIn(b"Balance must be a valid number.", resp.data)
        self.assertIn(b"No accounts yet.", resp.data)

    def test_add_account_rejects_oversized_balance(self):
        resp = self.add_account(balance="1e30")
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b"Balance is too large.", resp.data)
        self.assertIn(b"No accounts yet.", resp.data)

    def test_delete_account(self):
        self.add_account()
        account_id = self.first_account_id()
        resp = self.client.post(f"/accounts/{account_id}/delete", follow_redirects=True)
        self.assertIn(b"Account deleted successfully", resp.data)
        resp = self.client.post(f"/accounts/{account_id}/delete", follow_redirects=True)
        self.assertIn(b"Failed to delete account", resp.data)

    def test_cannot_delete_other_users_account(self):
        self.add_account()
        account_id = self.first_account_id()
        self.client.post("/logout")
        self.signup("bob", "bob@example.com")
        resp = self.client.post(f"/accounts/{account_id}/delete", follow_redirects=True)
        self.assertIn(b"Failed to delete account", resp.data)


class TestTransactionsPage(WebAppTestCase):
    """Test recording, filtering and deleting transactions."""

    def setUp(self):
        super().setUp()
        self.signup()
        self.add_account()

    def test_add_transaction(self):
        resp = self.add_transaction()
        self.assertIn(b"Transaction added successfully", resp.data)
        self.assertIn(b"Groceries", resp.data)
        self.assertIn(b"-$10.00", resp.data)

    def test_add_transaction_validation(self):
        resp = self.add_transaction(amount="abc", description="Broken")
        self.assertIn(b"Amount must be a valid number.", resp.data)
        self.assertIn(b"No transactions found.", resp.data)
        # form keeps what was typed
        self.assertIn(b'value="Broken"', resp.data)

    def test_add_transaction_rejects_oversized_amount(self):
        resp = self.add_transaction(amount="1" + "0" * 30)
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b"Amount is too large.", resp.data)
        self.assertIn(b"No transactions found.", resp.data)

    def test_search_and_category_filter(self):
        self.add_transaction(description="Morning Coffee", category="Food & Dining")
        self.add_transaction(description="Electric bill", category="Bills", amount="60")
        resp = self.client.get("/transactions?q=coffee")
        self.assertIn(b"Morning Coffee", resp.data)
        self.assertNotIn(b"Electric bill", resp.data)
        resp = self.client.get("/transactions?category=Bills")
        self.assertIn(b"Electric bill", resp.data)
        self.assertNotIn(b"Morning Coffee", resp.data)

    def test_delete_transaction(self):
        self.add_transaction(description="TempItem")
        with self.app.app_context():
            user = store.authenticate("alice", "secret")
            txn_id = store.list_transactions(user.id)[0].id
        resp = self.client.post(f"/transactions/{txn_id}/delete", follow_redirects=True)
        self.assertIn(b"Transaction deleted successfully", resp.data)
        self.assertNotIn(b"TempItem", resp.data)
        resp = self.client.post("/transactions/999999/delete", follow_redirects=True)
        self.assertIn(b"Failed to delete transaction", resp.data)

    def test_import_csv(self):
        csv_bytes = b"Date,Description,Amount\n2024-02-09,Uber Trip,-23.10\n2024-02-10,Payroll,4200\n"
        resp = self.client.post(
            "/transactions/import",
            data={"account_id": str(self.first_account_id()), "csv_file": (io.BytesIO(csv_bytes), "bank.csv")},
            content_type="multipart/form-data",
            follow_redirects=True,
        )
        self.assertIn(b"Imported 2 transactions from bank.csv", resp.data)
        self.assertIn(b"Uber Trip", resp.data)
        with self.app.app_context():
            user = store.authenticate("alice", "secret")
            categories = {t.description: t.category for t in store.list_transactions(user.id)}
        self.assertEqual(categories, {"Uber Trip": "Transport", "Payroll": "Salary"})

    def test_import_rejects_bad_csv(self):
        resp = self.client.post(
            "/transactions/import",
            data={"account_id": str(self.first_account_id()), "csv_file": (io.BytesIO(b"date,amount\n"), "bad.csv")},
            content_type="multipart/form-data",
            follow_redirects=True,
        )
        self.assertIn(b"Missing required columns", resp.data)
        resp = self.client.post("/transactions/import", data={}, follow_redirects=True)
        self.assertIn(b"Please choose a CSV file to upload.", resp.data)


class TestDashboardAndAnalytics(WebAppTestCase):
    """Test aggregate pages and the JSON summary."""

    def setUp(self):
        super().setUp()
        self.signup()
        self.add_account(balance="100.50")
        self.add_account(bank_name="Metro Card", account_type="credit", balance="-20.25")
        self.add_transaction(description="Payroll", category="Salary", amount="1000",
                             transaction_type="income", transaction_date="2024-03-05")
        self.add_transaction(description="Groceries", category="Food & Dining", amount="10",
                             transaction_date="2024-01-10")
        self.add_transaction(description="Takeaway", category="Food & Dining", amount="15",
                             transaction_date="2024-01-20")

    def test_dashboard(self):
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b"$80.25", resp.data)
        self.assertIn(b"$1,000.00", resp.data)
        self.assertIn(b"$25.00", resp.data)
        self.assertIn(b"$975.00", resp.data)

    def test_analytics(self):
        resp = self.client.get("/analytics")
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b"Food &amp; Dining", resp.data)

    def test_api_summary(self):
        resp = self.client.get("/api/summary?reference_date=2024-03-15")
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["total_balance"], 80.25)
        self.assertEqual(data["totals"], {"income": 1000.0, "expense": 25.0, "net": 975.0})
        self.assertEqual(data["category_totals"], [{"name": "Food & Dining", "value": 25.0}])
        self.assertEqual(len(data["monthly"]), 6)
        self.assertEqual(data["monthly"][3], {"month": "Jan", "period": "2024-01", "income": 0.0, "expense": 25.0})

    def test_api_summary_bad_date(self):
        resp = self.client.get("/api/summary?reference_date=15/03/2024")
        self.assertEqual(resp.status_code, 400)

    def test_settings(self):
        resp = self.client.get("/settings")
        self.assertIn(b"alice@example.com", resp.data)


class TestInsightsPage(WebAppTestCase):
    """Test generating insights from the page."""

    def setUp(self):
        super().setUp()
        self.signup()

    def test_generate(self):
        resp = self.client.get("/insights")
        self.assertIn(b"Generate Your First Insight", resp.data)
        resp = self.client.post("/insights/generate", follow_redirects=True)
        self.assertIn(b"Insights generated successfully!", resp.data)
        self.assertIn(b"No transactions yet.", resp.data)


class TestBarWidth(unittest.TestCase):
    """Test chart bar widths."""

    def test_width_is_clamped(self):
        self.assertEqual(_bar_width(25, 100), 25)
        self.assertEqual(_bar_width(150, 100), 100)
        self.assertEqual(_bar_width(-40, 100), 0)
        self.assertEqual(_bar_width(5, -10), 0)
        self.assertEqual(_bar_width(5, 0), 0)


if __name__ == "__main__":
    unittest.main()
