"""Flask web interface for the Finance Dashboard."""

from __future__ import annotations

import datetime as dt
import io
from decimal import Decimal
from functools import wraps
from pathlib import Path
from typing import Dict, Optional

from flask import (
    Flask,
    flash,
    g,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from sqlalchemy.exc import SQLAlchemyError

from . import analytics as an
from . import store
from .categorizer import categorize_transactions
from .config import ACCOUNT_TYPES, AppConfig
from .data_loader import load_transactions_stream
from .exceptions import InsightGenerationError, NotFoundError, ValidationError
from .insights import generate_insights
from .logger import configure_logging, get_logger
from .models import db
from .reports import build_summary

PACKAGE_ROOT = Path(__file__).resolve().parent

logger = get_logger(__name__)


def _money(value) -> str:
    amount = an.to_decimal(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _bar_width(value, maximum) -> int:
    """Percent width for the CSS bar charts."""
    top = an.to_decimal(maximum)
    if top <= 0:
        return 0
    return int(max(Decimal(0), min(Decimal(100), an.to_decimal(value) / top * 100)))


def _parse_reference_date(value: Optional[str]) -> Optional[dt.date]:
    if not value:
        return None
    return dt.date.fromisoformat(value)


def login_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        if g.user is None:
            return redirect(url_for("login"))
        return view(**kwargs)

    return wrapped_view


def _load_logged_in_user() -> None:
    user_id = session.get("user_id")
    g.user = store.get_user(user_id)
    if user_id is not None and g.user is None:
        # Stale session: the user row is gone
        session.clear()


def create_app(config: Optional[AppConfig] = None, overrides: Optional[Dict[str, object]] = None) -> Flask:
    cfg = config or AppConfig.load()
    configure_logging(cfg.log_level, cfg.log_file)

    app = Flask(
        __name__,
        template_folder=str(PACKAGE_ROOT / "templates"),
    )
    app.config.update(cfg.flask_settings())
    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    app.before_request(_load_logged_in_user)
    app.add_template_filter(_money, "money")
    app.add_template_global(_bar_width, "bar_width")
    with app.app_context():
        db.create_all()

    @app.route("/signup", methods=["GET", "POST"])
    def signup():
        if g.user is not None:
            return redirect(url_for("dashboard"))
        form = {"username": "", "email": ""}
        if request.method == "POST":
            form["username"] = (request.form.get("username") or "").strip()
            form["email"] = (request.form.get("email") or "").strip()
            try:
                user = store.create_user(form["username"], form["email"], request.form.get("password") or "")
            except ValidationError as exc:
                flash(str(exc), "error")
            else:
                session.clear()
                session["user_id"] = user.id
                flash("Account created. Welcome!", "success")
                return redirect(url_for("dashboard"))
        return render_template("auth.html", mode="signup", form=form)

    @app.route("/login", methods=["GET", "POST"])
    def login():
        if g.user is not None:
            return redirect(url_for("dashboard"))
        form = {"login": ""}
        if request.method == "POST":
            form["login"] = (request.form.get("login") or "").strip()
            user = store.authenticate(form["login"], request.form.get("password") or "")
            if user is None:
                logger.info("Failed login attempt")
                flash("Invalid credentials.", "error")
            else:
                session.clear()
                session["user_id"] = user.id
                logger.info("User %s logged in", user.id)
                return redirect(url_for("dashboard"))
        return render_template("auth.html", mode="login", form=form)

    @app.route("/logout", methods=["POST"])
    @login_required
    def logout():
        session.clear()
        flash("Logged out successfully", "success")
        return redirect(url_for("login"))

    @app.route("/")
    @login_required
    def dashboard():
        user_id = g.user.id
        accounts = store.list_accounts(user_id)
        transactions = store.list_transactions(user_id)
        recent = store.list_transactions(user_id, limit=app.config["RECENT_LIMIT"])
        buckets = an.monthly_buckets(transactions)
        categories = an.category_totals(transactions)
        return render_template(
            "dashboard.html",
            total_balance=an.sum_balances(accounts),
            totals=an.totals_by_type(transactions),
            monthly=buckets,
            monthly_max=max((max(b.income, b.expense) for b in buckets), default=0),
            categories=categories,
            category_max=max((c.value for c in categories), default=0),
            recent=recent,
        )

    @app.route("/accounts", methods=["GET", "POST"])
    @login_required
    def accounts():
        user_id = g.user.id
        form = {"bank_name": "", "account_type": "", "balance": ""}
        if request.method == "POST":
            form = {key: (request.form.get(key) or "").strip() for key in form}
            try:
                store.create_account(user_id, form["bank_name"], form["account_type"], form["balance"])
            except ValidationError as exc:
                flash(str(exc), "error")
            except SQLAlchemyError:
                flash("Failed to add account", "error")
            else:
                flash("Account added successfully", "success")
                return redirect(url_for("accounts"))
        return render_template(
            "accounts.html",
            accounts=store.list_accounts(user_id),
            account_types=ACCOUNT_TYPES,
            form=form,
        )

    @app.route("/accounts/<int:account_id>/delete", methods=["POST"])
    @login_required
    def delete_account(account_id: int):
        try:
            deleted = store.delete_account(g.user.id, account_id)
        except SQLAlchemyError:
            deleted = False
        if deleted:
            flash("Account deleted successfully", "success")
        else:
            flash("Failed to delete account", "error")
        return redirect(url_for("accounts"))

    @app.route("/transactions", methods=["GET", "POST"])
    @login_required
    def transactions():
        user_id = g.user.id
        form = {
            "account_id": "",
            "description": "",
            "category": "",
            "amount": "",
            "transaction_type": "expense",
            "payment_method": "",
            "transaction_date": "",
        }
        if request.method == "POST":
            form = {key: (request.form.get(key) or default).strip() for key, default in form.items()}
            try:
                store.create_transaction(
                    user_id,
                    form["account_id"],
                    form["description"],
                    form["category"],
                    form["amount"],
                    form["transaction_type"],
                    payment_method=form["payment_method"],
                    transaction_date=form["transaction_date"] or None,
                )
            except (ValidationError, NotFoundError) as exc:
                flash(str(exc), "error")
            except SQLAlchemyError:
                flash("Failed to add transaction", "error")
            else:
                flash("Transaction added successfully", "success")
                return redirect(url_for("transactions"))

        search = request.args.get("q", "")
        category = request.args.get("category") or "all"
        rows = store.list_transactions(user_id)
        return render_template(
            "transactions.html",
            transactions=an.filter_transactions(rows, search, category),
            categories=an.distinct_categories(rows),
            suggested_categories=app.config["CATEGORIES"],
            accounts=store.list_accounts(user_id),
            search=search,
            selected_category=category,
            form=form,
        )

    @app.route("/transactions/import", methods=["POST"])
    @login_required
    def import_transactions():
        user_id = g.user.id
        file = request.files.get("csv_file")
        if not file or not file.filename:
            flash("Please choose a CSV file to upload.", "error")
            return redirect(url_for("transactions"))
        try:
            text_stream = file.read().decode("utf-8-sig")
        except UnicodeDecodeError:
            flash("Unable to decode the uploaded file. Ensure it is UTF-8 encoded.", "error")
            return redirect(url_for("transactions"))
        try:
            records = load_transactions_stream(io.StringIO(text_stream), label=file.filename)
            categorize_transactions(records, app.config["CATEGORY_RULES"])
            count = store.import_transactions(user_id, request.form.get("account_id", type=int), records)
        except (ValueError, ValidationError, NotFoundError) as exc:
            flash(str(exc), "error")
        except SQLAlchemyError:
            flash("Failed to import transactions", "error")
        else:
            flash(f"Imported {count} transactions from {file.filename}", "success")
        return redirect(url_for("transactions"))

    @app.route("/transactions/<int:transaction_id>/delete", methods=["POST"])
    @login_required
    def delete_transaction(transaction_id: int):
        try:
            deleted = store.delete_transaction(g.user.id, transaction_id)
        except SQLAlchemyError:
            deleted = False
        if deleted:
            flash("Transaction deleted successfully", "success")
        else:
            flash("Failed to delete transaction", "error")
        return redirect(url_for("transactions"))

    @app.route("/analytics")
    @login_required
    def analytics():
        transactions = store.list_transactions(g.user.id)
        buckets = an.monthly_buckets(transactions)
        categories = an.category_totals(transactions)
        return render_template(
            "analytics.html",
            totals=an.totals_by_type(transactions),
            monthly=buckets,
            monthly_max=max((max(b.income, b.expense) for b in buckets), default=0),
            categories=categories,
            category_max=max((c.value for c in categories), default=0),
        )

    @app.route("/insights")
    @login_required
    def insights():
        return render_template("insights.html", insights=store.list_insights(g.user.id))

    @app.route("/insights/generate", methods=["POST"])
    @login_required
    def insights_generate():
        try:
            generate_insights(g.user.id)
        except InsightGenerationError as exc:
            logger.exception("Insight generation failed for user %s", g.user.id)
            flash(str(exc), "error")
        else:
            flash("Insights generated successfully!", "success")
        return redirect(url_for("insights"))

    @app.route("/settings")
    @login_required
    def settings():
        user_id = g.user.id
        return render_template(
            "settings.html",
            user=g.user,
            account_count=len(store.list_accounts(user_id)),
            transaction_count=len(store.list_transactions(user_id)),
            categories=app.config["CATEGORIES"],
        )

    @app.route("/api/summary")
    @login_required
    def api_summary():
        try:
            reference = _parse_reference_date(request.args.get("reference_date"))
        except ValueError:
            return jsonify({"error": "reference_date must be in YYYY-MM-DD format"}), 400
        user_id = g.user.id
        summary = build_summary(store.list_accounts(user_id), store.list_transactions(user_id), reference)
        return jsonify(summary)

    logger.info("Finance Dashboard app created (database: %s)", app.config["SQLALCHEMY_DATABASE_URI"].split("://")[0])
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
