"""User-scoped record store.

Every read and write takes the owning user's id; rows that belong to
somebody else behave as if they did not exist. Inputs coming from forms are
validated here and rejected with :class:`ValidationError`.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from . import data_loader
from .config import ACCOUNT_TYPES, MAX_AMOUNT, TRANSACTION_TYPES
from .exceptions import NotFoundError, ValidationError
from .logger import get_logger
from .models import Account, Insight, Transaction, User, db

logger = get_logger(__name__)


def _parse_amount(value, label: str, allow_negative: bool) -> Decimal:
    text = str(value if value is not None else "").replace(",", "").strip()
    if not text:
        raise ValidationError(f"{label} is required.")
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise ValidationError(f"{label} must be a valid number.") from exc
    if not amount.is_finite():
        raise ValidationError(f"{label} must be a valid number.")
    if not allow_negative and amount < 0:
        raise ValidationError(f"{label} cannot be negative.")
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(f"{label} is too large.")
    return amount.quantize(Decimal("0.01"))


def _parse_when(value) -> dt.datetime:
    if value is None or value == "":
        return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    try:
        return data_loader.parse_datetime(str(value))
    except ValueError as exc:
        raise ValidationError("Date must be in YYYY-MM-DD format.") from exc


def _commit() -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database commit failed")
        raise


# -- users -----------------------------------------------------------------


def get_user(user_id) -> Optional[User]:
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def create_user(username: str, email: str, password: str) -> User:
    username = (username or "").strip()
    email = (email or "").strip()
    errors: List[str] = []
    if not username:
        errors.append("Username is required.")
    if not email:
        errors.append("Email is required.")
    if not password:
        errors.append("Password is required.")
    if errors:
        raise ValidationError(" ".join(errors))
    user = User(username=username, email=email, password_hash=generate_password_hash(password))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ValidationError("Username or email already exists.") from exc
    logger.info("Created user %s", user.id)
    return user


def authenticate(login: str, password: str) -> Optional[User]:
    login = (login or "").strip()
    if not login:
        return None
    user = db.session.execute(
        db.select(User).where((User.username == login) | (User.email == login))
    ).scalar_one_or_none()
    if user is None or not check_password_hash(user.password_hash, password or ""):
        return None
    return user


# -- accounts --------------------------------------------------------------


def list_accounts(user_id) -> List[Account]:
    return list(
        db.session.execute(
            db.select(Account)
            .filter_by(user_id=user_id)
            .order_by(Account.created_at.desc(), Account.id.desc())
        ).scalars()
    )


def get_account(user_id, account_id) -> Optional[Account]:
    account = db.session.get(Account, account_id) if account_id is not None else None
    if account is None or account.user_id != user_id:
        return None
    return account


def create_account(user_id, bank_name: str, account_type: str, balance) -> Account:
    bank_name = (bank_name or "").strip()
    account_type = (account_type or "").strip().lower()
    if not bank_name:
        raise ValidationError("Bank name is required.")
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError(f"Account type must be one of: {', '.join(ACCOUNT_TYPES)}.")
    amount = _parse_amount(balance, "Balance", allow_negative=True)
    account = Account(user_id=user_id, bank_name=bank_name, account_type=account_type, balance=amount)
    db.session.add(account)
    _commit()
    logger.info("User %s added account %s", user_id, account.id)
    return account


def delete_account(user_id, account_id) -> bool:
    account = get_account(user_id, account_id)
    if account is None:
        return False
    db.session.delete(account)
    _commit()
    logger.info("User %s deleted account %s", user_id, account_id)
    return True


# -- transactions ----------------------------------------------------------


def list_transactions(user_id, limit: Optional[int] = None) -> List[Transaction]:
    query = (
        db.select(Transaction)
        .filter_by(user_id=user_id)
        .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
    )
    if limit:
        query = query.limit(limit)
    return list(db.session.execute(query).scalars())


def create_transaction(
    user_id,
    account_id,
    description: str,
    category: str,
    amount,
    transaction_type: str,
    payment_method: Optional[str] = None,
    transaction_date=None,
) -> Transaction:
    description = (description or "").strip()
    category = (category or "").strip()
    transaction_type = (transaction_type or "").strip().lower()
    if not description:
        raise ValidationError("Description is required.")
    if not category:
        raise ValidationError("Category is required.")
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError("Transaction type must be income or expense.")
    value = _parse_amount(amount, "Amount", allow_negative=False)
    when = _parse_when(transaction_date)
    try:
        account_key = int(account_id)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Please choose an account.") from exc
    account = get_account(user_id, account_key)
    if account is None:
        raise NotFoundError("Selected account does not exist.")

    txn = Transaction(
        user_id=user_id,
        account_id=account.id,
        description=description,
        category=category,
        amount=value,
        transaction_type=transaction_type,
        payment_method=(payment_method or "").strip() or None,
        transaction_date=when,
    )
    db.session.add(txn)
    _commit()
    logger.info("User %s added transaction %s to account %s", user_id, txn.id, account.id)
    return txn


def delete_transaction(user_id, transaction_id) -> bool:
    txn = db.session.get(Transaction, transaction_id) if transaction_id is not None else None
    if txn is None or txn.user_id != user_id:
        return False
    db.session.delete(txn)
    _commit()
    logger.info("User %s deleted transaction %s", user_id, transaction_id)
    return True


def import_transactions(user_id, account_id, records: Iterable[data_loader.Transaction]) -> int:
    """Insert loaded CSV records into one account. Returns the number stored."""
    account = get_account(user_id, account_id)
    if account is None:
        raise NotFoundError("Selected account does not exist.")
    records = list(records)
    for rec in records:
        if rec.transaction_type not in TRANSACTION_TYPES:
            raise ValidationError(f"Unknown transaction type: {rec.transaction_type}")
    for rec in records:
        db.session.add(
            Transaction(
                user_id=user_id,
                account_id=account.id,
                description=rec.description,
                category=rec.category or "Other",
                amount=rec.amount,
                transaction_type=rec.transaction_type,
                payment_method=rec.payment_method,
                transaction_date=rec.transaction_date,
            )
        )
    _commit()
    logger.info("User %s imported %d transactions into account %s", user_id, len(records), account.id)
    return len(records)


# -- insights --------------------------------------------------------------


def list_insights(user_id) -> List[Insight]:
    return list(
        db.session.execute(
            db.select(Insight)
            .filter_by(user_id=user_id)
            .order_by(Insight.created_at.desc(), Insight.id.desc())
        ).scalars()
    )


def add_insights(user_id, drafts: Sequence) -> List[Insight]:
    rows = [
        Insight(
            user_id=user_id,
            insight_type=d.insight_type,
            message=d.message,
            category=d.category,
        )
        for d in drafts
    ]
    db.session.add_all(rows)
    _commit()
    return rows
