"""Data loading helpers.

Plain record types shared by the aggregator, reports and the CLI, and
loaders that read account and transaction CSV exports into them.

CSV columns are auto-detected case-insensitively among common variants.
Transactions are stored as a non-negative ``amount`` plus a
``transaction_type``; when a file has no type column the sign of the amount
decides (negative = expense).
"""

from __future__ import annotations

import csv
import datetime as dt
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import IO, Iterable, List, Optional

from .config import MAX_AMOUNT
from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class Account:
    bank_name: str
    account_type: str
    balance: Decimal
    id: Optional[str] = None
    user_id: Optional[str] = None
    last_synced: Optional[dt.datetime] = None


@dataclass
class Transaction:
    transaction_date: dt.datetime
    description: str
    amount: Decimal  # magnitude; direction is transaction_type
    transaction_type: str = "expense"
    category: Optional[str] = None  # filled later by categorizer when missing
    payment_method: Optional[str] = None
    account: Optional[str] = None
    id: Optional[str] = None
    user_id: Optional[str] = None


def parse_datetime(value: str) -> dt.datetime:
    value = value.strip()
    # Try multiple common date formats
    for fmt in ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return dt.datetime.strptime(value, fmt)
        except ValueError:
            continue
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Unrecognized date format: {value}") from exc
    # Stored naive, in UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return parsed


def _to_decimal(value: str) -> Decimal:
    v = value.replace(",", "").replace("$", "").strip()
    # Some exports wrap negatives in parentheses, e.g., (12.34)
    if v.startswith("(") and v.endswith(")"):
        v = "-" + v[1:-1]
    try:
        result = Decimal(v)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value}")
    if abs(result) >= MAX_AMOUNT:
        raise ValueError(f"Amount out of range: {value}")
    return result


def _find_column(row_keys: Iterable[str], candidates: Iterable[str]) -> Optional[str]:
    low = {k.lower().strip(): k for k in row_keys}
    for cand in candidates:
        if cand.lower() in low:
            return low[cand.lower()]
    return None


def _cell(row: dict, column: Optional[str]) -> str:
    if not column:
        return ""
    return (row.get(column) or "").strip()


_DATE_COLS = ("date", "transaction date", "transaction_date", "posted date", "posting date")
_DESC_COLS = ("description", "details", "memo", "name")
_AMT_COLS = ("amount", "amt", "value")
_TYPE_COLS = ("type", "transaction type", "transaction_type", "kind")
_CATEGORY_COLS = ("category", "label")
_METHOD_COLS = ("payment method", "payment_method", "method")
_ACCOUNT_COLS = ("account", "account name", "bank name", "bank")

_BANK_COLS = ("bank name", "bank_name", "bank", "name")
_ACCOUNT_TYPE_COLS = ("account type", "account_type", "type")
_BALANCE_COLS = ("balance", "amount")
_SYNCED_COLS = ("last synced", "last_synced")
_ID_COLS = ("id",)


def load_transactions_stream(stream: IO[str], label: str = "<stream>") -> List[Transaction]:
    reader = csv.DictReader(stream)
    fieldnames = reader.fieldnames or []
    date_col = _find_column(fieldnames, _DATE_COLS)
    desc_col = _find_column(fieldnames, _DESC_COLS)
    amt_col = _find_column(fieldnames, _AMT_COLS)
    type_col = _find_column(fieldnames, _TYPE_COLS)
    category_col = _find_column(fieldnames, _CATEGORY_COLS)
    method_col = _find_column(fieldnames, _METHOD_COLS)
    account_col = _find_column(fieldnames, _ACCOUNT_COLS)
    id_col = _find_column(fieldnames, _ID_COLS)

    if not date_col or not desc_col or not amt_col:
        raise ValueError(f"{label}: Missing required columns. Need date, description and amount.")

    txns: List[Transaction] = []
    for line_no, row in enumerate(reader, start=2):
        try:
            when = parse_datetime(row[date_col] or "")
            amount = _to_decimal(row[amt_col] or "")
        except ValueError as exc:
            raise ValueError(f"{label}, line {line_no}: {exc}") from exc
        kind = _cell(row, type_col).lower()
        if kind not in ("income", "expense"):
            if type_col and kind:
                raise ValueError(f"{label}, line {line_no}: Unknown transaction type: {kind}")
            kind = "expense" if amount < 0 else "income"
        txns.append(
            Transaction(
                transaction_date=when,
                description=_cell(row, desc_col),
                amount=abs(amount),
                transaction_type=kind,
                category=_cell(row, category_col) or None,
                payment_method=_cell(row, method_col) or None,
                account=_cell(row, account_col) or None,
                id=_cell(row, id_col) or None,
            )
        )
    return txns


def load_accounts_stream(stream: IO[str], label: str = "<stream>") -> List[Account]:
    reader = csv.DictReader(stream)
    fieldnames = reader.fieldnames or []
    bank_col = _find_column(fieldnames, _BANK_COLS)
    type_col = _find_column(fieldnames, _ACCOUNT_TYPE_COLS)
    balance_col = _find_column(fieldnames, _BALANCE_COLS)
    synced_col = _find_column(fieldnames, _SYNCED_COLS)
    id_col = _find_column(fieldnames, _ID_COLS)

    if not bank_col or not balance_col:
        raise ValueError(f"{label}: Missing required columns. Need bank name and balance.")

    accounts: List[Account] = []
    for line_no, row in enumerate(reader, start=2):
        try:
            balance = _to_decimal(row[balance_col] or "")
            synced = _cell(row, synced_col)
            last_synced = parse_datetime(synced) if synced else None
        except ValueError as exc:
            raise ValueError(f"{label}, line {line_no}: {exc}") from exc
        accounts.append(
            Account(
                bank_name=_cell(row, bank_col),
                account_type=_cell(row, type_col).lower() or "checking",
                balance=balance,
                id=_cell(row, id_col) or None,
                last_synced=last_synced,
            )
        )
    return accounts


def load_transactions_file(path: str | Path) -> List[Transaction]:
    p = Path(path)
    with p.open("r", encoding="utf-8-sig", newline="") as f:
        return load_transactions_stream(f, label=p.name)


def load_transactions_files(paths: Iterable[str | Path]) -> List[Transaction]:
    all_txns: List[Transaction] = []
    for p in paths:
        loaded = load_transactions_file(p)
        logger.info("Loaded %d transactions from %s", len(loaded), p)
        all_txns.extend(loaded)
    # Newest first, matching how the dashboard lists them
    all_txns.sort(key=lambda t: (t.transaction_date, t.description), reverse=True)
    return all_txns


def load_accounts_file(path: str | Path) -> List[Account]:
    p = Path(path)
    with p.open("r", encoding="utf-8-sig", newline="") as f:
        accounts = load_accounts_stream(f, label=p.name)
    logger.info("Loaded %d accounts from %s", len(accounts), p)
    return accounts
