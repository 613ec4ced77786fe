"""Aggregations behind the dashboard and analytics figures.

Pure functions that turn account and transaction records into totals,
per-category sums and six-month buckets. Records are read by attribute
(``balance``, ``amount``, ``transaction_type``, ``category``,
``transaction_date``); ORM rows, :mod:`data_loader` records and plain
mappings all work.

Numbers are coerced to :class:`~decimal.Decimal`. Anything that cannot be
read as a finite number, or whose exponent is outside the decimal context,
counts as zero instead of raising. A total that overflows is zero as well.
Input validation belongs to the callers that create records.
"""

from __future__ import annotations

import calendar
import datetime as dt
from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation, getcontext
from typing import Any, Dict, Iterable, List, Optional, Tuple

INCOME = "income"
EXPENSE = "expense"

BUCKET_COUNT = 6

ZERO = Decimal("0")

# Sums never trap; an overflowing total is reported as zero
_SUM_CONTEXT = Context(traps=[])


@dataclass(frozen=True)
class TotalsSummary:
    income: Decimal
    expense: Decimal
    net: Decimal


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    value: Decimal


@dataclass(frozen=True)
class MonthlyBucket:
    label: str
    year: int
    month: int
    income: Decimal
    expense: Decimal


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def to_decimal(value: Any) -> Decimal:
    """Read ``value`` as a Decimal, or zero when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if _in_range(value) else ZERO
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value).strip() or "0")
    except (InvalidOperation, ValueError):
        return ZERO
    return result if _in_range(result) else ZERO


def _in_range(value: Decimal) -> bool:
    if not value.is_finite():
        return False
    if not value:
        return True
    ctx = getcontext()
    return ctx.Emin <= value.adjusted() <= ctx.Emax


def _finite(value: Decimal) -> Decimal:
    return value if value.is_finite() else ZERO


def _total(values: Iterable[Decimal]) -> Decimal:
    result = ZERO
    for value in values:
        result = _SUM_CONTEXT.add(result, value)
    return _finite(result)


def utc_today() -> dt.date:
    """Today's date in UTC, the zone stored timestamps are kept in."""
    return dt.datetime.now(dt.timezone.utc).date()


def _to_date(value: Any) -> Optional[dt.date]:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return dt.datetime.fromisoformat(text).date()
        except ValueError:
            pass
        try:
            return dt.date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def subtract_months(value: dt.date, months: int) -> Tuple[int, int]:
    """Return the (year, month) that lies ``months`` calendar months before ``value``."""
    year = value.year
    month = value.month - months
    while month <= 0:
        month += 12
        year -= 1
    return year, month


def sum_balances(accounts: Iterable[Any]) -> Decimal:
    return _total(to_decimal(_field(a, "balance")) for a in accounts)


def _sum_type(txns: Iterable[Any], kind: str) -> Decimal:
    return _total(to_decimal(_field(t, "amount")) for t in txns if _field(t, "transaction_type") == kind)


def totals_by_type(txns: Iterable[Any]) -> TotalsSummary:
    txns = list(txns)
    income = _sum_type(txns, INCOME)
    expense = _sum_type(txns, EXPENSE)
    return TotalsSummary(income=income, expense=expense, net=_finite(_SUM_CONTEXT.subtract(income, expense)))


def category_totals(txns: Iterable[Any]) -> List[CategoryTotal]:
    """Sum expense amounts per category.

    Output follows the order in which categories first appear; it is not
    sorted. Category names are compared exactly.
    """

    totals: Dict[str, Decimal] = {}
    for t in txns:
        if _field(t, "transaction_type") != EXPENSE:
            continue
        cat = _field(t, "category")
        totals[cat] = _SUM_CONTEXT.add(totals.get(cat, ZERO), to_decimal(_field(t, "amount")))
    return [CategoryTotal(name=name, value=_finite(value)) for name, value in totals.items()]


def monthly_buckets(txns: Iterable[Any], reference_date: Optional[dt.date] = None) -> List[MonthlyBucket]:
    """Income and expense for the reference month and the five months before it.

    Oldest bucket first. Transactions without a readable date fall in no bucket.
    ``reference_date`` defaults to today's UTC date.
    """

    reference = _to_date(reference_date) if reference_date is not None else utc_today()
    if reference is None:
        raise ValueError(f"Invalid reference date: {reference_date!r}")

    slots = [subtract_months(reference, BUCKET_COUNT - 1 - i) for i in range(BUCKET_COUNT)]
    sums: Dict[Tuple[int, int], Dict[str, Decimal]] = {slot: {INCOME: ZERO, EXPENSE: ZERO} for slot in slots}
    for t in txns:
        kind = _field(t, "transaction_type")
        if kind not in (INCOME, EXPENSE):
            continue
        when = _to_date(_field(t, "transaction_date"))
        if when is None:
            continue
        bucket = sums.get((when.year, when.month))
        if bucket is not None:
            bucket[kind] = _SUM_CONTEXT.add(bucket[kind], to_decimal(_field(t, "amount")))

    return [
        MonthlyBucket(
            label=calendar.month_abbr[month],
            year=year,
            month=month,
            income=_finite(sums[(year, month)][INCOME]),
            expense=_finite(sums[(year, month)][EXPENSE]),
        )
        for year, month in slots
    ]


def filter_transactions(txns: Iterable[Any], search: str = "", category: str = "all") -> List[Any]:
    """Keep rows whose description contains ``search`` and whose category matches."""
    needle = (search or "").lower()
    result = []
    for t in txns:
        description = _field(t, "description") or ""
        if needle and needle not in description.lower():
            continue
        if category and category != "all" and _field(t, "category") != category:
            continue
        result.append(t)
    return result


def distinct_categories(txns: Iterable[Any]) -> List[str]:
    seen: Dict[str, None] = {}
    for t in txns:
        cat = _field(t, "category")
        if cat is not None:
            seen.setdefault(cat, None)
    return list(seen)
