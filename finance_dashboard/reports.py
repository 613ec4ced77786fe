"""Reporting utilities.

Formats aggregator output into human-readable text and JSON-serializable dicts.
"""

from __future__ import annotations

import csv
import datetime as dt
import json
from decimal import Context, Decimal
from pathlib import Path
from typing import Any, Dict, IO, Iterable, List, Optional

from . import analytics as an


_CENT = Decimal("0.01")
_CENTS_CONTEXT = Context(traps=[])


def _cents(value: Decimal) -> float:
    # More digits than the context precision holds: fall back to the unrounded value
    rounded = value.quantize(_CENT, context=_CENTS_CONTEXT)
    return float(rounded if rounded.is_finite() else value)


def build_summary(
    accounts: Iterable[Any],
    txns: Iterable[Any],
    reference_date: Optional[dt.date] = None,
) -> Dict:
    accounts = list(accounts)
    txns = list(txns)
    reference = reference_date or an.utc_today()
    totals = an.totals_by_type(txns)
    return {
        "reference_date": reference.isoformat(),
        "account_count": len(accounts),
        "transaction_count": len(txns),
        "total_balance": _cents(an.sum_balances(accounts)),
        "totals": {
            "income": _cents(totals.income),
            "expense": _cents(totals.expense),
            "net": _cents(totals.net),
        },
        "category_totals": [
            {"name": c.name, "value": _cents(c.value)} for c in an.category_totals(txns)
        ],
        "monthly": [
            {
                "month": b.label,
                "period": f"{b.year:04d}-{b.month:02d}",
                "income": _cents(b.income),
                "expense": _cents(b.expense),
            }
            for b in an.monthly_buckets(txns, reference)
        ],
    }


def format_text_report(summary: Dict) -> str:
    lines: List[str] = []
    t = summary["totals"]
    lines.append("=== Finance Dashboard Summary ===")
    lines.append(f"As of:         {summary['reference_date']}")
    lines.append(f"Total Balance: ${summary['total_balance']:,.2f}")
    lines.append(f"Income:        ${t['income']:,.2f}")
    lines.append(f"Expense:       ${t['expense']:,.2f}")
    lines.append(f"Savings:       ${t['net']:,.2f}")
    lines.append("")

    lines.append("-- Spend by Category --")
    if not summary["category_totals"]:
        lines.append("(no expenses)")
    for entry in summary["category_totals"]:
        lines.append(f"{str(entry['name'])[:20]:20} ${entry['value']:,.2f}")
    lines.append("")

    lines.append("-- Last 6 Months --")
    for b in summary["monthly"]:
        lines.append(f"{b['month']} {b['period'][:4]} | Inc ${b['income']:,.2f}  Exp ${b['expense']:,.2f}")
    return "\n".join(lines)


def save_json(summary: Dict, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2)


def _ensure_text_writer(target: str | Path | IO[str]):
    if hasattr(target, "write"):
        return target, None
    path = Path(target)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("w", newline="", encoding="utf-8")
    return handle, handle


def export_summary_csv(summary: Dict, path: str | Path | IO[str]) -> None:
    def fmt_amount(value) -> str:
        if value is None:
            return ""
        return f"{float(value):.2f}"

    rows: List[List[str]] = [["Section", "Item", "Metric", "Value"]]

    if "total_balance" in summary:
        rows.append(["Accounts", "", "Total Balance", fmt_amount(summary["total_balance"])])

    totals = summary.get("totals") or {}
    for key, label in (("income", "Income"), ("expense", "Expense"), ("net", "Net")):
        if key in totals:
            rows.append(["Totals", "", label, fmt_amount(totals.get(key))])

    for entry in summary.get("category_totals") or []:
        rows.append(["Category Spend", entry.get("name") or "Uncategorized", "Amount", fmt_amount(entry.get("value"))])

    for bucket in summary.get("monthly") or []:
        for key, label in (("income", "Income"), ("expense", "Expense")):
            rows.append(["Monthly Totals", bucket.get("period", bucket.get("month", "")), label, fmt_amount(bucket.get(key))])

    if summary.get("reference_date"):
        rows.append(["Metadata", "Reference Date", "", summary["reference_date"]])
    txn_count = summary.get("transaction_count")
    if txn_count is not None:
        rows.append(["Metadata", "Transaction Count", "", str(txn_count)])

    writer_target, to_close = _ensure_text_writer(path)
    try:
        writer = csv.writer(writer_target, lineterminator="\n")
        writer.writerows(rows)
    finally:
        if to_close is not None:
            to_close.close()


def export_summary_json(summary: Dict, path: str | Path | IO[str]) -> None:
    if hasattr(path, "write"):
        json.dump(summary, path, indent=2)
        path.write("\n")
        return
    save_json(summary, path)
