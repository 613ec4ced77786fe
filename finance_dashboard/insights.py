"""Rule-based spending insights.

``draft_insights`` looks at a user's transactions through the aggregator and
returns short messages; ``generate_insights`` stores them for the user.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from . import analytics as an
from . import store
from .exceptions import InsightGenerationError
from .logger import get_logger
from .models import Insight

logger = get_logger(__name__)

# Month-over-month expense growth that triggers a warning
SPIKE_RATIO = Decimal("1.2")


@dataclass
class InsightDraft:
    insight_type: str
    message: str
    category: Optional[str] = None


def _money(value: Decimal) -> str:
    return f"${value:,.2f}"


def draft_insights(txns: Iterable[Any], reference_date: Optional[dt.date] = None) -> List[InsightDraft]:
    txns = list(txns)
    if not txns:
        return [
            InsightDraft(
                insight_type="alert",
                message="No transactions yet. Record some income and expenses to get personalised insights.",
            )
        ]

    drafts: List[InsightDraft] = []

    categories = an.category_totals(txns)
    if categories:
        # max keeps the first-seen category on ties
        top = max(categories, key=lambda c: c.value)
        if top.value > 0:
            drafts.append(
                InsightDraft(
                    insight_type="spending",
                    message=f"Your largest expense category is {top.name} at {_money(top.value)}.",
                    category=top.name,
                )
            )

    buckets = an.monthly_buckets(txns, reference_date)
    previous, current = buckets[-2], buckets[-1]
    if previous.expense > 0:
        if current.expense > previous.expense * SPIKE_RATIO:
            change = (current.expense - previous.expense) / previous.expense * 100
            drafts.append(
                InsightDraft(
                    insight_type="trend",
                    message=(
                        f"Spending in {current.label} is up {change:.0f}% on {previous.label} "
                        f"({_money(current.expense)} vs {_money(previous.expense)}). "
                        "Consider pausing discretionary purchases."
                    ),
                )
            )
        elif current.expense < previous.expense:
            drafts.append(
                InsightDraft(
                    insight_type="trend",
                    message=(
                        f"Spending in {current.label} is {_money(previous.expense - current.expense)} "
                        f"lower than in {previous.label}. Keep it up."
                    ),
                )
            )

    totals = an.totals_by_type(txns)
    if totals.expense > totals.income:
        drafts.append(
            InsightDraft(
                insight_type="alert",
                message=(
                    f"Expenses exceed income by {_money(totals.expense - totals.income)}. "
                    "Review your largest categories to close the gap."
                ),
            )
        )
    elif totals.income > 0:
        rate = totals.net / totals.income * 100
        drafts.append(
            InsightDraft(
                insight_type="savings",
                message=f"You have kept {rate:.0f}% of your income ({_money(totals.net)}).",
            )
        )
    return drafts


def generate_insights(user_id, reference_date: Optional[dt.date] = None) -> List[Insight]:
    """Derive insights from the user's transactions and store them."""
    try:
        txns = store.list_transactions(user_id)
        drafts = draft_insights(txns, reference_date)
        rows = store.add_insights(user_id, drafts)
    except SQLAlchemyError as exc:
        raise InsightGenerationError("Failed to generate insights") from exc
    logger.info("Generated %d insights for user %s from %d transactions", len(rows), user_id, len(txns))
    return rows
