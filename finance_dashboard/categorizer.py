"""Category suggestions for imported transactions.

Keyword matcher used when a CSV import carries no category. Keywords are
matched in the normalized description (lowercase, punctuation stripped
except spaces). Rows that already have a category are left alone.
"""

from __future__ import annotations

import re
import string
from typing import Dict, List, Optional

from .data_loader import Transaction


_PUNCT_TABLE = str.maketrans({c: " " for c in string.punctuation})


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text.lower().translate(_PUNCT_TABLE)).strip()


def _keyword_index(rules: Dict[str, List[str]]) -> Dict[str, str]:
    # keyword -> category, first occurrence wins
    kw_to_cat: Dict[str, str] = {}
    for cat, kws in rules.items():
        for kw in kws or []:
            kw = _normalize(kw)
            if kw and kw not in kw_to_cat:
                kw_to_cat[kw] = cat
    return kw_to_cat


def suggest_category(
    description: str,
    transaction_type: str,
    rules: Dict[str, List[str]],
    default_category: str = "Other",
    income_category: str = "Salary",
) -> str:
    """Pick a category for one description.

    Whole-word keyword matches win; income without a match falls back to
    ``income_category``.
    """

    norm = f" {_normalize(description or '')} "
    chosen: Optional[str] = None
    for kw, cat in _keyword_index(rules).items():
        if f" {kw} " in norm:
            chosen = cat
            break
    if not chosen and transaction_type == "income":
        chosen = income_category
    return chosen or default_category


def categorize_transactions(
    txns: List[Transaction],
    rules: Dict[str, List[str]],
    default_category: str = "Other",
) -> None:
    """In-place categorization of rows without a category."""
    for t in txns:
        if t.category:
            continue
        t.category = suggest_category(t.description, t.transaction_type, rules, default_category)
