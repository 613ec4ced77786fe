"""Configuration utilities for the Finance Dashboard.

Provides defaults (category suggestions, keyword rules used when importing
CSV files without a category column) and helpers to load overrides from a
JSON file and the environment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

from .exceptions import ConfigError

ENV_PREFIX = "FINANCE_DASHBOARD_"

ACCOUNT_TYPES = ("checking", "savings", "credit", "investment")
TRANSACTION_TYPES = ("income", "expense")

# Amounts and balances are stored as Numeric(14, 2)
MAX_AMOUNT = Decimal("1000000000000")

# Suggestions offered by the transaction form. Categories are free text.
DEFAULT_CATEGORIES: List[str] = [
    "Food & Dining",
    "Shopping",
    "Transport",
    "Bills",
    "Entertainment",
    "Healthcare",
    "Salary",
    "Other",
]

# Keys: Category names. Values: list of lowercase keywords to search in description.
DEFAULT_RULES: Dict[str, List[str]] = {
    "Salary": ["payroll", "direct deposit", "salary", "stripe payout"],
    "Food & Dining": [
        "whole foods", "trader joe", "kroger", "aldi", "starbucks", "mcdonald",
        "ubereats", "doordash", "grubhub", "restaurant", "cafe",
    ],
    "Transport": ["uber", "lyft", "shell", "exxon", "chevron", "metro", "transit", "parking"],
    "Bills": ["comcast", "xfinity", "verizon", "electric", "water", "rent", "insurance"],
    "Entertainment": ["netflix", "spotify", "hulu", "movie", "theater", "concert", "ticketmaster"],
    "Shopping": ["amazon", "target", "walmart", "best buy", "ebay"],
    "Healthcare": ["pharmacy", "cvs", "walgreens", "doctor", "dentist", "copay"],
    "Other": [],
}


@dataclass
class AppConfig:
    secret_key: str = "dev"
    database_uri: str = "sqlite:///finance_dashboard.db"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    recent_limit: int = 5
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    rules: Dict[str, List[str]] = field(default_factory=lambda: dict(DEFAULT_RULES))

    @staticmethod
    def load(config_path: Optional[str | Path] = None) -> "AppConfig":
        """Load config from JSON if provided, then apply environment overrides.

        JSON format:
        {
          "secret_key": "...",
          "database_uri": "sqlite:///finance.db",
          "log_level": "DEBUG",
          "log_file": "logs/finance_dashboard.log",
          "recent_limit": 5,
          "categories": ["Food & Dining", "Other"],
          "rules": {"Category": ["keyword1", "keyword2"]}
        }
        """

        cfg = AppConfig()
        config_path = config_path or os.environ.get(ENV_PREFIX + "CONFIG")

        if config_path:
            p = Path(config_path)
            if p.exists():
                try:
                    with p.open("r", encoding="utf-8") as f:
                        raw = json.load(f)
                except (OSError, json.JSONDecodeError) as exc:
                    raise ConfigError(f"Unable to read config file {p}: {exc}") from exc
                if not isinstance(raw, dict):
                    raise ConfigError(f"{p}: top-level JSON value must be an object")
                cfg._apply(raw)

        env = os.environ
        if env.get(ENV_PREFIX + "SECRET_KEY"):
            cfg.secret_key = env[ENV_PREFIX + "SECRET_KEY"]
        if env.get(ENV_PREFIX + "DATABASE_URL"):
            cfg.database_uri = env[ENV_PREFIX + "DATABASE_URL"]
        if env.get(ENV_PREFIX + "LOG_LEVEL"):
            cfg.log_level = env[ENV_PREFIX + "LOG_LEVEL"]
        return cfg

    def _apply(self, raw: Dict) -> None:
        for key in ("secret_key", "database_uri", "log_level", "log_file"):
            if raw.get(key) is not None:
                setattr(self, key, str(raw[key]))
        if raw.get("recent_limit") is not None:
            try:
                self.recent_limit = int(raw["recent_limit"])
            except (TypeError, ValueError) as exc:
                raise ConfigError("recent_limit must be an integer") from exc
        if isinstance(raw.get("categories"), list):
            self.categories = [str(c) for c in raw["categories"] if str(c).strip()]
        if isinstance(raw.get("rules"), dict):
            # Normalize all keywords to lowercase
            self.rules = {
                str(cat): [str(k).lower() for k in (kw or [])]
                for cat, kw in raw["rules"].items()
            }

    def flask_settings(self) -> Dict[str, object]:
        return {
            "SECRET_KEY": self.secret_key,
            "SQLALCHEMY_DATABASE_URI": self.database_uri,
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "RECENT_LIMIT": self.recent_limit,
            "CATEGORIES": list(self.categories),
            "CATEGORY_RULES": dict(self.rules),
        }
