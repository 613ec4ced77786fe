"""Command-line interface for the Finance Dashboard.

Usage:
  finance-dashboard --transactions sample_data/transactions.csv --accounts sample_data/accounts.csv

Prints the same figures the dashboard shows, optionally exporting them as
JSON or CSV.
"""

from __future__ import annotations

import argparse
import datetime as dt
import sys
from typing import List, Optional

from .config import AppConfig
from .categorizer import categorize_transactions
from .data_loader import load_accounts_file, load_transactions_files
from .exceptions import ConfigError
from .logger import configure_logging, get_logger
from .reports import build_summary, export_summary_csv, format_text_report, save_json

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Finance Dashboard report")
    p.add_argument("--transactions", "-t", nargs="+", required=True, help="Transaction CSV file(s) to load")
    p.add_argument("--accounts", "-a", help="Account CSV file with balances")
    p.add_argument("--config", "-c", help="Path to JSON config")
    p.add_argument("--reference-date", dest="reference_date", help="Last month of the trend (YYYY-MM-DD), default today")
    p.add_argument("--json", dest="json_out", help="Write summary JSON to path")
    p.add_argument("--csv", dest="csv_out", help="Write summary CSV to path")
    p.add_argument("--log-level", dest="log_level", help="Override the configured log level")
    return p.parse_args(argv)


def _parse_date(d: Optional[str]) -> Optional[dt.date]:
    if not d:
        return None
    return dt.date.fromisoformat(d)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        cfg = AppConfig.load(args.config)
        configure_logging(args.log_level or cfg.log_level, cfg.log_file)
        reference = _parse_date(args.reference_date)
        txns = load_transactions_files(args.transactions)
        accounts = load_accounts_file(args.accounts) if args.accounts else []
    except (ConfigError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    categorize_transactions(txns, cfg.rules)

    summary = build_summary(accounts, txns, reference)
    print(format_text_report(summary))

    if args.json_out:
        save_json(summary, args.json_out)
        print(f"\nSaved JSON summary to: {args.json_out}")
    if args.csv_out:
        export_summary_csv(summary, args.csv_out)
        print(f"\nSaved CSV summary to: {args.csv_out}")
    logger.debug("Report built for %d transactions, %d accounts", len(txns), len(accounts))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
