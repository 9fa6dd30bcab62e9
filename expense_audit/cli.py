# -*- coding: utf-8 -*-
"""Expense audit CLI.

Runs a batch of expense records through the reimbursement policy and prints
the batch result as JSON.

Usage:
    expense-audit analyze data/expenses.csv --output results/
    expense-audit analyze data/expenses.csv --mock
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

from expense_audit import config
from expense_audit.batch_analyzer import BatchAnalyzer
from expense_audit.errors import MalformedRecordError, PolicyConfigError, RateLookupError
from expense_audit.exchange_rate import ExchangeRateClient, MockExchangeRateClient
from expense_audit.policy import build_rules, load_policy
from expense_audit.services.kv_store import KVStore
from expense_audit.types import RateSource, RuleContext
from expense_audit.validator import ExpenseValidator

logger = logging.getLogger(__name__)


def _print_json(payload: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2))
    sys.stdout.write("\n")


def _error(message: str, reason: str) -> int:
    _print_json({"status": "error", "error": {"message": message, "reason": reason}})
    return 1


def build_rate_source(use_mock: bool, use_cache: bool) -> RateSource:
    if use_mock:
        logger.warning("Using mock exchange rates (no API calls)")
        return MockExchangeRateClient()

    kv_store = KVStore() if config.KV_ENABLED and use_cache else None
    logger.info(f"Using Open Exchange Rates (cache: {'enabled' if use_cache else 'disabled'})")
    return ExchangeRateClient(
        config.OPENEXCHANGERATES_API_KEY,
        cache_enabled=use_cache,
        kv_store=kv_store,
        timeout=config.RATE_API_TIMEOUT,
        latest_cache_ttl=config.RATE_CACHE_TTL,
    )


def write_output(payload: dict[str, Any], output_dir: Path) -> Path:
    """Write the analysis as analysis_<timestamp>.json into output_dir"""
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(ZoneInfo("UTC")).strftime("%Y-%m-%dT%H-%M-%S")
    output_path = output_dir / f"analysis_{timestamp}.json"
    output_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return output_path


def cmd_analyze(args: argparse.Namespace) -> int:
    use_mock = bool(args.mock) or config.USE_MOCK
    use_cache = config.USE_CACHE and not args.no_cache

    missing = config.missing_config(use_mock=use_mock)
    if missing:
        return _error(f"Missing required environment variables: {', '.join(missing)}", "missing_config")

    try:
        policy = load_policy(args.policy or config.POLICY_PATH or None)
    except PolicyConfigError as e:
        return _error(str(e), "policy_config")

    context = RuleContext(
        base_currency=policy.base_currency,
        rate_source=build_rate_source(use_mock, use_cache),
    )

    try:
        with ExpenseValidator(build_rules(policy), context) as validator:
            result = BatchAnalyzer(validator).analyze_file(args.csv_path)
    except FileNotFoundError:
        return _error(f"File not found: {args.csv_path}", "file_not_found")
    except MalformedRecordError as e:
        return _error(str(e), "malformed_record")
    except RateLookupError as e:
        return _error(str(e), "rate_lookup")

    payload = {
        "status": "ok",
        "analyzed_at": datetime.now(ZoneInfo("UTC")).isoformat(),
        **result.to_dict(),
    }

    if args.output:
        output_path = write_output(payload, Path(args.output))
        logger.info(f"Results saved to {output_path}")
        payload["output_path"] = str(output_path)

    _print_json(payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="expense-audit", description="Expense policy batch analyzer")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Validate a CSV batch of expenses")
    analyze.add_argument("csv_path")
    analyze.add_argument("--output", help="Directory for the JSON results file")
    analyze.add_argument("--policy", help="Policy YAML file (overrides POLICY_PATH)")
    analyze.add_argument("--mock", action="store_true", help="Use mock exchange rates (no API calls)")
    analyze.add_argument("--no-cache", action="store_true", help="Fetch rates on every lookup")
    analyze.set_defaults(func=cmd_analyze)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
