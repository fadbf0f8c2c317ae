"""Run leave accrual from cron.

    python scripts/run_accrual.py monthly
    python scripts/run_accrual.py yearly --year 2025

Exit status is 1 when any (user, policy) pair failed; rerun with --retry-failed to process
only those pairs (monthly runs are not idempotent, so never rerun the whole month).
"""

from __future__ import annotations

import argparse
import importlib
import json
import sys

from dotenv import load_dotenv

from hr_backoffice.common.logging import setup_logging
from hr_backoffice.config import get_settings_module
from hr_backoffice.container import build_container


def _parse_pairs(values) -> list:
    pairs = []
    for value in values or ():
        user_id, _, leave_type = value.partition(":")
        pairs.append((int(user_id), leave_type))
    return pairs


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Leave accrual runner")
    parser.add_argument("kind", choices=["monthly", "yearly"])
    parser.add_argument("--year", type=int, default=None)
    parser.add_argument(
        "--retry-failed",
        nargs="*",
        metavar="USER_ID:LEAVE_TYPE",
        help="only process these pairs (from a previous report's failed list)",
    )
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(getattr(settings, "LOG_LEVEL", None))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        jwt_secret=settings.JWT_SECRET,
        tz_name=settings.ORG_TIMEZONE,
    )
    engine = container.accrual_engine
    only = _parse_pairs(args.retry_failed) if args.retry_failed is not None else None

    if args.kind == "monthly":
        report = engine.run_monthly_accrual(only=only)
    else:
        report = engine.run_yearly_processing(args.year, only=only)

    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
