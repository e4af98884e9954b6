from __future__ import annotations

import argparse
import json
import logging
from datetime import date, timedelta
from typing import Any

from download_stats.aggregation import series_payload
from download_stats.config import LOG_LEVEL
from download_stats.errors import AllProvidersExhausted
from download_stats.extended import collect_extended_stats
from download_stats.models import GRANULARITIES
from download_stats.resolver import NpmResolver, PyPIResolver, default_pypi_providers
from download_stats.sources.bigquery_client import build_warehouse


def _print(value: Any) -> None:
    print(json.dumps(value, indent=2, default=str))


def _default_start_date(days: int) -> str:
    return (date.today() - timedelta(days=days)).isoformat()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Simple debug helper that resolves download series directly against "
            "the upstream providers. BigQuery needs GOOGLE_* credentials."
        )
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    npm = subparsers.add_parser("npm", help="Resolve an npm date-range series")
    npm.add_argument("package", help="npm package name, e.g. react")
    npm.add_argument(
        "--from",
        dest="start_date",
        default=None,
        help="YYYY-MM-DD (default: 30 days ago)",
    )
    npm.add_argument(
        "--to",
        dest="end_date",
        default=date.today().isoformat(),
        help="YYYY-MM-DD (default: today)",
    )
    npm.add_argument("--days", type=int, default=30, help="Days-back for the default --from")
    npm.add_argument("--granularity", default="day", choices=GRANULARITIES)

    pypi = subparsers.add_parser("pypi", help="Resolve a PyPI series via fallbacks")
    pypi.add_argument("package", help="PyPI project name, e.g. requests")
    pypi.add_argument("--period", default="month", choices=["day", "week", "month"])
    pypi.add_argument("--granularity", default="day", choices=GRANULARITIES)

    extended = subparsers.add_parser(
        "extended", help="Run extended BigQuery statistics for a PyPI project"
    )
    extended.add_argument("package")
    extended.add_argument("--type", dest="query_type", default="all")
    extended.add_argument("--from", dest="start_date", default=None)
    extended.add_argument("--to", dest="end_date", default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=LOG_LEVEL)

    if args.command == "npm":
        series = NpmResolver().resolve_date_range_series(
            args.package,
            args.start_date or _default_start_date(args.days),
            args.end_date,
        )
        _print(series_payload(series, args.granularity))
        return

    if args.command == "pypi":
        resolver = PyPIResolver(default_pypi_providers(build_warehouse()))
        try:
            series = resolver.resolve_daily_series(args.package, args.period)
        except AllProvidersExhausted as exc:
            _print({"error": str(exc), "warehouse_info": exc.diagnostics.to_dict()})
            return
        _print(series_payload(series, args.granularity))
        return

    if args.command == "extended":
        warehouse = build_warehouse()
        if warehouse is None:
            raise RuntimeError("BigQuery not available; check GOOGLE_* credentials")
        _print(
            collect_extended_stats(
                warehouse,
                args.package,
                args.query_type,
                start=args.start_date,
                end=args.end_date,
            )
        )
        return

    raise RuntimeError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
