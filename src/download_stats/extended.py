from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable

from download_stats.aggregation import coerce_downloads
from download_stats.errors import InvalidRange
from download_stats.models import normalize_package
from download_stats.sources.bigquery_client import BigQueryWarehouse
from download_stats.utils.time import coerce_date, local_today

logger = logging.getLogger("download_stats.extended")

QUERY_TYPES = (
    "total",
    "yearly",
    "monthly",
    "topDates",
    "topCountries",
    "topCountriesToday",
    "topDatesThisMonth",
)
CUSTOM_RANGE = "customRange"


def _date_rows(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "date": coerce_date(row.get("download_date")).isoformat(),
            "downloads": coerce_downloads(row.get("num_downloads")),
        }
        for row in rows
    ]


def _country_rows(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "country": row.get("country_code") or "Unknown",
            "downloads": coerce_downloads(row.get("num_downloads")),
        }
        for row in rows
    ]


def _month_rows(rows: list[dict[str, Any]]) -> list[dict[str, int]]:
    return [
        {
            "month": coerce_downloads(row.get("month")),
            "downloads": coerce_downloads(row.get("num_downloads")),
        }
        for row in rows
    ]


def collect_extended_stats(
    warehouse: BigQueryWarehouse,
    package: str,
    query_type: str = "all",
    *,
    start: date | str | None = None,
    end: date | str | None = None,
) -> dict[str, Any]:
    """Run the requested warehouse queries; a failing query is left out."""
    package = normalize_package(package)
    today = local_today()
    year_start = date(today.year, 1, 1)
    month_start = date(today.year, today.month, 1)

    queries: dict[str, tuple[str, Callable[[], Any]]] = {
        "total": (
            "totalDownloads",
            lambda: warehouse.total_downloads(package),
        ),
        "yearly": (
            "totalDownloadsThisYear",
            lambda: warehouse.downloads_in_year(package, today.year),
        ),
        "monthly": (
            "monthlyDownloads",
            lambda: _month_rows(warehouse.monthly_downloads(package, today.year)),
        ),
        "topDates": (
            "topDates",
            lambda: _date_rows(warehouse.top_dates(package, year_start, today)),
        ),
        "topCountries": (
            "topCountries",
            lambda: _country_rows(warehouse.top_countries(package, year_start, today)),
        ),
        "topCountriesToday": (
            "topCountriesToday",
            lambda: _country_rows(warehouse.top_countries(package, today, today)),
        ),
        "topDatesThisMonth": (
            "topDatesThisMonth",
            lambda: _date_rows(warehouse.top_dates(package, month_start, today)),
        ),
    }

    if query_type == CUSTOM_RANGE:
        if start is None or end is None:
            raise InvalidRange("customRange requires both from and to")
        try:
            start_day, end_day = coerce_date(start), coerce_date(end)
        except ValueError as exc:
            raise InvalidRange("from/to must be YYYY-MM-DD") from exc
        if start_day > end_day:
            raise InvalidRange("Start date must be before end date")
        selected = {
            CUSTOM_RANGE: (
                "customRangeTopDates",
                lambda: _date_rows(warehouse.top_dates(package, start_day, end_day)),
            )
        }
    elif query_type == "all":
        selected = queries
    elif query_type in queries:
        selected = {query_type: queries[query_type]}
    else:
        raise ValueError(f"Unknown extended query type: {query_type}")

    results: dict[str, Any] = {}
    for name, (result_key, run) in selected.items():
        try:
            results[result_key] = run()
        except Exception as exc:
            logger.warning(
                "extended query failed query=%s package=%s error=%s", name, package, exc
            )
    return results
