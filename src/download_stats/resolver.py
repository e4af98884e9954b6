"""Resolve a package's download series from an ordered list of providers.

PyPI series come from a fallback chain: the BigQuery warehouse first, then
pypistats.org. Providers are tried one at a time and the first non-empty
series wins. npm has a single range provider, so its resolver only clamps and
validates the requested dates.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Protocol

from download_stats.aggregation import coerce_downloads
from download_stats.config import PERIOD_DAYS
from download_stats.errors import (
    AllProvidersExhausted,
    InvalidRange,
    NotFound,
    ProviderUnavailable,
)
from download_stats.models import (
    PROVENANCE_COMMUNITY,
    PROVENANCE_NPM,
    PROVENANCE_WAREHOUSE,
    DailyPoint,
    OverallTotal,
    Series,
    SeriesRequest,
    normalize_package,
    warehouse_diagnostics,
)
from download_stats.sources.bigquery_client import BigQueryWarehouse
from download_stats.sources.npm_client import NpmDownloadsClient
from download_stats.sources.pypi_client import PyPIProjectClient
from download_stats.sources.pypistats_client import PyPIStatsClient
from download_stats.utils.time import clamp_to_today, coerce_date, local_today

logger = logging.getLogger("download_stats.resolver")


def normalize_rows(
    rows: Iterable[Any],
    *,
    package: str,
    provenance: str,
    start: date | None = None,
    end: date | None = None,
) -> Series:
    """Build a canonical series: sorted, one point per day, duplicates summed."""
    totals: dict[date, int] = {}
    dropped = 0
    for row in rows:
        if not isinstance(row, Mapping):
            dropped += 1
            continue
        try:
            day = coerce_date(row.get("date", row.get("day")))
        except ValueError:
            dropped += 1
            continue
        if (start is not None and day < start) or (end is not None and day > end):
            continue
        totals[day] = totals.get(day, 0) + coerce_downloads(row.get("downloads"))

    return Series(
        package=package,
        provenance=provenance,
        points=tuple(DailyPoint(day=day, downloads=totals[day]) for day in sorted(totals)),
        dropped=dropped,
        start=start,
        end=end,
    )


def period_window(period: str, today: date) -> SeriesRequest:
    if period not in PERIOD_DAYS:
        raise ValueError(
            f"period must be one of {', '.join(PERIOD_DAYS)}, got {period!r}"
        )
    return SeriesRequest(
        period=period,
        start=today - timedelta(days=PERIOD_DAYS[period]),
        end=today,
    )


def clamp_range(start: date, end: date, today: date) -> tuple[date, date]:
    start = clamp_to_today(start, today)
    end = clamp_to_today(end, today)
    if start > end:
        raise InvalidRange(
            f"Start date must be before end date (from={start.isoformat()}, "
            f"to={end.isoformat()})"
        )
    return start, end


class DownloadProvider(Protocol):
    name: str

    def try_fetch(self, package: str, request: SeriesRequest) -> Series | None:
        ...


class WarehouseProvider:
    name = PROVENANCE_WAREHOUSE

    def __init__(self, warehouse: BigQueryWarehouse | None):
        self.warehouse = warehouse

    def try_fetch(self, package: str, request: SeriesRequest) -> Series | None:
        if self.warehouse is None:
            return None
        rows = self.warehouse.daily_downloads(package, request.start, request.end)
        return normalize_rows(
            rows,
            package=package,
            provenance=self.name,
            start=request.start,
            end=request.end,
        )


class CommunityStatsProvider:
    name = PROVENANCE_COMMUNITY

    def __init__(self, client: PyPIStatsClient | None = None):
        self.client = client or PyPIStatsClient()

    def try_fetch(self, package: str, request: SeriesRequest) -> Series | None:
        rows = self.client.fetch_recent(package, request.period)
        return normalize_rows(
            rows,
            package=package,
            provenance=self.name,
            start=request.start,
            end=request.end,
        )


def default_pypi_providers(
    warehouse: BigQueryWarehouse | None,
    stats_client: PyPIStatsClient | None = None,
) -> list[DownloadProvider]:
    return [WarehouseProvider(warehouse), CommunityStatsProvider(stats_client)]


class PyPIResolver:
    def __init__(
        self,
        providers: list[DownloadProvider],
        *,
        stats_client: PyPIStatsClient | None = None,
        project_client: PyPIProjectClient | None = None,
    ):
        self.providers = providers
        self.stats_client = stats_client or PyPIStatsClient()
        self.project_client = project_client or PyPIProjectClient()

    def resolve_daily_series(self, package: str, period: str) -> Series:
        package = normalize_package(package)
        request = period_window(period, local_today())

        for provider in self.providers:
            try:
                series = provider.try_fetch(package, request)
            except Exception as exc:
                logger.warning(
                    "provider failed provider=%s package=%s error=%s",
                    provider.name,
                    package,
                    exc,
                )
                continue
            if series is None or series.is_empty:
                logger.info(
                    "provider returned no data provider=%s package=%s",
                    provider.name,
                    package,
                )
                continue
            logger.info(
                "resolved series provider=%s package=%s points=%d",
                provider.name,
                package,
                len(series.points),
            )
            return series

        raise AllProvidersExhausted(package, warehouse_diagnostics(package))

    def resolve_overall_total(self, package: str) -> OverallTotal | None:
        package = normalize_package(package)
        try:
            rows = self.stats_client.fetch_overall(package)
        except Exception as exc:
            logger.info("overall total unavailable package=%s error=%s", package, exc)
            return None

        without_mirrors = [
            row
            for row in rows
            if isinstance(row, Mapping) and row.get("category") == "without_mirrors"
        ]
        series = normalize_rows(
            without_mirrors or rows, package=package, provenance=PROVENANCE_COMMUNITY
        )
        if series.is_empty:
            return None
        first, last = series.points[0].day, series.points[-1].day
        return OverallTotal(
            total=sum(point.downloads for point in series.points),
            period=f"{first.isoformat()}:{last.isoformat()}",
        )

    def package_info(self, package: str) -> dict[str, Any]:
        return self.project_client.fetch_project_info(normalize_package(package))


class NpmResolver:
    def __init__(self, client: NpmDownloadsClient | None = None):
        self.client = client or NpmDownloadsClient()

    def resolve_date_range_series(
        self, package: str, start: date | str, end: date | str
    ) -> Series:
        package = normalize_package(package)
        try:
            start_day = coerce_date(start)
            end_day = coerce_date(end)
        except ValueError as exc:
            raise InvalidRange("from/to must be YYYY-MM-DD") from exc
        start_day, end_day = clamp_range(start_day, end_day, local_today())

        try:
            rows = self.client.fetch_daily_downloads(package, start_day, end_day)
        except NotFound:
            raise
        except Exception as exc:
            raise ProviderUnavailable(
                PROVENANCE_NPM,
                f"Failed to fetch downloads for {package}: {exc}",
            ) from exc

        return normalize_rows(
            rows,
            package=package,
            provenance=PROVENANCE_NPM,
            start=start_day,
            end=end_day,
        )

    def resolve_point_total(
        self, package: str, period: str = "last-month"
    ) -> OverallTotal | None:
        package = normalize_package(package)
        try:
            payload = self.client.fetch_point(package, period)
        except Exception as exc:
            logger.info(
                "point total unavailable package=%s period=%s error=%s",
                package,
                period,
                exc,
            )
            return None
        start = payload.get("start")
        end = payload.get("end")
        window = f"{start}:{end}" if start and end else period
        return OverallTotal(total=coerce_downloads(payload.get("downloads")), period=window)

    def package_info(self, package: str) -> dict[str, Any]:
        return self.client.fetch_package_info(normalize_package(package))
