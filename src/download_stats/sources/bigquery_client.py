from __future__ import annotations

import logging
from datetime import date
from typing import Any

from google.cloud import bigquery

from download_stats.config import (
    BIGQUERY_EXTENDED_TIMEOUT_SECONDS,
    BIGQUERY_LOCATION,
    BIGQUERY_TIMEOUT_SECONDS,
    PYPI_DOWNLOADS_DATASET,
)
from download_stats.sources.credentials import ResolvedCredentials, resolve_credentials

logger = logging.getLogger("download_stats.warehouse")

DAILY_DOWNLOADS_SQL = f"""
SELECT
  DATE(timestamp) AS date,
  COUNT(*) AS downloads
FROM `{PYPI_DOWNLOADS_DATASET}`
WHERE file.project = @package
  AND DATE(timestamp) BETWEEN @start_date AND @end_date
GROUP BY date
ORDER BY date ASC
"""

TOTAL_DOWNLOADS_SQL = f"""
SELECT COUNT(*) AS total_downloads
FROM `{PYPI_DOWNLOADS_DATASET}`
WHERE file.project = @package
"""

YEAR_DOWNLOADS_SQL = f"""
SELECT COUNT(*) AS total_downloads
FROM `{PYPI_DOWNLOADS_DATASET}`
WHERE file.project = @package
  AND EXTRACT(YEAR FROM timestamp) = @year
"""

MONTHLY_DOWNLOADS_SQL = f"""
SELECT
  EXTRACT(MONTH FROM timestamp) AS month,
  COUNT(*) AS num_downloads
FROM `{PYPI_DOWNLOADS_DATASET}`
WHERE file.project = @package
  AND EXTRACT(YEAR FROM timestamp) = @year
GROUP BY month
ORDER BY month ASC
"""

TOP_DATES_SQL = f"""
SELECT
  DATE(timestamp) AS download_date,
  COUNT(*) AS num_downloads
FROM `{PYPI_DOWNLOADS_DATASET}`
WHERE file.project = @package
  AND DATE(timestamp) BETWEEN @start_date AND @end_date
GROUP BY download_date
ORDER BY num_downloads DESC
LIMIT @row_limit
"""

TOP_COUNTRIES_SQL = f"""
SELECT
  country_code,
  COUNT(*) AS num_downloads
FROM `{PYPI_DOWNLOADS_DATASET}`
WHERE file.project = @package
  AND DATE(timestamp) BETWEEN @start_date AND @end_date
  AND country_code IS NOT NULL
GROUP BY country_code
ORDER BY num_downloads DESC
LIMIT @row_limit
"""


def _package_param(package: str) -> bigquery.ScalarQueryParameter:
    return bigquery.ScalarQueryParameter("package", "STRING", package)


def _range_params(start: date, end: date) -> list[bigquery.ScalarQueryParameter]:
    return [
        bigquery.ScalarQueryParameter("start_date", "DATE", start),
        bigquery.ScalarQueryParameter("end_date", "DATE", end),
    ]


class BigQueryWarehouse:
    """Parameterized queries over the public PyPI downloads dataset."""

    def __init__(
        self,
        client: bigquery.Client,
        *,
        location: str = BIGQUERY_LOCATION,
        timeout_seconds: int = BIGQUERY_TIMEOUT_SECONDS,
        extended_timeout_seconds: int = BIGQUERY_EXTENDED_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.location = location
        self.timeout_seconds = timeout_seconds
        self.extended_timeout_seconds = extended_timeout_seconds

    def run_query(
        self,
        sql: str,
        params: list[bigquery.ScalarQueryParameter],
        *,
        timeout_seconds: int | None = None,
    ) -> list[dict[str, Any]]:
        timeout = timeout_seconds or self.timeout_seconds
        job_config = bigquery.QueryJobConfig(query_parameters=params)
        job_config.job_timeout_ms = int(timeout * 1000)
        job = self.client.query(sql, job_config=job_config, location=self.location)
        try:
            rows = job.result(timeout=timeout)
        except Exception:
            self._cancel(job)
            raise
        return [dict(row.items()) for row in rows]

    @staticmethod
    def _cancel(job: Any) -> None:
        try:
            job.cancel()
        except Exception as exc:
            logger.debug("could not cancel job %s: %s", getattr(job, "job_id", "?"), exc)

    def daily_downloads(
        self, package: str, start: date, end: date
    ) -> list[dict[str, Any]]:
        return self.run_query(
            DAILY_DOWNLOADS_SQL, [_package_param(package), *_range_params(start, end)]
        )

    def total_downloads(self, package: str) -> int:
        rows = self.run_query(
            TOTAL_DOWNLOADS_SQL,
            [_package_param(package)],
            timeout_seconds=self.extended_timeout_seconds,
        )
        return int(rows[0].get("total_downloads") or 0) if rows else 0

    def downloads_in_year(self, package: str, year: int) -> int:
        rows = self.run_query(
            YEAR_DOWNLOADS_SQL,
            [_package_param(package), bigquery.ScalarQueryParameter("year", "INT64", year)],
            timeout_seconds=self.extended_timeout_seconds,
        )
        return int(rows[0].get("total_downloads") or 0) if rows else 0

    def monthly_downloads(self, package: str, year: int) -> list[dict[str, Any]]:
        return self.run_query(
            MONTHLY_DOWNLOADS_SQL,
            [_package_param(package), bigquery.ScalarQueryParameter("year", "INT64", year)],
            timeout_seconds=self.extended_timeout_seconds,
        )

    def top_dates(
        self, package: str, start: date, end: date, limit: int = 10
    ) -> list[dict[str, Any]]:
        return self.run_query(
            TOP_DATES_SQL,
            [
                _package_param(package),
                *_range_params(start, end),
                bigquery.ScalarQueryParameter("row_limit", "INT64", limit),
            ],
            timeout_seconds=self.extended_timeout_seconds,
        )

    def top_countries(
        self, package: str, start: date, end: date, limit: int = 10
    ) -> list[dict[str, Any]]:
        return self.run_query(
            TOP_COUNTRIES_SQL,
            [
                _package_param(package),
                *_range_params(start, end),
                bigquery.ScalarQueryParameter("row_limit", "INT64", limit),
            ],
            timeout_seconds=self.extended_timeout_seconds,
        )


def build_warehouse(
    resolved: ResolvedCredentials | None = None,
) -> BigQueryWarehouse | None:
    """Construct the warehouse handle, or return None when it cannot be built."""
    resolved = resolved or resolve_credentials()
    if resolved is None:
        return None
    try:
        client = bigquery.Client(
            project=resolved.project_id, credentials=resolved.credentials
        )
    except Exception as exc:
        logger.warning(
            "BigQuery not available origin=%s error=%s", resolved.origin, exc
        )
        return None
    logger.info("BigQuery client ready project=%s", client.project)
    return BigQueryWarehouse(client)
