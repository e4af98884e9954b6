from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from download_stats.config import PYPI_DOWNLOADS_DATASET, PYPI_DOWNLOADS_DOCS_URL

PROVENANCE_WAREHOUSE = "primary-warehouse"
PROVENANCE_COMMUNITY = "community-stats"
PROVENANCE_NPM = "npm-registry"

GRANULARITIES = ("day", "week", "month", "year")


def normalize_package(package: str) -> str:
    return package.strip().lower()


@dataclass(frozen=True)
class DailyPoint:
    day: date
    downloads: int

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.day.isoformat(), "downloads": self.downloads}


@dataclass(frozen=True)
class Series:
    package: str
    provenance: str
    points: tuple[DailyPoint, ...] = ()
    dropped: int = 0
    start: date | None = None
    end: date | None = None

    @property
    def is_empty(self) -> bool:
        return not self.points

    def to_rows(self) -> list[dict[str, Any]]:
        return [point.to_dict() for point in self.points]


@dataclass(frozen=True)
class SeriesRequest:
    period: str
    start: date
    end: date


@dataclass(frozen=True)
class AggregatedBucket:
    label: str
    downloads: int
    period_start: date
    period_end: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "downloads": self.downloads,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
        }


@dataclass(frozen=True)
class Aggregation:
    granularity: str
    buckets: list[AggregatedBucket] = field(default_factory=list)
    dropped: int = 0


@dataclass(frozen=True)
class OverallTotal:
    total: int
    period: str

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "period": self.period}


@dataclass(frozen=True)
class WarehouseDiagnostics:
    dataset: str
    documentation: str
    example_query: str
    setup_instructions: str

    def to_dict(self) -> dict[str, str]:
        return {
            "dataset": self.dataset,
            "documentation": self.documentation,
            "example_query": self.example_query,
            "setup_instructions": self.setup_instructions,
        }


def warehouse_diagnostics(package: str) -> WarehouseDiagnostics:
    return WarehouseDiagnostics(
        dataset=PYPI_DOWNLOADS_DATASET,
        documentation=PYPI_DOWNLOADS_DOCS_URL,
        example_query=(
            "SELECT COUNT(*) AS num_downloads\n"
            f"FROM `{PYPI_DOWNLOADS_DATASET}`\n"
            f"WHERE file.project = '{package}'\n"
            "  AND DATE(timestamp) BETWEEN DATE_SUB(CURRENT_DATE(), INTERVAL 30 DAY)"
            " AND CURRENT_DATE()"
        ),
        setup_instructions=(
            "To enable BigQuery: 1) Set up a GCP project, 2) Enable the BigQuery API, "
            "3) Set GOOGLE_APPLICATION_CREDENTIALS or "
            "GOOGLE_APPLICATION_CREDENTIALS_JSON"
        ),
    )
