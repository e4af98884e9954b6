from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import requests
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from download_stats.aggregation import series_payload
from download_stats.config import DEFAULT_PERIOD
from download_stats.errors import (
    AllProvidersExhausted,
    InvalidRange,
    NotFound,
    ProviderUnavailable,
)
from download_stats.extended import collect_extended_stats
from download_stats.resolver import NpmResolver, PyPIResolver, default_pypi_providers
from download_stats.sources.bigquery_client import BigQueryWarehouse, build_warehouse
from download_stats.utils.time import local_today

app = FastAPI(title="Download Stats API", version="0.1.0")
logger = logging.getLogger("download_stats.api")

GRANULARITY_PATTERN = "^(day|week|month|year)$"
PERIOD_PATTERN = "^(day|week|month)$"
POINT_PERIOD_PATTERN = "^(last-day|last-week|last-month|last-year)$"
EXTENDED_TYPE_PATTERN = (
    "^(all|total|yearly|monthly|topDates|topCountries|topCountriesToday"
    "|topDatesThisMonth|customRange)$"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_request_start(request, call_next):
    logger.info(
        "request sent method=%s path=%s query=%s",
        request.method,
        request.url.path,
        request.url.query,
    )
    return await call_next(request)


@lru_cache(maxsize=1)
def _warehouse() -> BigQueryWarehouse | None:
    # Built once per process; a failed build stays None until restart.
    return build_warehouse()


def _pypi_resolver() -> PyPIResolver:
    return PyPIResolver(default_pypi_providers(_warehouse()))


def _npm_resolver() -> NpmResolver:
    return NpmResolver()


def _require_package(package: str) -> str:
    name = package.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Package name is required")
    return name


@app.get("/api/v1/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/npm/downloads")
def npm_downloads(
    package: str = Query(..., description="npm package name"),
    from_date: str = Query(..., alias="from", description="YYYY-MM-DD, inclusive"),
    to_date: str = Query(..., alias="to", description="YYYY-MM-DD, inclusive"),
    granularity: str = Query("day", pattern=GRANULARITY_PATTERN),
) -> dict[str, Any]:
    resolver = _npm_resolver()
    try:
        series = resolver.resolve_date_range_series(
            _require_package(package), from_date, to_date
        )
    except InvalidRange as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProviderUnavailable as exc:
        logger.warning("npm range failed package=%s error=%s", package, exc)
        raise HTTPException(status_code=502, detail=exc.reason) from exc
    return {"success": True, **series_payload(series, granularity)}


@app.get("/api/v1/npm/point")
def npm_point(
    package: str = Query(..., description="npm package name"),
    period: str = Query("last-month", pattern=POINT_PERIOD_PATTERN),
) -> dict[str, Any]:
    total = _npm_resolver().resolve_point_total(_require_package(package), period)
    return {"success": True, "point": total.to_dict() if total else None}


@app.get("/api/v1/npm/info")
def npm_info(package: str = Query(..., description="npm package name")) -> dict[str, Any]:
    try:
        return _npm_resolver().package_info(_require_package(package))
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except requests.RequestException as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@app.get("/api/v1/pypi/stats")
def pypi_stats(
    package: str = Query(..., description="PyPI project name"),
    period: str = Query(DEFAULT_PERIOD, pattern=PERIOD_PATTERN),
    granularity: str = Query("day", pattern=GRANULARITY_PATTERN),
    overall: bool = Query(False, description="Return only the overall total"),
) -> dict[str, Any]:
    name = _require_package(package)
    resolver = _pypi_resolver()

    if overall:
        total = resolver.resolve_overall_total(name)
        return {"success": True, "overall": total.to_dict() if total else None}

    try:
        series = resolver.resolve_daily_series(name, period)
    except AllProvidersExhausted as exc:
        raise HTTPException(
            status_code=404,
            detail={
                "success": False,
                "error": "Download statistics not available",
                "message": str(exc),
                "warehouse_info": exc.diagnostics.to_dict(),
            },
        ) from exc
    payload = {"success": True, **series_payload(series, granularity)}
    payload["period"] = period
    return payload


@app.get("/api/v1/pypi/stats/extended")
def pypi_stats_extended(
    package: str = Query(..., description="PyPI project name"),
    query_type: str = Query("all", alias="type", pattern=EXTENDED_TYPE_PATTERN),
    from_date: str | None = Query(None, alias="from"),
    to_date: str | None = Query(None, alias="to"),
) -> dict[str, Any]:
    name = _require_package(package)
    warehouse = _warehouse()
    if warehouse is None:
        raise HTTPException(status_code=503, detail="BigQuery not available")
    try:
        results = collect_extended_stats(
            warehouse, name, query_type, start=from_date, end=to_date
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "success": True,
        "package": name.lower(),
        "source": "bigquery",
        "generated_on": local_today().isoformat(),
        "data": results,
    }


@app.get("/api/v1/pypi/info")
def pypi_info(package: str = Query(..., description="PyPI project name")) -> dict[str, Any]:
    try:
        return _pypi_resolver().package_info(_require_package(package))
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except requests.RequestException as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
