"""Roll daily download points up into chart buckets."""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Iterable, Mapping

from download_stats.models import (
    GRANULARITIES,
    AggregatedBucket,
    Aggregation,
    DailyPoint,
    Series,
)
from download_stats.utils.time import coerce_date

PointLike = DailyPoint | Mapping[str, Any]


def _day_label(day: date) -> str:
    return day.isoformat()


def _week_label(day: date) -> str:
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def _month_label(day: date) -> str:
    return day.strftime("%b %Y")


def _year_label(day: date) -> str:
    return f"{day.year:04d}"


LABELERS: dict[str, Callable[[date], str]] = {
    "day": _day_label,
    "week": _week_label,
    "month": _month_label,
    "year": _year_label,
}


def _unpack(point: PointLike) -> tuple[object, object]:
    if isinstance(point, DailyPoint):
        return point.day, point.downloads
    return point.get("date", point.get("day")), point.get("downloads")


def coerce_downloads(value: object) -> int:
    try:
        downloads = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    return max(downloads, 0)


def bucket_by(points: Series | Iterable[PointLike], granularity: str) -> Aggregation:
    """Group points by ``granularity`` and sum downloads per group.

    Buckets are emitted in first-seen order, so a date-sorted input yields
    chronological buckets. Entries whose date cannot be parsed are skipped and
    counted in ``Aggregation.dropped``.
    """
    if granularity not in LABELERS:
        raise ValueError(
            f"granularity must be one of {', '.join(GRANULARITIES)}, got {granularity!r}"
        )
    if isinstance(points, Series):
        points = points.points

    label_for = LABELERS[granularity]
    buckets: dict[str, dict[str, Any]] = {}
    dropped = 0
    for point in points:
        raw_day, raw_downloads = _unpack(point)
        try:
            day = coerce_date(raw_day)
        except ValueError:
            dropped += 1
            continue
        downloads = coerce_downloads(raw_downloads)
        label = label_for(day)
        bucket = buckets.get(label)
        if bucket is None:
            buckets[label] = {
                "period_start": day,
                "period_end": day,
                "downloads": downloads,
            }
            continue
        bucket["period_start"] = min(bucket["period_start"], day)
        bucket["period_end"] = max(bucket["period_end"], day)
        bucket["downloads"] += downloads

    return Aggregation(
        granularity=granularity,
        buckets=[
            AggregatedBucket(
                label=label,
                downloads=int(bucket["downloads"]),
                period_start=bucket["period_start"],
                period_end=bucket["period_end"],
            )
            for label, bucket in buckets.items()
        ],
        dropped=dropped,
    )


def total_downloads(points: Series | Iterable[PointLike]) -> int:
    if isinstance(points, Series):
        points = points.points
    return sum(coerce_downloads(_unpack(point)[1]) for point in points)


def delta_from_previous(current_total: int, previous_total: int) -> int:
    return int(current_total) - int(previous_total)


def series_payload(series: Series, granularity: str) -> dict[str, Any]:
    """JSON-ready view of a series bucketed at ``granularity``.

    ``change`` is the last bucket minus the one before it, or None with fewer
    than two buckets.
    """
    aggregation = bucket_by(series, granularity)
    buckets = aggregation.buckets
    change = None
    if len(buckets) >= 2:
        change = delta_from_previous(buckets[-1].downloads, buckets[-2].downloads)
    return {
        "package": series.package,
        "source": series.provenance,
        "start": series.start.isoformat() if series.start else None,
        "end": series.end.isoformat() if series.end else None,
        "granularity": granularity,
        "data": series.to_rows(),
        "total": total_downloads(series),
        "buckets": [bucket.to_dict() for bucket in buckets],
        "change": change,
        "dropped": series.dropped + aggregation.dropped,
    }
