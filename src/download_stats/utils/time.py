from __future__ import annotations

from datetime import date, datetime


def local_today() -> date:
    return date.today()


def parse_iso_date(raw: str) -> date:
    return datetime.strptime(raw.strip().strip('"'), "%Y-%m-%d").date()


def coerce_date(value: object) -> date:
    """Accept date, datetime, BigQuery ``{"value": ...}`` wrappers or ISO strings."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, dict):
        value = value.get("value")
    if value is None:
        raise ValueError("missing date")
    return parse_iso_date(str(value)[:10])


def clamp_to_today(day: date, today: date) -> date:
    return today if day > today else day
