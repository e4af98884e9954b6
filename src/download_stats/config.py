from __future__ import annotations

import os
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[2]


def _unquote_env_value(value: str) -> str:
    stripped = value.strip()
    if len(stripped) >= 2 and stripped[0] == stripped[-1] and stripped[0] in {"'", '"'}:
        return stripped[1:-1]
    return stripped


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = _unquote_env_value(raw_value)


_load_env_file(ROOT_DIR / ".env")

LOG_LEVEL = (os.getenv("DOWNLOAD_STATS_LOG_LEVEL") or "INFO").strip().upper()

REQUEST_TIMEOUT_SECONDS = int(os.getenv("DOWNLOAD_STATS_TIMEOUT_SECONDS", "30"))
PYPISTATS_TIMEOUT_SECONDS = int(
    os.getenv("DOWNLOAD_STATS_PYPISTATS_TIMEOUT_SECONDS", "10")
)
OVERALL_TIMEOUT_SECONDS = int(os.getenv("DOWNLOAD_STATS_OVERALL_TIMEOUT_SECONDS", "5"))
BIGQUERY_TIMEOUT_SECONDS = int(
    os.getenv("DOWNLOAD_STATS_BIGQUERY_TIMEOUT_SECONDS", "30")
)
BIGQUERY_EXTENDED_TIMEOUT_SECONDS = int(
    os.getenv("DOWNLOAD_STATS_BIGQUERY_EXTENDED_TIMEOUT_SECONDS", "60")
)
BIGQUERY_LOCATION = (os.getenv("DOWNLOAD_STATS_BIGQUERY_LOCATION") or "US").strip() or "US"

DEFAULT_CREDENTIALS_FILE = (
    os.getenv("DOWNLOAD_STATS_CREDENTIALS_FILE") or "service-account.json"
).strip()

PYPI_DOWNLOADS_DATASET = "bigquery-public-data.pypi.file_downloads"
PYPI_DOWNLOADS_DOCS_URL = (
    "https://packaging.python.org/en/latest/guides/analyzing-pypi-package-downloads/"
)

# Lookback window per pypistats period, in days.
PERIOD_DAYS = {
    "day": 30,
    "week": 90,
    "month": 365,
}
DEFAULT_PERIOD = "month"
