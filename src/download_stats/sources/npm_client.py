from __future__ import annotations

from datetime import date
from typing import Any
from urllib.parse import quote

import requests

from download_stats.config import REQUEST_TIMEOUT_SECONDS
from download_stats.errors import NotFound

POINT_PERIODS = ("last-day", "last-week", "last-month", "last-year")


class NpmDownloadsClient:
    base_url = "https://api.npmjs.org/downloads"
    registry_url = "https://registry.npmjs.org"

    def __init__(self, timeout_seconds: int = REQUEST_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds

    def fetch_daily_downloads(
        self, package: str, start: date, end: date
    ) -> list[dict[str, Any]]:
        """Return the raw ``{"day", "downloads"}`` rows for an inclusive range."""
        encoded_package = quote(package, safe="")
        date_range = f"{start.isoformat()}:{end.isoformat()}"
        url = f"{self.base_url}/range/{date_range}/{encoded_package}"

        response = requests.get(url, timeout=self.timeout_seconds)
        if response.status_code == 404:
            raise NotFound(
                package,
                f'Package "{package}" not found on npm or download statistics '
                "not available",
            )
        response.raise_for_status()
        payload = response.json()
        rows = payload.get("downloads", [])
        if not isinstance(rows, list):
            raise ValueError(f"Unexpected npm range payload for {package}")
        return rows

    def fetch_point(self, package: str, period: str) -> dict[str, Any]:
        if period not in POINT_PERIODS:
            raise ValueError(f"Unsupported npm point period: {period}")
        encoded_package = quote(package, safe="")
        url = f"{self.base_url}/point/{period}/{encoded_package}"
        response = requests.get(url, timeout=self.timeout_seconds)
        response.raise_for_status()
        return response.json()

    def fetch_package_info(self, package: str) -> dict[str, Any]:
        encoded_package = quote(package, safe="@")
        url = f"{self.registry_url}/{encoded_package}"
        response = requests.get(url, timeout=self.timeout_seconds)
        if response.status_code == 404:
            raise NotFound(package, f"Package {package} not found")
        response.raise_for_status()
        return response.json()
