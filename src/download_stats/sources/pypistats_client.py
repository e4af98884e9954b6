from __future__ import annotations

from typing import Any

import requests

from download_stats.config import OVERALL_TIMEOUT_SECONDS, PYPISTATS_TIMEOUT_SECONDS


class PyPIStatsClient:
    base_url = "https://pypistats.org/api/packages"

    def __init__(
        self,
        timeout_seconds: int = PYPISTATS_TIMEOUT_SECONDS,
        overall_timeout_seconds: int = OVERALL_TIMEOUT_SECONDS,
    ):
        self.timeout_seconds = timeout_seconds
        self.overall_timeout_seconds = overall_timeout_seconds

    def fetch_recent(self, package: str, period: str) -> list[dict[str, Any]]:
        url = f"{self.base_url}/{package}/recent"
        response = requests.get(
            url, params={"period": period}, timeout=self.timeout_seconds
        )
        response.raise_for_status()

        payload = response.json()
        raw_rows = payload.get("data", [])
        if isinstance(raw_rows, dict):
            raw_rows = raw_rows.get("data", [])
        if not isinstance(raw_rows, list):
            return []
        return raw_rows

    def fetch_overall(self, package: str) -> list[dict[str, Any]]:
        url = f"{self.base_url}/{package}/overall"
        response = requests.get(
            url, params={"mirrors": "false"}, timeout=self.overall_timeout_seconds
        )
        response.raise_for_status()

        raw_rows = response.json().get("data", [])
        if not isinstance(raw_rows, list):
            return []
        return raw_rows
