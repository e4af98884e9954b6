from __future__ import annotations

from typing import Any

import requests

from download_stats.config import REQUEST_TIMEOUT_SECONDS
from download_stats.errors import NotFound


class PyPIProjectClient:
    base_url = "https://pypi.org/pypi"

    def __init__(self, timeout_seconds: int = REQUEST_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds

    def fetch_project_info(self, package: str) -> dict[str, Any]:
        url = f"{self.base_url}/{package}/json"
        response = requests.get(url, timeout=self.timeout_seconds)
        if response.status_code == 404:
            raise NotFound(package, f"Package {package} not found on PyPI")
        response.raise_for_status()
        return response.json()
