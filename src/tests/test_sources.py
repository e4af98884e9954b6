from datetime import date

import pytest
import requests

from download_stats.errors import NotFound
from download_stats.sources import npm_client, pypi_client, pypistats_client
from download_stats.sources.npm_client import NpmDownloadsClient
from download_stats.sources.pypi_client import PyPIProjectClient
from download_stats.sources.pypistats_client import PyPIStatsClient


class _FakeResponse:
    def __init__(self, status_code: int = 200, payload=None) -> None:
        self.status_code = status_code
        self._payload = payload if payload is not None else {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class _Recorder:
    def __init__(self, response: _FakeResponse) -> None:
        self.response = response
        self.calls: list[dict] = []

    def __call__(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        return self.response


def test_npm_range_url_and_rows(monkeypatch) -> None:
    recorder = _Recorder(
        _FakeResponse(payload={"downloads": [{"day": "2024-05-01", "downloads": 7}]})
    )
    monkeypatch.setattr(npm_client.requests, "get", recorder)

    rows = NpmDownloadsClient(timeout_seconds=3).fetch_daily_downloads(
        "@scope/pkg", date(2024, 5, 1), date(2024, 5, 2)
    )

    assert rows == [{"day": "2024-05-01", "downloads": 7}]
    assert recorder.calls[0]["url"] == (
        "https://api.npmjs.org/downloads/range/2024-05-01:2024-05-02/%40scope%2Fpkg"
    )
    assert recorder.calls[0]["timeout"] == 3


def test_npm_range_404_is_not_found(monkeypatch) -> None:
    monkeypatch.setattr(npm_client.requests, "get", _Recorder(_FakeResponse(404)))

    with pytest.raises(NotFound, match="not found on npm"):
        NpmDownloadsClient().fetch_daily_downloads("ghost", date(2024, 5, 1), date(2024, 5, 2))


def test_npm_range_server_error_propagates(monkeypatch) -> None:
    monkeypatch.setattr(npm_client.requests, "get", _Recorder(_FakeResponse(503)))

    with pytest.raises(requests.HTTPError):
        NpmDownloadsClient().fetch_daily_downloads("react", date(2024, 5, 1), date(2024, 5, 2))


def test_npm_point_rejects_unknown_period() -> None:
    with pytest.raises(ValueError, match="period"):
        NpmDownloadsClient().fetch_point("react", "last-century")


def test_pypistats_recent_passes_period(monkeypatch) -> None:
    recorder = _Recorder(
        _FakeResponse(payload={"data": [{"date": "2024-06-01", "downloads": 42}]})
    )
    monkeypatch.setattr(pypistats_client.requests, "get", recorder)

    rows = PyPIStatsClient(timeout_seconds=10).fetch_recent("requests", "week")

    assert rows == [{"date": "2024-06-01", "downloads": 42}]
    assert recorder.calls[0]["url"] == "https://pypistats.org/api/packages/requests/recent"
    assert recorder.calls[0]["params"] == {"period": "week"}
    assert recorder.calls[0]["timeout"] == 10


def test_pypistats_recent_summary_payload_has_no_series(monkeypatch) -> None:
    payload = {"data": {"last_day": 1, "last_week": 7, "last_month": 30}}
    monkeypatch.setattr(pypistats_client.requests, "get", _Recorder(_FakeResponse(payload=payload)))

    assert PyPIStatsClient().fetch_recent("requests", "day") == []


def test_pypistats_overall_uses_short_timeout(monkeypatch) -> None:
    recorder = _Recorder(_FakeResponse(payload={"data": []}))
    monkeypatch.setattr(pypistats_client.requests, "get", recorder)

    PyPIStatsClient(overall_timeout_seconds=5).fetch_overall("requests")

    assert recorder.calls[0]["timeout"] == 5


def test_pypi_project_404_is_not_found(monkeypatch) -> None:
    monkeypatch.setattr(pypi_client.requests, "get", _Recorder(_FakeResponse(404)))

    with pytest.raises(NotFound, match="not found on PyPI"):
        PyPIProjectClient().fetch_project_info("ghost")
