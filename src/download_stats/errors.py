"""Domain errors raised by the resolvers and translated to HTTP by the API."""

from __future__ import annotations

from download_stats.models import WarehouseDiagnostics


class DownloadStatsError(Exception):
    """Base class for every error this package raises on purpose."""


class InvalidRange(DownloadStatsError, ValueError):
    """``from`` is after ``to`` once both are clamped to today."""


class NotFound(DownloadStatsError):
    """The provider reports that the package does not exist."""

    def __init__(self, package: str, message: str | None = None) -> None:
        self.package = package
        super().__init__(message or f'Package "{package}" not found')


class ProviderUnavailable(DownloadStatsError):
    """A single provider timed out, errored or returned something unusable."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} unavailable: {reason}")


class AllProvidersExhausted(DownloadStatsError):
    """Every provider in the chain failed or came back empty."""

    def __init__(self, package: str, diagnostics: WarehouseDiagnostics) -> None:
        self.package = package
        self.diagnostics = diagnostics
        super().__init__(
            f'Package "{package}" download statistics are not available '
            "through public APIs."
        )
