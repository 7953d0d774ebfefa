"""Protocol definitions for dependency injection."""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from dca_api.domain.entities import (
        AllocationReport,
        PriceHistory,
        Quote,
        SaveResult,
        SentimentReading,
        VolatilityReading,
    )


class MarketDataSource(Protocol):
    """Protocol for quote, history and volatility index data.

    Implementations degrade through their own fallback tiers and never
    raise; the returned value records which tier produced it.
    """

    async def fetch_quote(self, symbol: str) -> "Quote":
        """Fetch the latest quote for a symbol."""
        ...

    async def fetch_history(self, symbol: str, lookback_days: int) -> "PriceHistory":
        """Fetch up to lookback_days daily closes, oldest first."""
        ...

    async def fetch_volatility_index(self) -> "VolatilityReading":
        """Fetch the current VIX level."""
        ...


class SentimentSource(Protocol):
    """Protocol for the Fear & Greed index. Failures set success=False."""

    async def fetch(self) -> "SentimentReading":
        """Fetch the current sentiment reading."""
        ...


class ReportStore(Protocol):
    """Protocol for persisting allocation reports."""

    def save(self, report: "AllocationReport") -> "SaveResult":
        """Persist a report. Errors are returned, not raised."""
        ...


class ReportNotifier(Protocol):
    """Protocol for delivering allocation reports to a human."""

    def send(self, report: "AllocationReport") -> bool:
        """Send a report. Raises on delivery failure."""
        ...
