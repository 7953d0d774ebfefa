"""Market data entities returned by the data providers.

Every value carries the tier that produced it so callers never have to
ask a provider which source it used last.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Sentiment placeholder for callers that need a number (never scored)
NEUTRAL_SENTIMENT_PLACEHOLDER = 50.0


class DataSource(str, Enum):
    """Which fallback tier produced a market data value."""

    PRIMARY = "primary"  # yfinance
    SECONDARY = "secondary"  # direct HTTP to the Yahoo chart endpoint
    SYNTHETIC = "synthetic"  # deterministic stand-in data


@dataclass(frozen=True)
class Quote:
    """Latest quote for a symbol."""

    symbol: str
    price: float
    previous_close: float
    change: float
    change_percent: float
    volume: int
    timestamp: datetime
    source: DataSource

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "previous_close": self.previous_close,
            "change": self.change,
            "change_percent": self.change_percent,
            "volume": self.volume,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source.value,
        }


@dataclass(frozen=True)
class PriceHistory:
    """Daily closes, oldest first."""

    symbol: str
    prices: list[float]
    source: DataSource


@dataclass(frozen=True)
class VolatilityReading:
    """Volatility index (VIX) level."""

    value: float
    source: DataSource


@dataclass(frozen=True)
class SentimentReading:
    """Fear & Greed index reading.

    ``value`` is None whenever ``success`` is False. Callers must check
    ``success`` before scoring; ``numeric_value`` only exists for display.
    """

    value: float | None
    rating: str
    success: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def numeric_value(self) -> float:
        if self.success and self.value is not None:
            return self.value
        return NEUTRAL_SENTIMENT_PLACEHOLDER
