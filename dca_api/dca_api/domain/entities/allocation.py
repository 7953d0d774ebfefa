"""Allocation-related domain entities."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from dca_api.domain.entities.css import CompositeBreakdown
from dca_api.domain.entities.indicators import IndicatorSet
from dca_api.domain.entities.market import DataSource, Quote


class Signal(str, Enum):
    """Per-asset signal. There is no SELL: the minimum is always invested."""

    BUY = "BUY"
    HOLD = "HOLD"


class MarketCondition(str, Enum):
    """Market condition derived from the volatility index."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class AssetAnalysis:
    """Everything computed for one asset before allocation."""

    symbol: str
    quote: Quote
    history_source: DataSource
    indicators: IndicatorSet
    breakdown: CompositeBreakdown
    signal: Signal


@dataclass(frozen=True)
class AssetAllocation:
    """Final investment amount for one asset."""

    symbol: str
    base_percentage: float
    base_amount: float
    multiplier: float
    final_amount: float
    composite_score: float
    percentage_of_budget: float
    reasoning: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TechnicalDataRow:
    """Per-asset indicator snapshot included in the report."""

    symbol: str
    price: float
    rsi: float
    ma20: float
    ma50: float
    ma50_slope: float
    atr: float
    bb_width: float
    ma50_deviation: float
    composite_score: float
    multiplier: float
    entry_point: float
    is_good_entry: bool
    data_source: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ProvenanceSummary:
    """Which tiers produced the data behind a report."""

    volatility_source: DataSource
    quote_sources: dict[str, str]
    history_sources: dict[str, str]
    indicator_sources: dict[str, str]
    sentiment_available: bool
    excluded_symbols: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True when any value came from a non-primary source."""
        sources = (
            [self.volatility_source.value]
            + list(self.quote_sources.values())
            + list(self.history_sources.values())
            + list(self.indicator_sources.values())
        )
        return (
            any(source != "primary" for source in sources)
            or not self.sentiment_available
            or bool(self.excluded_symbols)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "volatility_source": self.volatility_source.value,
            "quote_sources": dict(self.quote_sources),
            "history_sources": dict(self.history_sources),
            "indicator_sources": dict(self.indicator_sources),
            "sentiment_available": self.sentiment_available,
            "excluded_symbols": list(self.excluded_symbols),
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class AllocationReport:
    """Result of one allocation run, handed to reporting collaborators."""

    timestamp: datetime
    total_amount: float  # sum of final amounts, not the nominal budget
    base_budget: float
    min_budget: float
    max_budget: float

    # Market-wide indicators
    vix: float
    sentiment_index: float | None
    sentiment_rating: str
    sentiment_unavailable: bool
    market_css: float
    market_condition: MarketCondition

    allocations: list[AssetAllocation]
    recommendations: list[str]
    technical_data: list[TechnicalDataRow]
    provenance: ProvenanceSummary

    @property
    def report_date(self) -> str:
        """Report date (YYYY-MM-DD), used to key stored snapshots."""
        return self.timestamp.date().isoformat()

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "total_amount": self.total_amount,
            "base_budget": self.base_budget,
            "min_budget": self.min_budget,
            "max_budget": self.max_budget,
            "vix": self.vix,
            "sentiment_index": self.sentiment_index,
            "sentiment_rating": self.sentiment_rating,
            "sentiment_unavailable": self.sentiment_unavailable,
            "market_css": self.market_css,
            "market_condition": self.market_condition.value,
            "allocations": [a.to_dict() for a in self.allocations],
            "recommendations": list(self.recommendations),
            "technical_data": [row.to_dict() for row in self.technical_data],
            "provenance": self.provenance.to_dict(),
        }


@dataclass(frozen=True)
class SaveResult:
    """Outcome of persisting a report."""

    success: bool
    report_id: str | None = None
    error: str | None = None
    replaced: bool = False


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of the best-effort delivery steps after a run."""

    saved: SaveResult
    email_sent: bool
    email_error: str | None = None
