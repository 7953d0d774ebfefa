"""Domain entities - pure dataclasses with no external dependencies.

These entities represent the core business objects in the domain model.
"""

from dca_api.domain.entities.allocation import (
    AllocationReport,
    AssetAllocation,
    AssetAnalysis,
    DeliveryResult,
    MarketCondition,
    ProvenanceSummary,
    SaveResult,
    Signal,
    TechnicalDataRow,
)
from dca_api.domain.entities.css import CompositeBreakdown, CSSWeights
from dca_api.domain.entities.indicators import (
    BollingerBands,
    CalculationResult,
    IndicatorSet,
    IndicatorSource,
)
from dca_api.domain.entities.market import (
    DataSource,
    PriceHistory,
    Quote,
    SentimentReading,
    VolatilityReading,
)
from dca_api.domain.entities.thresholds import ThresholdTable

__all__ = [
    # Market data
    "DataSource",
    "Quote",
    "PriceHistory",
    "VolatilityReading",
    "SentimentReading",
    # Indicators
    "IndicatorSource",
    "CalculationResult",
    "BollingerBands",
    "IndicatorSet",
    # CSS
    "ThresholdTable",
    "CSSWeights",
    "CompositeBreakdown",
    # Allocation
    "Signal",
    "MarketCondition",
    "AssetAnalysis",
    "AssetAllocation",
    "TechnicalDataRow",
    "ProvenanceSummary",
    "AllocationReport",
    "SaveResult",
    "DeliveryResult",
]
