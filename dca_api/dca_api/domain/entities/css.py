"""Composite Signal Score (CSS) entities."""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class CSSWeights:
    """Weights applied to each indicator score (must sum to 1.0)."""

    vix: float
    rsi: float
    bb_width: float
    ma50: float
    sentiment: float

    @property
    def total(self) -> float:
        return self.vix + self.rsi + self.bb_width + self.ma50 + self.sentiment

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class CompositeBreakdown:
    """Per-asset CSS breakdown: indicator scores, raw inputs and result."""

    # Individual indicator scores (0-100)
    vix_score: float
    rsi_score: float
    bb_width_score: float
    ma50_score: float  # before slope adjustment
    ma50_score_adjusted: float  # after slope bonus (deep-discount zone only)
    sentiment_score: float | None  # None when sentiment is unavailable

    # Raw indicator values
    vix_value: float
    rsi_value: float
    bb_width_value: float
    ma50_deviation_percent: float
    ma50_slope: float
    ma50_slope_bonus: float
    sentiment_value: float | None

    # Weights actually used
    weights: CSSWeights

    # Result
    total_score: float  # clamped to 0-100, 2 dp
    multiplier: float

    # Status flags
    sentiment_unavailable: bool
    weights_redistributed: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["weights"] = self.weights.to_dict()
        return data
