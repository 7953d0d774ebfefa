"""Technical indicator entities."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class IndicatorSource(str, Enum):
    """Which implementation produced an indicator value."""

    PRIMARY = "primary"  # pandas
    FALLBACK = "fallback"  # pure-Python implementation


@dataclass(frozen=True)
class CalculationResult(Generic[T]):
    """An indicator value tagged with the implementation that produced it."""

    value: T
    source: IndicatorSource


@dataclass(frozen=True)
class BollingerBands:
    """Bollinger Bands at the latest point of a series."""

    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class IndicatorSet:
    """All indicators derived from one price series."""

    rsi: float
    ma20: float
    ma50: float
    ma50_slope: float  # decimal fraction, e.g. 0.015 = +1.5%
    bollinger: BollingerBands
    bb_width: float  # percent of middle band
    atr: float
    source: IndicatorSource  # FALLBACK if any component used the fallback

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "rsi": self.rsi,
            "ma20": self.ma20,
            "ma50": self.ma50,
            "ma50_slope": self.ma50_slope,
            "bollinger": {
                "upper": self.bollinger.upper,
                "middle": self.bollinger.middle,
                "lower": self.bollinger.lower,
            },
            "bb_width": self.bb_width,
            "atr": self.atr,
            "source": self.source.value,
        }
