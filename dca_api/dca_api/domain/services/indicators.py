"""Technical indicator domain service.

Every indicator has a primary implementation built on pandas and a
pure-Python fallback. The fallback runs whenever the primary raises
(including on series that are too short for the window), and the source
that produced the value is returned with it. Nothing is stored between
calls, so concurrent per-asset analyses cannot interfere with each other.

Prices are daily closes ordered oldest -> newest.
"""

import logging
import math
from collections.abc import Callable, Sequence
from typing import TypeVar

import pandas as pd

from dca_api.domain.constants import (
    ATR_PERIOD,
    BOLLINGER_PERIOD,
    BOLLINGER_STD_DEV,
    ENTRY_ATR_FACTOR,
    FALLBACK_BAND_PRICE,
    FALLBACK_BAND_WIDTH,
    MA_LONG_PERIOD,
    MA_SHORT_PERIOD,
    NEUTRAL_RSI,
    RSI_PERIOD,
    SLOPE_LOOKBACK_DAYS,
)
from dca_api.domain.entities.indicators import (
    BollingerBands,
    CalculationResult,
    IndicatorSet,
    IndicatorSource,
)
from dca_api.domain.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _round(value: float, digits: int = 2) -> float:
    return round(float(value), digits)


def _require_finite(value: float, name: str) -> float:
    if not math.isfinite(value):
        raise ValueError(f"{name} produced a non-finite value: {value}")
    return value


def _with_fallback(
    name: str,
    primary: Callable[[], T],
    fallback: Callable[[], T],
) -> CalculationResult[T]:
    """Run the primary implementation, falling back on any failure."""
    try:
        return CalculationResult(value=primary(), source=IndicatorSource.PRIMARY)
    except Exception as e:
        logger.debug(f"[Indicators] {name} primary failed ({e}), using fallback")
        return CalculationResult(value=fallback(), source=IndicatorSource.FALLBACK)


# ============================================================================
# RSI
# ============================================================================


def _wilder_average(values: pd.Series, period: int) -> float:
    """Wilder's smoothed average, seeded with the simple mean of the first period.

    An EWM with alpha = 1/period and adjust=False is exactly
    avg = (avg * (period - 1) + current) / period.
    """
    seeded = values.iloc[period - 1 :].copy()
    seeded.iloc[0] = values.iloc[:period].mean()
    return float(seeded.ewm(alpha=1.0 / period, adjust=False).mean().iloc[-1])


def _rsi_primary(prices: Sequence[float], period: int) -> float:
    if len(prices) < period + 1:
        raise InsufficientDataError(
            "Not enough prices for RSI", required=period + 1, available=len(prices)
        )

    changes = pd.Series(prices, dtype="float64").diff().iloc[1:]
    gains = changes.clip(lower=0.0)
    losses = (-changes).clip(lower=0.0)

    avg_gain = _wilder_average(gains, period)
    avg_loss = _wilder_average(losses, period)

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return _round(_require_finite(100 - (100 / (1 + rs)), "RSI"))


def _rsi_fallback(prices: Sequence[float], period: int) -> float:
    if len(prices) < period + 1:
        return NEUTRAL_RSI

    changes = [prices[i] - prices[i - 1] for i in range(1, len(prices))]

    avg_gain = 0.0
    avg_loss = 0.0
    for change in changes[:period]:
        if change > 0:
            avg_gain += change
        else:
            avg_loss += abs(change)
    avg_gain /= period
    avg_loss /= period

    for change in changes[period:]:
        current_gain = change if change > 0 else 0.0
        current_loss = -change if change < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + current_gain) / period
        avg_loss = (avg_loss * (period - 1) + current_loss) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return _round(100 - (100 / (1 + rs)))


def calculate_rsi(prices: Sequence[float], period: int = RSI_PERIOD) -> CalculationResult[float]:
    """Relative Strength Index with Wilder's smoothing.

    Returns 50 (neutral) when fewer than period + 1 prices exist and 100
    when the average loss is zero.
    """
    return _with_fallback(
        "RSI",
        lambda: _rsi_primary(prices, period),
        lambda: _rsi_fallback(prices, period),
    )


# ============================================================================
# Moving averages
# ============================================================================


def _sma_primary(prices: Sequence[float], period: int) -> float:
    if period <= 0 or len(prices) < period:
        raise InsufficientDataError(
            f"Not enough prices for SMA({period})", required=period, available=len(prices)
        )
    value = pd.Series(prices, dtype="float64").rolling(window=period).mean().iloc[-1]
    return _round(_require_finite(float(value), "SMA"))


def _sma_fallback(prices: Sequence[float], period: int) -> float:
    if not prices:
        return 0.0
    window = list(prices[-period:]) if 0 < period <= len(prices) else list(prices)
    return _round(sum(window) / len(window))


def calculate_sma(prices: Sequence[float], period: int) -> CalculationResult[float]:
    """Simple moving average of the last `period` prices.

    A series shorter than the window averages every available price.
    """
    return _with_fallback(
        f"SMA({period})",
        lambda: _sma_primary(prices, period),
        lambda: _sma_fallback(prices, period),
    )


def calculate_ma20(prices: Sequence[float]) -> CalculationResult[float]:
    return calculate_sma(prices, MA_SHORT_PERIOD)


def calculate_ma50(prices: Sequence[float]) -> CalculationResult[float]:
    return calculate_sma(prices, MA_LONG_PERIOD)


def calculate_ma50_slope(
    prices: Sequence[float],
    lookback_days: int = SLOPE_LOOKBACK_DAYS,
    period: int = MA_LONG_PERIOD,
) -> float:
    """Trend of the MA50 over `lookback_days`, as a decimal fraction.

    Compares the current MA50 with the MA50 computed `lookback_days`
    points earlier. Returns 0 (no discernible trend) when the series is
    shorter than lookback_days + period.

    Returns:
        Slope rounded to 4 dp (0.015 = MA50 rose 1.5%).
    """
    required = lookback_days + period
    if lookback_days <= 0 or len(prices) < required:
        logger.debug(
            f"[Indicators] Not enough data for MA50 slope "
            f"(have {len(prices)}, need {required})"
        )
        return 0.0

    current_ma = calculate_sma(prices, period).value
    historical_ma = calculate_sma(prices[: len(prices) - lookback_days], period).value

    if historical_ma == 0:
        return 0.0

    return round((current_ma - historical_ma) / historical_ma, 4)


def calculate_ma50_deviation(price: float, ma50: float) -> float:
    """Price vs MA50 in percent. Negative = discount, positive = premium."""
    if ma50 == 0:
        return 0.0
    return _round((price - ma50) / ma50 * 100)


# ============================================================================
# Bollinger Bands
# ============================================================================


def _bollinger_primary(prices: Sequence[float], period: int, std_dev: float) -> BollingerBands:
    if period <= 0 or len(prices) < period:
        raise InsufficientDataError(
            "Not enough prices for Bollinger Bands", required=period, available=len(prices)
        )
    window = pd.Series(prices[-period:], dtype="float64")
    middle = _require_finite(float(window.mean()), "Bollinger middle")
    sigma = _require_finite(float(window.std(ddof=0)), "Bollinger sigma")
    return BollingerBands(
        upper=_round(middle + std_dev * sigma),
        middle=_round(middle),
        lower=_round(middle - std_dev * sigma),
    )


def _bollinger_fallback(prices: Sequence[float], period: int, std_dev: float) -> BollingerBands:
    if period <= 0 or len(prices) < period:
        last_price = prices[-1] if prices else FALLBACK_BAND_PRICE
        return BollingerBands(
            upper=_round(last_price * (1 + FALLBACK_BAND_WIDTH)),
            middle=_round(last_price),
            lower=_round(last_price * (1 - FALLBACK_BAND_WIDTH)),
        )

    window = list(prices[-period:])
    middle = sum(window) / period
    variance = sum((price - middle) ** 2 for price in window) / period
    sigma = math.sqrt(variance)
    return BollingerBands(
        upper=_round(middle + std_dev * sigma),
        middle=_round(middle),
        lower=_round(middle - std_dev * sigma),
    )


def calculate_bollinger_bands(
    prices: Sequence[float],
    period: int = BOLLINGER_PERIOD,
    std_dev: float = BOLLINGER_STD_DEV,
) -> CalculationResult[BollingerBands]:
    """Bollinger Bands (population sigma) over the trailing window.

    With fewer prices than the window a narrow +/-5% band around the last
    price is returned instead of failing.
    """
    return _with_fallback(
        "Bollinger Bands",
        lambda: _bollinger_primary(prices, period, std_dev),
        lambda: _bollinger_fallback(prices, period, std_dev),
    )


def calculate_bb_width(bands: BollingerBands) -> float:
    """BB width = (upper - lower) / middle * 100."""
    if bands.middle == 0:
        return 0.0
    return _round((bands.upper - bands.lower) / bands.middle * 100)


# ============================================================================
# ATR
# ============================================================================


def _atr_primary(prices: Sequence[float], period: int) -> float:
    if period <= 0 or len(prices) < period + 1:
        raise InsufficientDataError(
            "Not enough prices for ATR", required=period + 1, available=len(prices)
        )
    true_ranges = pd.Series(prices, dtype="float64").diff().abs().iloc[1:]
    return _round(_require_finite(float(true_ranges.tail(period).mean()), "ATR"))


def _atr_fallback(prices: Sequence[float], period: int) -> float:
    if len(prices) < 2:
        return 0.0
    true_ranges = [
        max(prices[i], prices[i - 1]) - min(prices[i], prices[i - 1])
        for i in range(1, len(prices))
    ]
    relevant = true_ranges[-period:] if period > 0 else true_ranges
    return _round(sum(relevant) / len(relevant))


def calculate_atr(prices: Sequence[float], period: int = ATR_PERIOD) -> CalculationResult[float]:
    """Average True Range approximated from consecutive closes.

    There is no separate high/low feed, so each true range is the absolute
    close-to-close move. Returns 0 with fewer than 2 prices.
    """
    return _with_fallback(
        "ATR",
        lambda: _atr_primary(prices, period),
        lambda: _atr_fallback(prices, period),
    )


# ============================================================================
# Entry point
# ============================================================================


def calculate_entry_point(ma20: float, atr: float) -> float:
    """Price below which the asset is a strong buy (MA20 - 0.5 x ATR)."""
    return _round(ma20 - ENTRY_ATR_FACTOR * atr)


def is_good_entry_point(price: float, ma20: float, atr: float) -> bool:
    return price < ma20 - ENTRY_ATR_FACTOR * atr


# ============================================================================
# All indicators
# ============================================================================


def compute_indicators(prices: Sequence[float]) -> IndicatorSet:
    """Compute every indicator used by CSS scoring from one price series.

    The set is tagged FALLBACK if any individual indicator used its
    fallback implementation.
    """
    bollinger = calculate_bollinger_bands(prices)
    ma20 = calculate_ma20(prices)
    ma50 = calculate_ma50(prices)
    atr = calculate_atr(prices)
    rsi = calculate_rsi(prices)

    used_fallback = any(
        result.source is IndicatorSource.FALLBACK
        for result in (bollinger, ma20, ma50, atr, rsi)
    )

    return IndicatorSet(
        rsi=rsi.value,
        ma20=ma20.value,
        ma50=ma50.value,
        ma50_slope=calculate_ma50_slope(prices),
        bollinger=bollinger.value,
        bb_width=calculate_bb_width(bollinger.value),
        atr=atr.value,
        source=IndicatorSource.FALLBACK if used_fallback else IndicatorSource.PRIMARY,
    )
