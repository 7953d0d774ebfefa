"""Composite Signal Score (CSS) domain service.

The CSS blends five indicator scores (0-100 each, higher = more fear =
better buying opportunity) into one score per asset:

    CSS = VIX*0.20 + RSI*0.30 + BB*0.15 + MA50*0.20 + Sentiment*0.15

When the Fear & Greed index could not be fetched its weight is split
evenly onto VIX and RSI (0.275 / 0.375). The score is clamped to [0, 100]
and mapped to an investment multiplier in [0.5, 1.2].

Inside the deep-discount zone (price >= 10% below MA50) the MA50 score is
adjusted by the MA50 trend: a falling MA50 means the discount may be a
falling knife, a rising one means a dip in an uptrend.
"""

import math

from dca_api.domain.constants import (
    BUY_SIGNAL_CSS,
    CSS_WEIGHTS,
    CSS_WEIGHTS_NO_SENTIMENT,
    DEEP_DISCOUNT_DEVIATION,
    MA50_ADJUSTED_MAX,
    MA50_ADJUSTED_MIN,
    MA50_SLOPE_BONUS_FLOOR,
    MA50_SLOPE_BONUS_STEPS,
)
from dca_api.domain.entities.allocation import Signal
from dca_api.domain.entities.css import CompositeBreakdown, CSSWeights
from dca_api.domain.entities.indicators import IndicatorSet
from dca_api.domain.entities.market import SentimentReading
from dca_api.domain.services.indicators import calculate_ma50_deviation
from dca_api.domain.services.thresholds import (
    bb_width_score,
    ma50_score,
    rsi_score,
    score_to_multiplier,
    sentiment_score,
    vix_score,
)


def select_weights(sentiment_available: bool) -> CSSWeights:
    """Primary weights, or the redistributed set when sentiment is missing."""
    return CSS_WEIGHTS if sentiment_available else CSS_WEIGHTS_NO_SENTIMENT


def ma50_slope_bonus(ma50_deviation: float, ma50_slope: float) -> float:
    """Trend bonus applied to the MA50 score in the deep-discount zone.

    Outside the zone (deviation > -10%) the bonus is always 0, whatever
    the slope.

    Args:
        ma50_deviation: Price vs MA50 in percent
        ma50_slope: MA50 slope as a decimal fraction (0.01 = +1%)
    """
    if ma50_deviation > DEEP_DISCOUNT_DEVIATION:
        return 0.0

    for lower_bound, bonus in MA50_SLOPE_BONUS_STEPS:
        if ma50_slope > lower_bound:
            return bonus
    return MA50_SLOPE_BONUS_FLOOR


def adjusted_ma50_score(ma50_deviation: float, ma50_slope: float) -> float:
    """MA50 score after the slope bonus.

    In the deep-discount zone the result is clamped to [20, 90], which is
    narrower than the raw score range [10, 90]. Outside the zone the raw
    score is returned untouched.
    """
    base = ma50_score(ma50_deviation)
    if ma50_deviation > DEEP_DISCOUNT_DEVIATION:
        return base

    adjusted = base + ma50_slope_bonus(ma50_deviation, ma50_slope)
    return max(MA50_ADJUSTED_MIN, min(MA50_ADJUSTED_MAX, adjusted))


def calculate_composite_score(
    vix: float,
    rsi: float,
    bb_width: float,
    ma50_deviation: float,
    ma50_slope: float,
    sentiment: float | None,
) -> CompositeBreakdown:
    """Score every indicator and blend them into the CSS.

    Args:
        vix: Volatility index level
        rsi: RSI(14) of the asset
        bb_width: Bollinger Band width in percent
        ma50_deviation: Price vs MA50 in percent
        ma50_slope: MA50 slope as a decimal fraction
        sentiment: Fear & Greed value (0-100), or None when unavailable

    Returns:
        CompositeBreakdown with the scores, the weights actually used, the
        clamped total (2 dp) and its multiplier.
    """
    sentiment_available = sentiment is not None
    weights = select_weights(sentiment_available)

    scores_vix = vix_score(vix)
    scores_rsi = rsi_score(rsi)
    scores_bb = bb_width_score(bb_width)
    scores_ma50 = ma50_score(ma50_deviation)
    bonus = ma50_slope_bonus(ma50_deviation, ma50_slope)
    scores_ma50_adjusted = adjusted_ma50_score(ma50_deviation, ma50_slope)
    scores_sentiment = sentiment_score(sentiment) if sentiment_available else None

    total = (
        scores_vix * weights.vix
        + scores_rsi * weights.rsi
        + scores_bb * weights.bb_width
        + scores_ma50_adjusted * weights.ma50
        + (scores_sentiment or 0.0) * weights.sentiment
    )
    total = max(0.0, min(100.0, total))

    return CompositeBreakdown(
        vix_score=scores_vix,
        rsi_score=scores_rsi,
        bb_width_score=scores_bb,
        ma50_score=scores_ma50,
        ma50_score_adjusted=scores_ma50_adjusted,
        sentiment_score=scores_sentiment,
        vix_value=vix,
        rsi_value=rsi,
        bb_width_value=bb_width,
        ma50_deviation_percent=ma50_deviation,
        ma50_slope=ma50_slope,
        ma50_slope_bonus=bonus,
        sentiment_value=sentiment,
        weights=weights,
        total_score=round(total, 2),
        multiplier=score_to_multiplier(total),
        sentiment_unavailable=not sentiment_available,
        weights_redistributed=not sentiment_available,
    )


def calculate_breakdown(
    vix: float,
    price: float,
    indicators: IndicatorSet,
    sentiment: SentimentReading,
) -> CompositeBreakdown:
    """CSS breakdown for one asset from its indicators and market readings."""
    deviation = calculate_ma50_deviation(price, indicators.ma50)
    return calculate_composite_score(
        vix=vix,
        rsi=indicators.rsi,
        bb_width=indicators.bb_width,
        ma50_deviation=deviation,
        ma50_slope=indicators.ma50_slope,
        sentiment=sentiment.value if sentiment.success else None,
    )


def calculate_market_css(vix: float, sentiment: float | None) -> float:
    """Market-wide CSS from the volatility and sentiment components only.

    The two weights (0.20 and 0.15) are renormalized over their sum. Without
    sentiment the market CSS is the VIX score alone. Reporting only, never
    used to size an allocation.
    """
    score_vix = vix_score(vix)
    if sentiment is None:
        return round(score_vix, 2)

    weights = CSS_WEIGHTS
    combined = (score_vix * weights.vix + sentiment_score(sentiment) * weights.sentiment) / (
        weights.vix + weights.sentiment
    )
    return round(combined, 2)


def css_interpretation(score: float) -> str:
    """Human-readable label for a CSS value."""
    if not math.isfinite(score):
        return "Unknown"
    if score <= 20:
        return "Extreme Greed - minimum investment"
    if score <= 35:
        return "Greed - reduced investment"
    if score <= 50:
        return "Slightly Greedy - below average investment"
    if score <= 60:
        return "Neutral - standard investment"
    if score <= 75:
        return "Fear - increased investment"
    return "Extreme Fear - maximum investment"


def signal_from_css(score: float) -> Signal:
    """BUY at or above the neutral line, HOLD below it (never SELL)."""
    return Signal.BUY if score >= BUY_SIGNAL_CSS else Signal.HOLD
