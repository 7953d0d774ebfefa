"""Allocation domain service.

Pure functions turning per-asset CSS analyses into investment amounts and
the report that goes to the reporting collaborators. The async
orchestration that gathers the analyses lives in ``core.pipeline``.
"""

import math
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

from dca_api.domain.constants import (
    BASE_ALLOCATIONS,
    BEARISH_VIX_ABOVE,
    BULLISH_VIX_BELOW,
    DISCOUNT_DEVIATION,
    HIGH_CSS_OPPORTUNITY,
    MAX_BUDGET_FACTOR,
    MIN_BUDGET_FACTOR,
    OVERBOUGHT_RSI,
    OVERSOLD_RSI,
)
from dca_api.domain.entities.allocation import (
    AllocationReport,
    AssetAllocation,
    AssetAnalysis,
    MarketCondition,
    ProvenanceSummary,
    TechnicalDataRow,
)
from dca_api.domain.entities.indicators import IndicatorSource
from dca_api.domain.entities.market import DataSource, SentimentReading, VolatilityReading
from dca_api.domain.services.css_scoring import calculate_market_css, css_interpretation
from dca_api.domain.services.indicators import calculate_entry_point, is_good_entry_point

# Bounds are compared after rounding to this many places so float noise
# (e.g. 30.000000000000004) cannot push ceil/floor to the next unit.
_BOUND_PRECISION = 6


# ============================================================================
# Budget math
# ============================================================================


def budget_bounds(base_budget: float) -> tuple[float, float]:
    """(min_budget, max_budget) for a weekly base budget."""
    return base_budget * MIN_BUDGET_FACTOR, base_budget * MAX_BUDGET_FACTOR


def base_percentage(
    symbol: str,
    base_allocations: Mapping[str, float] = BASE_ALLOCATIONS,
) -> float:
    """Target share of the budget for a symbol, in percent.

    Unknown symbols get an equal share, 100 / N with N the table size.
    """
    if symbol in base_allocations:
        return base_allocations[symbol]
    if not base_allocations:
        return 100.0
    return 100.0 / len(base_allocations)


def sanitize_multiplier(multiplier: float) -> float:
    """A non-finite multiplier is treated as neutral (1.0), never propagated."""
    if multiplier is None or not math.isfinite(multiplier):
        return 1.0
    return multiplier


def round_within_bounds(amount: float, lower: float, upper: float) -> float:
    """Round half-up to a whole unit without leaving [lower, upper].

    When the nearest whole unit falls outside the bounds the closest whole
    unit inside them is used instead. If no whole unit fits (e.g. bounds
    [3.2, 3.8]) the unrounded amount is kept.
    """
    lower = round(lower, _BOUND_PRECISION)
    upper = round(upper, _BOUND_PRECISION)

    rounded = math.floor(amount + 0.5)
    if lower <= rounded <= upper:
        return float(rounded)

    lowest_whole = math.ceil(lower)
    highest_whole = math.floor(upper)
    if lowest_whole > highest_whole:
        return amount
    return float(lowest_whole if rounded < lower else highest_whole)


def calculate_investment_amount(
    base_amount: float,
    multiplier: float,
    min_amount: float,
    max_amount: float,
) -> float:
    """base_amount x multiplier, clamped to [min_amount, max_amount] and rounded."""
    raw = base_amount * sanitize_multiplier(multiplier)
    clamped = max(min_amount, min(max_amount, raw))
    return round_within_bounds(clamped, min_amount, max_amount)


# ============================================================================
# Reasoning
# ============================================================================


def build_reasoning(analysis: AssetAnalysis) -> str:
    """Short human explanation of why an asset got its multiplier."""
    breakdown = analysis.breakdown
    rsi = analysis.indicators.rsi
    deviation = breakdown.ma50_deviation_percent

    reasons = [
        f"CSS {breakdown.total_score:.0f} ({css_interpretation(breakdown.total_score)})"
    ]

    if rsi < OVERSOLD_RSI:
        reasons.append(f"Oversold (RSI={rsi:.0f})")
    elif rsi > OVERBOUGHT_RSI:
        reasons.append(f"Overbought (RSI={rsi:.0f})")

    if deviation <= DISCOUNT_DEVIATION:
        if analysis.indicators.ma50_slope > 0 or breakdown.ma50_slope_bonus > 0:
            trend = "uptrend"
        elif analysis.indicators.ma50_slope < 0 or breakdown.ma50_slope_bonus < 0:
            trend = "downtrend"
        else:
            trend = "flat trend"
        reasons.append(f"{abs(deviation):.1f}% below MA50, {trend}")

    if breakdown.weights_redistributed:
        reasons.append("F&G fallback weights")

    if analysis.quote.source is not DataSource.PRIMARY:
        reasons.append(f"{analysis.quote.source.value} quote data")
    if analysis.history_source is not DataSource.PRIMARY:
        reasons.append(f"{analysis.history_source.value} price history")

    return " | ".join(reasons)


# ============================================================================
# Allocation
# ============================================================================


def allocate(
    analyses: Sequence[AssetAnalysis],
    base_budget: float,
    min_budget: float,
    max_budget: float,
    base_allocations: Mapping[str, float] = BASE_ALLOCATIONS,
) -> list[AssetAllocation]:
    """Size every analysed asset and rank them by final amount (descending).

    Assets missing from ``analyses`` (their pipeline failed) simply do not
    appear in the result. Ties keep input order.
    """
    allocations = []

    for analysis in analyses:
        percentage = base_percentage(analysis.symbol, base_allocations)
        base_amount = base_budget * percentage / 100
        min_amount = min_budget * percentage / 100
        max_amount = max_budget * percentage / 100
        multiplier = sanitize_multiplier(analysis.breakdown.multiplier)

        final_amount = calculate_investment_amount(
            base_amount, multiplier, min_amount, max_amount
        )

        allocations.append(
            AssetAllocation(
                symbol=analysis.symbol,
                base_percentage=percentage,
                base_amount=round(base_amount, 2),
                multiplier=multiplier,
                final_amount=final_amount,
                composite_score=analysis.breakdown.total_score,
                percentage_of_budget=(
                    round(final_amount / base_budget * 100, 2) if base_budget else 0.0
                ),
                reasoning=build_reasoning(analysis),
            )
        )

    # sorted() is stable, so equal amounts keep input order
    return sorted(allocations, key=lambda a: a.final_amount, reverse=True)


# ============================================================================
# Report pieces
# ============================================================================


def determine_market_condition(vix: float) -> MarketCondition:
    if vix < BULLISH_VIX_BELOW:
        return MarketCondition.BULLISH
    if vix > BEARISH_VIX_ABOVE:
        return MarketCondition.BEARISH
    return MarketCondition.NEUTRAL


def build_technical_row(analysis: AssetAnalysis) -> TechnicalDataRow:
    indicators = analysis.indicators
    price = analysis.quote.price
    return TechnicalDataRow(
        symbol=analysis.symbol,
        price=round(price, 2),
        rsi=indicators.rsi,
        ma20=indicators.ma20,
        ma50=indicators.ma50,
        ma50_slope=indicators.ma50_slope,
        atr=indicators.atr,
        bb_width=indicators.bb_width,
        ma50_deviation=analysis.breakdown.ma50_deviation_percent,
        composite_score=analysis.breakdown.total_score,
        multiplier=sanitize_multiplier(analysis.breakdown.multiplier),
        entry_point=calculate_entry_point(indicators.ma20, indicators.atr),
        is_good_entry=is_good_entry_point(price, indicators.ma20, indicators.atr),
        data_source=analysis.history_source.value,
    )


def build_provenance(
    volatility: VolatilityReading,
    sentiment: SentimentReading,
    analyses: Sequence[AssetAnalysis],
    excluded_symbols: Sequence[str] = (),
) -> ProvenanceSummary:
    return ProvenanceSummary(
        volatility_source=volatility.source,
        quote_sources={a.symbol: a.quote.source.value for a in analyses},
        history_sources={a.symbol: a.history_source.value for a in analyses},
        indicator_sources={a.symbol: a.indicators.source.value for a in analyses},
        sentiment_available=sentiment.success,
        excluded_symbols=list(excluded_symbols),
    )


def _symbols(analyses: Sequence[AssetAnalysis]) -> str:
    return ", ".join(a.symbol for a in analyses)


def build_recommendations(
    volatility: VolatilityReading,
    sentiment: SentimentReading,
    analyses: Sequence[AssetAnalysis],
    min_budget: float,
    max_budget: float,
    excluded_symbols: Sequence[str] = (),
) -> list[str]:
    """Advisory lines for the report, degraded-data warnings first."""
    recommendations = []
    vix = volatility.value

    # Data quality warnings
    if volatility.source is not DataSource.PRIMARY:
        recommendations.append(
            f"VIX from {volatility.source.value} source ({vix:.1f}), treat market signal with care"
        )

    secondary = [
        a for a in analyses
        if DataSource.SECONDARY in (a.quote.source, a.history_source)
        and DataSource.SYNTHETIC not in (a.quote.source, a.history_source)
    ]
    if secondary:
        recommendations.append(f"Secondary HTTP fallback data used for: {_symbols(secondary)}")

    synthetic = [
        a for a in analyses if DataSource.SYNTHETIC in (a.quote.source, a.history_source)
    ]
    if synthetic:
        recommendations.append(
            f"Synthetic placeholder data used for: {_symbols(synthetic)}. "
            "Amounts for these assets are not based on live prices"
        )

    fallback_indicators = [a for a in analyses if a.indicators.source is IndicatorSource.FALLBACK]
    if fallback_indicators:
        recommendations.append(
            f"Indicator fallback calculations used for: {_symbols(fallback_indicators)}"
        )

    if not sentiment.success:
        recommendations.append(
            "Fear & Greed Index fetch failed: its weight was redistributed to VIX and RSI"
        )

    if excluded_symbols:
        recommendations.append(
            f"Excluded after analysis failure: {', '.join(excluded_symbols)}"
        )

    # Market regime
    if vix > BEARISH_VIX_ABOVE:
        recommendations.append(
            f"High volatility (VIX {vix:.1f}): fear is elevated, CSS favours larger buys"
        )
    elif vix < BULLISH_VIX_BELOW:
        recommendations.append(
            f"Low volatility (VIX {vix:.1f}): markets are calm, expect smaller multipliers"
        )

    # Asset opportunities
    high_css = [a for a in analyses if a.breakdown.total_score >= HIGH_CSS_OPPORTUNITY]
    if high_css:
        recommendations.append(
            "High CSS opportunities: "
            + ", ".join(f"{a.symbol} ({a.breakdown.total_score:.0f})" for a in high_css)
        )

    oversold = [a for a in analyses if a.indicators.rsi < OVERSOLD_RSI]
    if oversold:
        recommendations.append(
            "Oversold: "
            + ", ".join(f"{a.symbol} (RSI={a.indicators.rsi:.0f})" for a in oversold)
        )

    discounted = [
        a for a in analyses if a.breakdown.ma50_deviation_percent <= DISCOUNT_DEVIATION
    ]
    if discounted:
        recommendations.append(
            "Discounted (below MA50): "
            + ", ".join(
                f"{a.symbol} ({a.breakdown.ma50_deviation_percent:.1f}%)" for a in discounted
            )
        )

    good_entries = [
        a for a in analyses
        if is_good_entry_point(a.quote.price, a.indicators.ma20, a.indicators.atr)
    ]
    if good_entries:
        recommendations.append(
            f"Strong entry points: {_symbols(good_entries)} (price below MA20 - 0.5xATR)"
        )

    recommendations.append(
        f"Budget range: ${min_budget:.0f} - ${max_budget:.0f} (CSS multiplier 0.5x - 1.2x)"
    )
    return recommendations


def assemble_report(
    analyses: Sequence[AssetAnalysis],
    volatility: VolatilityReading,
    sentiment: SentimentReading,
    base_budget: float,
    excluded_symbols: Sequence[str] = (),
    base_allocations: Mapping[str, float] = BASE_ALLOCATIONS,
    timestamp: datetime | None = None,
) -> AllocationReport:
    """Build the complete report from the analyses that succeeded.

    ``total_amount`` is the sum of the final amounts (0 when every asset
    failed), not the nominal base budget.
    """
    min_budget, max_budget = budget_bounds(base_budget)
    allocations = allocate(analyses, base_budget, min_budget, max_budget, base_allocations)
    sentiment_value = sentiment.value if sentiment.success else None

    return AllocationReport(
        timestamp=timestamp or datetime.now(UTC),
        total_amount=round(sum(a.final_amount for a in allocations), 2),
        base_budget=base_budget,
        min_budget=min_budget,
        max_budget=max_budget,
        vix=volatility.value,
        sentiment_index=sentiment_value,
        sentiment_rating=sentiment.rating,
        sentiment_unavailable=not sentiment.success,
        market_css=calculate_market_css(volatility.value, sentiment_value),
        market_condition=determine_market_condition(volatility.value),
        allocations=allocations,
        recommendations=build_recommendations(
            volatility, sentiment, analyses, min_budget, max_budget, excluded_symbols
        ),
        technical_data=[build_technical_row(a) for a in analyses],
        provenance=build_provenance(volatility, sentiment, analyses, excluded_symbols),
    )
