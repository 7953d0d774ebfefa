"""Domain services - pure business logic with no I/O.

These services contain the indicator, scoring and allocation algorithms.
They depend only on domain entities, constants and pandas.
"""

from dca_api.domain.services.allocation import (
    allocate,
    assemble_report,
    base_percentage,
    budget_bounds,
    build_reasoning,
    build_recommendations,
    calculate_investment_amount,
    determine_market_condition,
)
from dca_api.domain.services.css_scoring import (
    calculate_breakdown,
    calculate_composite_score,
    calculate_market_css,
    css_interpretation,
    ma50_slope_bonus,
    signal_from_css,
)
from dca_api.domain.services.indicators import (
    calculate_atr,
    calculate_bollinger_bands,
    calculate_ma50_slope,
    calculate_rsi,
    calculate_sma,
    compute_indicators,
)
from dca_api.domain.services.thresholds import evaluate_threshold, score_to_multiplier

__all__ = [
    # Indicators
    "calculate_rsi",
    "calculate_sma",
    "calculate_ma50_slope",
    "calculate_bollinger_bands",
    "calculate_atr",
    "compute_indicators",
    # Scoring
    "evaluate_threshold",
    "score_to_multiplier",
    "ma50_slope_bonus",
    "calculate_composite_score",
    "calculate_breakdown",
    "calculate_market_css",
    "css_interpretation",
    "signal_from_css",
    # Allocation
    "base_percentage",
    "budget_bounds",
    "calculate_investment_amount",
    "build_reasoning",
    "build_recommendations",
    "determine_market_condition",
    "allocate",
    "assemble_report",
]
