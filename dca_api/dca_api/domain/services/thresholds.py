"""Indicator value -> score mappings.

Thin wrappers around the threshold tables in ``domain.constants``. Every
mapping goes through ``evaluate_threshold`` so non-finite inputs are rejected
in one place instead of silently falling through to a table's terminal value.
"""

import math

from dca_api.domain.constants import (
    BB_WIDTH_SCORE_TABLE,
    CSS_MULTIPLIER_TABLE,
    MA50_SCORE_TABLE,
    RSI_SCORE_TABLE,
    SENTIMENT_SCORE_TABLE,
    VIX_SCORE_TABLE,
)
from dca_api.domain.entities.thresholds import ThresholdTable
from dca_api.domain.exceptions import DataValidationError


def evaluate_threshold(table: ThresholdTable, value: float) -> float:
    """Look up ``value`` in ``table`` (upper bounds inclusive).

    Raises:
        DataValidationError: If value is NaN or infinite
    """
    if value is None or not math.isfinite(value):
        raise DataValidationError(
            f"Cannot score non-finite {table.name} value",
            field=table.name,
            value=value,
        )
    return table.lookup(value)


def vix_score(vix: float) -> float:
    return evaluate_threshold(VIX_SCORE_TABLE, vix)


def rsi_score(rsi: float) -> float:
    return evaluate_threshold(RSI_SCORE_TABLE, rsi)


def bb_width_score(bb_width: float) -> float:
    return evaluate_threshold(BB_WIDTH_SCORE_TABLE, bb_width)


def ma50_score(deviation_percent: float) -> float:
    return evaluate_threshold(MA50_SCORE_TABLE, deviation_percent)


def sentiment_score(sentiment: float) -> float:
    return evaluate_threshold(SENTIMENT_SCORE_TABLE, sentiment)


def score_to_multiplier(score: float) -> float:
    """CSS (0-100) -> investment multiplier, capped at 1.2."""
    return evaluate_threshold(CSS_MULTIPLIER_TABLE, score)
