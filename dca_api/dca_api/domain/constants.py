"""Domain constants for dca_api.

This module centralizes the CSS strategy tables and every numeric constant
used by the indicator, scoring and allocation code.
"""

from dca_api.domain.entities.css import CSSWeights
from dca_api.domain.entities.thresholds import ThresholdTable

# ============================================================================
# Indicator windows
# ============================================================================

RSI_PERIOD = 14
ATR_PERIOD = 14
MA_SHORT_PERIOD = 20
MA_LONG_PERIOD = 50
BOLLINGER_PERIOD = 20
BOLLINGER_STD_DEV = 2.0

# MA50 slope compares today's MA50 with the MA50 this many points earlier
SLOPE_LOOKBACK_DAYS = 50

# Narrow band used when there is not enough data for Bollinger Bands
FALLBACK_BAND_WIDTH = 0.05
FALLBACK_BAND_PRICE = 100.0

NEUTRAL_RSI = 50.0

# Entry point: strong buy below MA20 - ENTRY_ATR_FACTOR * ATR
ENTRY_ATR_FACTOR = 0.5


# ============================================================================
# Market data constants
# ============================================================================

# Trading days of history requested per asset. Must cover the MA50 window
# plus the slope lookback (validated by AllocationConfig).
HISTORY_LOOKBACK_DAYS = 120

# Histories shorter than this escalate to the next data tier
MIN_HISTORY_POINTS = 10

VIX_SYMBOL = "^VIX"

# Deterministic stand-in used by the synthetic tier
SYNTHETIC_VIX = 18.5

SENTIMENT_TIMEOUT_SECONDS = 10.0


# ============================================================================
# CSS score tables (upper bounds inclusive)
# ============================================================================

# Higher VIX = more fear = opportunity
VIX_SCORE_TABLE = ThresholdTable(
    name="vix",
    bands=((15, 20), (20, 40), (25, 60), (30, 75), (40, 90)),
    above=100,
)

# Lower RSI = oversold = opportunity; overbought falls through to 0
RSI_SCORE_TABLE = ThresholdTable(
    name="rsi",
    bands=((30, 100), (40, 80), (50, 60), (60, 40), (70, 20)),
    above=0,
)

# Wider bands = more volatility = opportunity
BB_WIDTH_SCORE_TABLE = ThresholdTable(
    name="bb_width",
    bands=((5, 30), (10, 50), (15, 70)),
    above=90,
)

# Price vs MA50 deviation (%); discount scores high
MA50_SCORE_TABLE = ThresholdTable(
    name="ma50",
    bands=((-10, 90), (-5, 70), (5, 50), (10, 30)),
    above=10,
)

# Fear & Greed is inverted: fear scores high
SENTIMENT_SCORE_TABLE = ThresholdTable(
    name="sentiment",
    bands=((25, 100), (45, 75), (55, 50), (75, 25)),
    above=0,
)

# CSS -> investment multiplier, capped at 1.2 above the last band
CSS_MULTIPLIER_TABLE = ThresholdTable(
    name="multiplier",
    bands=((20, 0.5), (35, 0.6), (50, 0.8), (60, 1.0), (75, 1.2)),
    above=1.2,
)

MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 1.2


# ============================================================================
# CSS weights
# ============================================================================

CSS_WEIGHTS = CSSWeights(vix=0.20, rsi=0.30, bb_width=0.15, ma50=0.20, sentiment=0.15)

# Sentiment unavailable: its 0.15 is split evenly onto VIX and RSI
CSS_WEIGHTS_NO_SENTIMENT = CSSWeights(
    vix=0.275, rsi=0.375, bb_width=0.15, ma50=0.20, sentiment=0.0
)


# ============================================================================
# MA50 trend adjustment
# ============================================================================

# Slope bonus only applies at or below this MA50 deviation (%)
DEEP_DISCOUNT_DEVIATION = -10.0

# (slope lower bound exclusive, bonus); slope is a decimal fraction
MA50_SLOPE_BONUS_STEPS = (
    (0.01, 15.0),
    (0.003, 8.0),
    (-0.003, 0.0),
    (-0.01, -8.0),
)
MA50_SLOPE_BONUS_FLOOR = -15.0

# Adjusted MA50 score clamp (narrower than the raw [10, 90] range)
MA50_ADJUSTED_MIN = 20.0
MA50_ADJUSTED_MAX = 90.0


# ============================================================================
# Budget and allocation
# ============================================================================

DEFAULT_BASE_BUDGET = 250.0
MIN_BUDGET_FACTOR = 0.5
MAX_BUDGET_FACTOR = 1.2

# QQQ 25% | GOOG 17.5% | AIQ 15% | TSLA 7.5% | XLV 10% | VXUS 10% | TLT 15%
BASE_ALLOCATIONS: dict[str, float] = {
    "QQQ": 25.0,
    "GOOG": 17.5,
    "AIQ": 15.0,
    "TSLA": 7.5,
    "XLV": 10.0,
    "VXUS": 10.0,
    "TLT": 15.0,
}

DEFAULT_ASSET_SYMBOLS = list(BASE_ALLOCATIONS)

DEFAULT_MAX_CONCURRENCY = 4


# ============================================================================
# Report thresholds
# ============================================================================

BULLISH_VIX_BELOW = 15.0
BEARISH_VIX_ABOVE = 25.0
HIGH_CSS_OPPORTUNITY = 70.0
OVERSOLD_RSI = 30.0
OVERBOUGHT_RSI = 70.0
DISCOUNT_DEVIATION = -5.0
BUY_SIGNAL_CSS = 50.0
