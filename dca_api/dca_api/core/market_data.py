"""Market data provider with a three-tier fallback chain.

Every fetch tries, in order:

1. yfinance (blocking, run in a worker thread)
2. Direct HTTP to the Yahoo chart endpoint (httpx)
3. Deterministic synthetic data seeded by a hash of the symbol

A failure in one tier (exception, empty payload, zero or non-finite price,
too-short history) is logged and the next tier is tried, so the provider
never raises. The tier that produced a value is returned with it.
"""

import asyncio
import hashlib
import logging
import math
from datetime import UTC, date, datetime, timedelta
from typing import Any
from urllib.parse import quote as url_quote

import httpx
import numpy as np
import yfinance as yf

from dca_api.domain.constants import (
    HISTORY_LOOKBACK_DAYS,
    MIN_HISTORY_POINTS,
    SYNTHETIC_VIX,
    VIX_SYMBOL,
)
from dca_api.domain.entities.market import (
    DataSource,
    PriceHistory,
    Quote,
    VolatilityReading,
)
from dca_api.domain.exceptions import (
    DataValidationError,
    FetchError,
    InsufficientDataError,
)

logger = logging.getLogger(__name__)

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
DEFAULT_HTTP_TIMEOUT = 10.0
HTTP_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    ),
    "Accept": "application/json",
}

# Extra calendar days requested on top of the trading-day lookback
CALENDAR_BUFFER_DAYS = 30
TRADING_TO_CALENDAR_RATIO = 1.5


def calendar_window(lookback_days: int) -> int:
    """Calendar days to request so that ~lookback_days trading days come back."""
    return int(lookback_days * TRADING_TO_CALENDAR_RATIO) + CALENDAR_BUFFER_DAYS


def _valid_price(value: Any, symbol: str, field: str = "price") -> float:
    try:
        price = float(value)
    except (TypeError, ValueError) as e:
        raise DataValidationError(f"Invalid {field} for {symbol}", field=field, value=value) from e
    if not math.isfinite(price) or price <= 0:
        raise DataValidationError(f"Invalid {field} for {symbol}", field=field, value=value)
    return price


def _clean_closes(values: list[Any]) -> list[float]:
    """Drop None, NaN and non-positive closes, keep order."""
    closes = []
    for value in values:
        if value is None:
            continue
        close = float(value)
        if math.isfinite(close) and close > 0:
            closes.append(close)
    return closes


def _validated_history(
    symbol: str,
    closes: list[float],
    lookback_days: int,
    source: DataSource,
) -> PriceHistory:
    if len(closes) < MIN_HISTORY_POINTS:
        raise InsufficientDataError(
            f"History for {symbol} too short",
            required=MIN_HISTORY_POINTS,
            available=len(closes),
        )
    return PriceHistory(symbol=symbol, prices=closes[-lookback_days:], source=source)


def build_quote(
    symbol: str,
    price: float,
    previous_close: float,
    volume: int,
    source: DataSource,
) -> Quote:
    change = price - previous_close
    change_percent = (change / previous_close * 100) if previous_close else 0.0
    return Quote(
        symbol=symbol,
        price=round(price, 2),
        previous_close=round(previous_close, 2),
        change=round(change, 2),
        change_percent=round(change_percent, 2),
        volume=int(volume),
        timestamp=datetime.now(UTC),
        source=source,
    )


# ============================================================================
# Synthetic tier
# ============================================================================


def symbol_seed(symbol: str) -> int:
    """Stable non-negative seed for a symbol (same across processes)."""
    digest = hashlib.sha256(symbol.upper().encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def synthetic_quote(symbol: str) -> Quote:
    seed = symbol_seed(symbol)
    base_price = 100 + (seed % 400)
    previous_close = base_price * (0.98 + (seed % 4) / 100)
    volume = 1_000_000 + (seed % 9_000_000)
    return build_quote(symbol, base_price, previous_close, volume, DataSource.SYNTHETIC)


def synthetic_history(symbol: str, lookback_days: int = HISTORY_LOOKBACK_DAYS) -> PriceHistory:
    """Seeded random walk (daily factor in [0.97, 1.03]) from the synthetic base price."""
    seed = symbol_seed(symbol)
    rng = np.random.default_rng(seed)
    count = max(lookback_days, MIN_HISTORY_POINTS)
    factors = 0.97 + rng.random(count) * 0.06
    prices = np.round((100 + seed % 400) * np.cumprod(factors), 2)
    return PriceHistory(symbol=symbol, prices=prices.tolist(), source=DataSource.SYNTHETIC)


def synthetic_volatility() -> VolatilityReading:
    return VolatilityReading(value=SYNTHETIC_VIX, source=DataSource.SYNTHETIC)


# ============================================================================
# Provider
# ============================================================================


class MarketDataProvider:
    """Quote, history and VIX fetcher. Holds no per-call state.

    Args:
        timeout: Request timeout for the direct HTTP tier, in seconds
        transport: Optional httpx transport for the HTTP tier (tests pass
            an ``httpx.MockTransport``)
    """

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_quote(self, symbol: str) -> Quote:
        try:
            return await asyncio.to_thread(self._yfinance_quote, symbol)
        except Exception as e:
            logger.warning(f"[MarketData] yfinance quote failed for {symbol}: {e}")

        try:
            return await self._chart_quote(symbol)
        except Exception as e:
            logger.warning(f"[MarketData] HTTP quote failed for {symbol}: {e}")

        logger.warning(f"[MarketData] Using synthetic quote for {symbol}")
        return synthetic_quote(symbol)

    async def fetch_history(
        self, symbol: str, lookback_days: int = HISTORY_LOOKBACK_DAYS
    ) -> PriceHistory:
        try:
            return await asyncio.to_thread(self._yfinance_history, symbol, lookback_days)
        except Exception as e:
            logger.warning(f"[MarketData] yfinance history failed for {symbol}: {e}")

        try:
            return await self._chart_history(symbol, lookback_days)
        except Exception as e:
            logger.warning(f"[MarketData] HTTP history failed for {symbol}: {e}")

        logger.warning(f"[MarketData] Using synthetic history for {symbol}")
        return synthetic_history(symbol, lookback_days)

    async def fetch_volatility_index(self) -> VolatilityReading:
        try:
            quote = await asyncio.to_thread(self._yfinance_quote, VIX_SYMBOL)
            return VolatilityReading(value=quote.price, source=DataSource.PRIMARY)
        except Exception as e:
            logger.warning(f"[MarketData] yfinance VIX failed: {e}")

        try:
            quote = await self._chart_quote(VIX_SYMBOL)
            return VolatilityReading(value=quote.price, source=DataSource.SECONDARY)
        except Exception as e:
            logger.warning(f"[MarketData] HTTP VIX failed: {e}")

        logger.warning(f"[MarketData] Using synthetic VIX ({SYNTHETIC_VIX})")
        return synthetic_volatility()

    # ------------------------------------------------------------------
    # Tier 1: yfinance (blocking)
    # ------------------------------------------------------------------

    def _yfinance_quote(self, symbol: str) -> Quote:
        df = yf.Ticker(symbol).history(period="5d", interval="1d")
        if df is None or df.empty:
            raise FetchError("Empty quote frame", service="yfinance", symbol=symbol)

        closes = df["Close"].dropna()
        if closes.empty:
            raise FetchError("No closes in quote frame", service="yfinance", symbol=symbol)

        price = _valid_price(closes.iloc[-1], symbol)
        previous_close = float(closes.iloc[-2]) if len(closes) > 1 else price

        volume = 0
        if "Volume" in df.columns:
            last_volume = df["Volume"].iloc[-1]
            if last_volume is not None and math.isfinite(float(last_volume)):
                volume = int(last_volume)

        return build_quote(symbol, price, previous_close, volume, DataSource.PRIMARY)

    def _yfinance_history(self, symbol: str, lookback_days: int) -> PriceHistory:
        end_date = date.today() + timedelta(days=1)
        start_date = end_date - timedelta(days=calendar_window(lookback_days))
        df = yf.Ticker(symbol).history(
            start=start_date.isoformat(),
            end=end_date.isoformat(),
            interval="1d",
        )
        if df is None or df.empty:
            raise FetchError("Empty history frame", service="yfinance", symbol=symbol)

        closes = _clean_closes(df["Close"].tolist())
        return _validated_history(symbol, closes, lookback_days, DataSource.PRIMARY)

    # ------------------------------------------------------------------
    # Tier 2: direct HTTP
    # ------------------------------------------------------------------

    async def _get_chart(self, symbol: str, range_param: str) -> dict[str, Any]:
        url = YAHOO_CHART_URL.format(symbol=url_quote(symbol, safe=""))
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=HTTP_HEADERS,
            transport=self.transport,
        ) as client:
            response = await client.get(url, params={"interval": "1d", "range": range_param})
            response.raise_for_status()
            data = response.json()

        try:
            return data["chart"]["result"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise FetchError("Malformed chart payload", service="yahoo-chart", symbol=symbol) from e

    async def _chart_quote(self, symbol: str) -> Quote:
        result = await self._get_chart(symbol, "5d")
        meta = result.get("meta") or {}

        price = _valid_price(meta.get("regularMarketPrice"), symbol)
        previous_close = meta.get("previousClose") or meta.get("chartPreviousClose") or price

        volume = 0
        try:
            volumes = [v for v in result["indicators"]["quote"][0]["volume"] if v is not None]
            if volumes:
                volume = int(volumes[-1])
        except (KeyError, IndexError, TypeError):
            pass

        return build_quote(symbol, price, float(previous_close), volume, DataSource.SECONDARY)

    async def _chart_history(self, symbol: str, lookback_days: int) -> PriceHistory:
        result = await self._get_chart(symbol, f"{calendar_window(lookback_days)}d")
        try:
            raw_closes = result["indicators"]["quote"][0]["close"]
        except (KeyError, IndexError, TypeError) as e:
            raise FetchError("No closes in chart payload", service="yahoo-chart", symbol=symbol) from e

        closes = _clean_closes(raw_closes or [])
        return _validated_history(symbol, closes, lookback_days, DataSource.SECONDARY)
