"""Pytest configuration and fixtures for all tests.

This module ensures tests run in isolation from production environment
variables and never reach the real market data or email services.
"""

import asyncio
import os
from datetime import UTC, datetime

import pytest

from dca_api.core.config import AllocationConfig
from dca_api.core.pipeline import AllocationEngine
from dca_api.domain.entities import (
    DataSource,
    PriceHistory,
    Quote,
    SentimentReading,
    VolatilityReading,
)

# Environment variables that would change config, storage or email behaviour
DCA_ENV_VARS = [
    "WEEKLY_INVESTMENT_AMOUNT",
    "DEFAULT_STOCKS",
    "HISTORY_LOOKBACK_DAYS",
    "ANALYSIS_MAX_CONCURRENCY",
    "REPORT_STORE_PATH",
    "GMAIL_USER",
    "GMAIL_APP_PASSWORD",
    "REPORT_EMAIL_TO",
    "REPORT_EMAIL_CC",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def isolate_from_env():
    """Clear service env vars before each test and restore them afterwards."""
    original_values = {}
    for var in DCA_ENV_VARS:
        if var in os.environ:
            original_values[var] = os.environ.pop(var)

    yield

    for var in DCA_ENV_VARS:
        os.environ.pop(var, None)
    for var, value in original_values.items():
        os.environ[var] = value


# ============================================================================
# Fake data sources
# ============================================================================


def rising_prices(count: int = 120, start: float = 100.0, step: float = 0.5) -> list[float]:
    return [start + i * step for i in range(count)]


def make_quote(
    symbol: str,
    price: float,
    source: DataSource = DataSource.PRIMARY,
) -> Quote:
    return Quote(
        symbol=symbol,
        price=price,
        previous_close=price,
        change=0.0,
        change_percent=0.0,
        volume=1_000_000,
        timestamp=datetime(2026, 1, 5, 15, 0, tzinfo=UTC),
        source=source,
    )


class FakeMarketData:
    """In-memory MarketDataSource.

    Every symbol gets a rising 120-point history unless overridden.
    Symbols in ``failing`` raise from fetch_quote.
    """

    def __init__(
        self,
        vix: float = 20.0,
        vix_source: DataSource = DataSource.PRIMARY,
        histories: dict[str, list[float]] | None = None,
        sources: dict[str, DataSource] | None = None,
        failing: set[str] | None = None,
        delay: float = 0.0,
    ):
        self.vix = vix
        self.vix_source = vix_source
        self.histories = histories or {}
        self.sources = sources or {}
        self.failing = failing or set()
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[tuple[str, str]] = []

    def _prices(self, symbol: str) -> list[float]:
        return self.histories.get(symbol, rising_prices())

    async def fetch_quote(self, symbol: str) -> Quote:
        self.calls.append(("quote", symbol))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if symbol in self.failing:
                raise RuntimeError(f"boom: {symbol}")
            source = self.sources.get(symbol, DataSource.PRIMARY)
            return make_quote(symbol, self._prices(symbol)[-1], source)
        finally:
            self.in_flight -= 1

    async def fetch_history(self, symbol: str, lookback_days: int) -> PriceHistory:
        self.calls.append(("history", symbol))
        source = self.sources.get(symbol, DataSource.PRIMARY)
        return PriceHistory(symbol=symbol, prices=self._prices(symbol)[-lookback_days:], source=source)

    async def fetch_volatility_index(self) -> VolatilityReading:
        self.calls.append(("vix", ""))
        return VolatilityReading(value=self.vix, source=self.vix_source)


class FakeSentiment:
    def __init__(self, value: float | None = 50.0, rating: str = "Neutral"):
        self.value = value
        self.rating = rating

    async def fetch(self) -> SentimentReading:
        if self.value is None:
            return SentimentReading(value=None, rating="Unknown", success=False)
        return SentimentReading(value=self.value, rating=self.rating, success=True)


@pytest.fixture
def fake_market_data():
    return FakeMarketData()


@pytest.fixture
def fake_sentiment():
    return FakeSentiment()


@pytest.fixture
def make_market_data():
    """Factory for FakeMarketData with custom histories, sources or failures."""
    return FakeMarketData


@pytest.fixture
def make_sentiment():
    return FakeSentiment


@pytest.fixture
def sample_report():
    """A small report produced by the real engine from fake sources."""
    engine = AllocationEngine(FakeMarketData(), FakeSentiment())
    config = AllocationConfig(asset_symbols=["QQQ", "TLT"])
    return asyncio.run(engine.generate_report(config))
