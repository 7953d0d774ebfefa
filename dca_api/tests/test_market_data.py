"""Tests for the three-tier market data provider."""

import asyncio
from types import SimpleNamespace

import httpx
import pandas as pd
import pytest

from dca_api.core import market_data
from dca_api.core.market_data import (
    MarketDataProvider,
    calendar_window,
    synthetic_history,
    synthetic_quote,
    symbol_seed,
)
from dca_api.domain.constants import SYNTHETIC_VIX
from dca_api.domain.entities import DataSource

# ============================================================================
# Helpers
# ============================================================================


class _FakeTicker:
    def __init__(self, frame: pd.DataFrame | None, error: Exception | None):
        self.frame = frame
        self.error = error

    def history(self, **kwargs):
        if self.error is not None:
            raise self.error
        return self.frame


def _patch_yfinance(monkeypatch, frame=None, error=None):
    fake = SimpleNamespace(Ticker=lambda symbol: _FakeTicker(frame, error))
    monkeypatch.setattr(market_data, "yf", fake)


def _frame(closes: list[float]) -> pd.DataFrame:
    return pd.DataFrame({"Close": closes, "Volume": [1_000_000] * len(closes)})


def _chart_payload(closes: list[float | None], price: float = 123.45) -> dict:
    return {
        "chart": {
            "result": [
                {
                    "meta": {"regularMarketPrice": price, "chartPreviousClose": 120.0},
                    "indicators": {"quote": [{"close": closes, "volume": [500, None]}]},
                }
            ]
        }
    }


def _transport(payload=None, status_code: int = 200, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if payload is None:
            return httpx.Response(status_code, text="unavailable")
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


def _failing_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network down", request=request)

    return httpx.MockTransport(handler)


# ============================================================================
# Quotes
# ============================================================================


def test_quote_from_yfinance(monkeypatch):
    _patch_yfinance(monkeypatch, frame=_frame([100.0, 102.0]))
    provider = MarketDataProvider(transport=_failing_transport())

    quote = asyncio.run(provider.fetch_quote("QQQ"))

    assert quote.source == DataSource.PRIMARY
    assert quote.price == 102.0
    assert quote.previous_close == 100.0
    assert quote.change == 2.0
    assert quote.change_percent == 2.0
    assert quote.volume == 1_000_000


def test_quote_falls_back_to_http(monkeypatch):
    _patch_yfinance(monkeypatch, error=RuntimeError("yahoo blocked"))
    seen: list[httpx.Request] = []
    provider = MarketDataProvider(transport=_transport(_chart_payload([1.0]), seen=seen))

    quote = asyncio.run(provider.fetch_quote("QQQ"))

    assert quote.source == DataSource.SECONDARY
    assert quote.price == 123.45
    assert quote.previous_close == 120.0
    assert quote.volume == 500
    assert seen[0].url.params["range"] == "5d"
    assert seen[0].url.params["interval"] == "1d"


def test_zero_price_escalates_to_next_tier(monkeypatch):
    _patch_yfinance(monkeypatch, frame=_frame([100.0, 0.0]))
    provider = MarketDataProvider(transport=_transport(_chart_payload([1.0], price=0.0)))

    quote = asyncio.run(provider.fetch_quote("QQQ"))

    assert quote.source == DataSource.SYNTHETIC


def test_quote_falls_back_to_synthetic(monkeypatch):
    _patch_yfinance(monkeypatch, frame=pd.DataFrame())
    provider = MarketDataProvider(transport=_transport(status_code=503))

    quote = asyncio.run(provider.fetch_quote("QQQ"))

    assert quote.source == DataSource.SYNTHETIC
    assert quote.price == synthetic_quote("QQQ").price


def test_synthetic_quote_is_deterministic():
    first = synthetic_quote("XYZ")
    second = synthetic_quote("XYZ")
    seed = symbol_seed("XYZ")

    assert first.price == second.price
    assert first.volume == second.volume
    assert first.price == 100 + seed % 400
    assert first.previous_close == round(first.price * (0.98 + (seed % 4) / 100), 2)
    assert 1_000_000 <= first.volume < 10_000_000


# ============================================================================
# History
# ============================================================================


def test_history_from_yfinance_keeps_tail(monkeypatch):
    closes = [float(i) for i in range(1, 201)]
    _patch_yfinance(monkeypatch, frame=_frame(closes))
    provider = MarketDataProvider(transport=_failing_transport())

    history = asyncio.run(provider.fetch_history("QQQ", 120))

    assert history.source == DataSource.PRIMARY
    assert len(history.prices) == 120
    assert history.prices[-1] == 200.0


def test_short_history_escalates_to_http(monkeypatch):
    _patch_yfinance(monkeypatch, frame=_frame([1.0, 2.0, 3.0]))
    closes = [100.0 + i for i in range(30)] + [None]
    seen: list[httpx.Request] = []
    provider = MarketDataProvider(transport=_transport(_chart_payload(closes), seen=seen))

    history = asyncio.run(provider.fetch_history("QQQ", 120))

    assert history.source == DataSource.SECONDARY
    assert len(history.prices) == 30
    assert None not in history.prices
    assert seen[0].url.params["range"] == f"{calendar_window(120)}d"


def test_short_history_everywhere_escalates_to_synthetic(monkeypatch):
    _patch_yfinance(monkeypatch, frame=_frame([1.0] * 5))
    provider = MarketDataProvider(transport=_transport(_chart_payload([1.0] * 9)))

    history = asyncio.run(provider.fetch_history("QQQ", 120))

    assert history.source == DataSource.SYNTHETIC
    assert len(history.prices) == 120


def test_non_positive_closes_are_dropped(monkeypatch):
    closes = [0.0] * 60 + [100.0 + i for i in range(60)]
    _patch_yfinance(monkeypatch, frame=_frame(closes))
    provider = MarketDataProvider(transport=_failing_transport())

    history = asyncio.run(provider.fetch_history("QQQ", 120))

    assert history.source == DataSource.PRIMARY
    assert len(history.prices) == 60
    assert min(history.prices) == 100.0


def test_zero_only_history_escalates_to_synthetic(monkeypatch):
    _patch_yfinance(monkeypatch, frame=_frame([0.0] * 120))
    provider = MarketDataProvider(transport=_transport(_chart_payload([-1.0] * 60 + [0.0] * 60)))

    history = asyncio.run(provider.fetch_history("QQQ", 120))

    assert history.source == DataSource.SYNTHETIC
    assert all(price > 0 for price in history.prices)


def test_synthetic_history_is_deterministic():
    assert synthetic_history("QQQ", 50).prices == synthetic_history("QQQ", 50).prices
    assert synthetic_history("QQQ", 50).prices != synthetic_history("TLT", 50).prices


def test_calendar_window_covers_lookback():
    assert calendar_window(120) == 210
    assert calendar_window(100) >= 100


# ============================================================================
# Volatility index
# ============================================================================


def test_vix_from_yfinance(monkeypatch):
    _patch_yfinance(monkeypatch, frame=_frame([17.0, 18.25]))
    provider = MarketDataProvider(transport=_failing_transport())

    reading = asyncio.run(provider.fetch_volatility_index())

    assert reading.value == 18.25
    assert reading.source == DataSource.PRIMARY


def test_vix_falls_back_to_http_with_encoded_symbol(monkeypatch):
    _patch_yfinance(monkeypatch, error=RuntimeError("rate limited"))
    seen: list[httpx.Request] = []
    provider = MarketDataProvider(transport=_transport(_chart_payload([1.0], price=22.0), seen=seen))

    reading = asyncio.run(provider.fetch_volatility_index())

    assert reading.value == 22.0
    assert reading.source == DataSource.SECONDARY
    assert "%5EVIX" in str(seen[0].url)


def test_vix_falls_back_to_synthetic(monkeypatch):
    _patch_yfinance(monkeypatch, error=RuntimeError("rate limited"))
    provider = MarketDataProvider(transport=_failing_transport())

    reading = asyncio.run(provider.fetch_volatility_index())

    assert reading.value == SYNTHETIC_VIX
    assert reading.source == DataSource.SYNTHETIC


def test_malformed_chart_payload_is_a_tier_failure(monkeypatch):
    _patch_yfinance(monkeypatch, error=RuntimeError("down"))
    provider = MarketDataProvider(transport=_transport({"chart": {"result": []}}))

    quote = asyncio.run(provider.fetch_quote("QQQ"))

    assert quote.source == DataSource.SYNTHETIC


@pytest.mark.parametrize("symbol", ["QQQ", "GOOG", "TLT"])
def test_symbol_seed_is_stable(symbol):
    assert symbol_seed(symbol) == symbol_seed(symbol.lower())


def test_quote_to_dict_is_json_friendly():
    data = synthetic_quote("QQQ").to_dict()
    assert data["source"] == "synthetic"
    assert isinstance(data["timestamp"], str)
