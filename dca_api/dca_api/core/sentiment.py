"""CNN Fear & Greed index client.

The index measures market sentiment on a 0-100 scale:
- 0-25: Extreme Fear
- 26-45: Fear
- 46-55: Neutral
- 56-75: Greed
- 76-100: Extreme Greed

The CNN endpoint is undocumented and has changed shape over time, so the
parser accepts several payload layouts. Any failure yields a reading with
``success=False`` and no value; the caller then redistributes the
sentiment weight instead of scoring a placeholder.
"""

import asyncio
import logging
import math
import time
from typing import Any

import httpx

from dca_api.domain.constants import SENTIMENT_TIMEOUT_SECONDS
from dca_api.domain.entities.market import SentimentReading

logger = logging.getLogger(__name__)

CNN_FEAR_GREED_URL = "https://production.dataviz.cnn.io/index/fearandgreed/graphdata"
CNN_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    ),
    "Accept": "application/json",
    "Referer": "https://edition.cnn.com/markets/fear-and-greed",
}


def rating_from_score(score: float) -> str:
    """Rating label for a 0-100 score (upper bounds inclusive)."""
    if score <= 25:
        return "Extreme Fear"
    if score <= 45:
        return "Fear"
    if score <= 55:
        return "Neutral"
    if score <= 75:
        return "Greed"
    return "Extreme Greed"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _as_score(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value) or not 0 <= value <= 100:
        return None
    return float(value)


def parse_fear_greed(data: Any) -> tuple[float, str] | None:
    """Extract (value, rating) from a Fear & Greed payload.

    Shapes tried in order:
    1. {"fear_and_greed": {"score": ...}}
    2. {"score": ...}
    3. {"fear_and_greed_historical": {"data": [..., {"y": ..., "rating": ...}]}}
    4. [{"x": ..., "y": ...}, ...] (first point)

    Returns:
        (value rounded half-up, rating) or None if no shape matched
    """
    if isinstance(data, dict):
        current = data.get("fear_and_greed")
        if isinstance(current, dict):
            score = _as_score(current.get("score"))
            if score is not None:
                value = _round_half_up(score)
                return float(value), rating_from_score(value)

        score = _as_score(data.get("score"))
        if score is not None:
            value = _round_half_up(score)
            return float(value), rating_from_score(value)

        historical = data.get("fear_and_greed_historical")
        if isinstance(historical, dict):
            points = historical.get("data")
            if isinstance(points, list) and points and isinstance(points[-1], dict):
                latest = points[-1]
                score = _as_score(latest.get("y"))
                if score is not None:
                    value = _round_half_up(score)
                    rating = latest.get("rating")
                    if not isinstance(rating, str) or not rating:
                        rating = rating_from_score(value)
                    return float(value), rating

    if isinstance(data, list) and data and isinstance(data[0], dict):
        score = _as_score(data[0].get("y"))
        if score is not None:
            value = _round_half_up(score)
            return float(value), rating_from_score(value)

    return None


class FearGreedClient:
    """Fetches the Fear & Greed index. ``fetch`` never raises.

    Args:
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass a MockTransport)
    """

    def __init__(
        self,
        timeout: float = SENTIMENT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self) -> SentimentReading:
        logger.info("[Sentiment] Fetching Fear & Greed Index from CNN")
        try:
            data = await asyncio.wait_for(self._request(), timeout=self.timeout)
            parsed = parse_fear_greed(data)
        except Exception as e:
            logger.warning(f"[Sentiment] Fear & Greed fetch failed: {e!r}")
            return self._unavailable()

        if parsed is None:
            logger.warning(
                f"[Sentiment] Unknown Fear & Greed response format: {str(data)[:200]}"
            )
            return self._unavailable()

        value, rating = parsed
        logger.info(f"[Sentiment] Fear & Greed Index: {value:.0f} ({rating})")
        return SentimentReading(value=value, rating=rating, success=True)

    async def _request(self) -> Any:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=CNN_HEADERS,
            transport=self.transport,
        ) as client:
            # Cache buster
            response = await client.get(
                CNN_FEAR_GREED_URL, params={"_": int(time.time() * 1000)}
            )
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _unavailable() -> SentimentReading:
        return SentimentReading(value=None, rating="Unknown", success=False)
