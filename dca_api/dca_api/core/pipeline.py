"""Async orchestration of one CSS allocation run.

    validate config
      -> VIX + Fear & Greed (concurrently)
      -> per asset, bounded by a semaphore: quote + history -> indicators
         -> CSS breakdown -> signal
      -> allocation, recommendations, provenance -> AllocationReport

A failing asset is logged and left out of the report; it never affects
its siblings. Only ConfigurationError aborts the run, and it is raised
before any network call.
"""

import asyncio
import logging

from dca_api.core.config import AllocationConfig
from dca_api.core.protocols import MarketDataSource, SentimentSource
from dca_api.domain.constants import BASE_ALLOCATIONS
from dca_api.domain.entities.allocation import AllocationReport, AssetAnalysis
from dca_api.domain.entities.market import SentimentReading, VolatilityReading
from dca_api.domain.exceptions import AnalysisError
from dca_api.domain.services.allocation import assemble_report
from dca_api.domain.services.css_scoring import calculate_breakdown, signal_from_css
from dca_api.domain.services.indicators import compute_indicators

logger = logging.getLogger(__name__)


class AllocationEngine:
    """Runs the allocation pipeline against injected data sources."""

    def __init__(
        self,
        market_data: MarketDataSource,
        sentiment: SentimentSource,
        base_allocations: dict[str, float] | None = None,
    ):
        self.market_data = market_data
        self.sentiment = sentiment
        self.base_allocations = (
            base_allocations if base_allocations is not None else BASE_ALLOCATIONS
        )

    async def generate_report(self, config: AllocationConfig) -> AllocationReport:
        """Produce the allocation report for ``config``.

        Raises:
            ConfigurationError: If the config is invalid (before any I/O)
        """
        config.validate()

        logger.info(
            f"[Allocation] Starting CSS run: budget=${config.base_budget:.2f}, "
            f"assets={','.join(config.asset_symbols)}"
        )

        volatility, sentiment = await asyncio.gather(
            self.market_data.fetch_volatility_index(),
            self.sentiment.fetch(),
        )
        logger.info(
            f"[Allocation] VIX={volatility.value:.2f} ({volatility.source.value}), "
            f"F&G={'n/a' if not sentiment.success else f'{sentiment.value:.0f}'}"
        )

        semaphore = asyncio.Semaphore(config.max_concurrency)
        results = await asyncio.gather(
            *(
                self._analyze_bounded(
                    semaphore, symbol, volatility, sentiment, config.history_days
                )
                for symbol in config.asset_symbols
            )
        )

        analyses = [result for result in results if result is not None]
        excluded = [
            symbol
            for symbol, result in zip(config.asset_symbols, results)
            if result is None
        ]
        if excluded:
            logger.warning(f"[Allocation] Excluded from report: {', '.join(excluded)}")

        report = assemble_report(
            analyses=analyses,
            volatility=volatility,
            sentiment=sentiment,
            base_budget=config.base_budget,
            excluded_symbols=excluded,
            base_allocations=self.base_allocations,
        )
        logger.info(
            f"[Allocation] Report ready: {len(report.allocations)} allocations, "
            f"total=${report.total_amount:.2f}, market CSS={report.market_css:.1f}"
        )
        return report

    async def _analyze_bounded(
        self,
        semaphore: asyncio.Semaphore,
        symbol: str,
        volatility: VolatilityReading,
        sentiment: SentimentReading,
        history_days: int,
    ) -> AssetAnalysis | None:
        async with semaphore:
            try:
                return await self.analyze_asset(symbol, volatility, sentiment, history_days)
            except Exception as e:
                logger.error(f"[Allocation] Analysis failed for {symbol}: {e}", exc_info=True)
                return None

    async def analyze_asset(
        self,
        symbol: str,
        volatility: VolatilityReading,
        sentiment: SentimentReading,
        history_days: int,
    ) -> AssetAnalysis:
        """Quote + history -> indicators -> CSS breakdown -> signal for one asset."""
        quote, history = await asyncio.gather(
            self.market_data.fetch_quote(symbol),
            self.market_data.fetch_history(symbol, history_days),
        )
        if not history.prices:
            raise AnalysisError(f"No price history for {symbol}", symbol=symbol)

        indicators = compute_indicators(history.prices)
        breakdown = calculate_breakdown(volatility.value, quote.price, indicators, sentiment)

        logger.info(
            f"[Allocation] {symbol}: CSS={breakdown.total_score:.1f} "
            f"x{breakdown.multiplier} (quote={quote.source.value}, "
            f"history={history.source.value}, indicators={indicators.source.value})"
        )

        return AssetAnalysis(
            symbol=symbol,
            quote=quote,
            history_source=history.source,
            indicators=indicators,
            breakdown=breakdown,
            signal=signal_from_css(breakdown.total_score),
        )
