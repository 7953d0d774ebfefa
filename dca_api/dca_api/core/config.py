"""Configuration for the weekly CSS allocation run."""

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from dca_api.domain.constants import (
    DEFAULT_ASSET_SYMBOLS,
    DEFAULT_BASE_BUDGET,
    DEFAULT_MAX_CONCURRENCY,
    HISTORY_LOOKBACK_DAYS,
    MA_LONG_PERIOD,
    MAX_BUDGET_FACTOR,
    MIN_BUDGET_FACTOR,
    SLOPE_LOOKBACK_DAYS,
)
from dca_api.domain.exceptions import ConfigurationError

# Environment variable names
ENV_WEEKLY_INVESTMENT_AMOUNT = "WEEKLY_INVESTMENT_AMOUNT"
ENV_DEFAULT_STOCKS = "DEFAULT_STOCKS"
ENV_HISTORY_LOOKBACK_DAYS = "HISTORY_LOOKBACK_DAYS"
ENV_ANALYSIS_MAX_CONCURRENCY = "ANALYSIS_MAX_CONCURRENCY"
ENV_REPORT_STORE_PATH = "REPORT_STORE_PATH"


@dataclass(frozen=True)
class AllocationConfig:
    """Read-only settings for one allocation run.

    Built once at startup and passed explicitly to the engine. Request-level
    overrides create a copy via ``with_overrides``.
    """

    base_budget: float = DEFAULT_BASE_BUDGET
    asset_symbols: list[str] = field(default_factory=lambda: list(DEFAULT_ASSET_SYMBOLS))
    history_days: int = HISTORY_LOOKBACK_DAYS
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    report_store_path: str | None = None

    @property
    def min_budget(self) -> float:
        return self.base_budget * MIN_BUDGET_FACTOR

    @property
    def max_budget(self) -> float:
        return self.base_budget * MAX_BUDGET_FACTOR

    def validate(self) -> None:
        """Raise ConfigurationError if the config cannot produce a report."""
        if not math.isfinite(self.base_budget) or self.base_budget <= 0:
            raise ConfigurationError(
                "Weekly budget must be positive",
                field="base_budget",
                value=self.base_budget,
            )
        if not self.asset_symbols:
            raise ConfigurationError(
                "At least one asset symbol is required",
                field="asset_symbols",
                value=self.asset_symbols,
            )
        if any(not symbol or not symbol.strip() for symbol in self.asset_symbols):
            raise ConfigurationError(
                "Asset symbols must be non-empty",
                field="asset_symbols",
                value=self.asset_symbols,
            )
        required_days = MA_LONG_PERIOD + SLOPE_LOOKBACK_DAYS
        if self.history_days < required_days:
            raise ConfigurationError(
                f"History window must cover MA50 plus slope lookback "
                f"({required_days} days)",
                field="history_days",
                value=self.history_days,
            )
        if self.max_concurrency < 1:
            raise ConfigurationError(
                "Concurrency cap must be at least 1",
                field="max_concurrency",
                value=self.max_concurrency,
            )

    def with_overrides(
        self,
        base_budget: float | None = None,
        asset_symbols: list[str] | None = None,
    ) -> "AllocationConfig":
        """Copy of this config with request-level overrides applied."""
        changes: dict[str, object] = {}
        if base_budget is not None:
            changes["base_budget"] = base_budget
        if asset_symbols:
            changes["asset_symbols"] = list(asset_symbols)
        return replace(self, **changes) if changes else self


def parse_symbols(raw: str) -> list[str]:
    """Comma separated symbols -> upper-cased list without blanks."""
    return [part.strip().upper() for part in raw.split(",") if part.strip()]


def _read_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be a number, got {raw!r}", field=name, value=raw
        ) from e


def load_config(environ: Mapping[str, str] | None = None) -> AllocationConfig:
    """Build and validate the allocation config from environment variables.

    Reads:
    - WEEKLY_INVESTMENT_AMOUNT: base weekly budget (default: 250)
    - DEFAULT_STOCKS: comma separated symbols (default: the CSS basket)
    - HISTORY_LOOKBACK_DAYS: trading days of history per asset (default: 120)
    - ANALYSIS_MAX_CONCURRENCY: concurrent asset analyses (default: 4)
    - REPORT_STORE_PATH: directory for report snapshots (unset = disabled)

    Raises:
        ConfigurationError: On unparsable numbers or invalid values
    """
    if environ is None:
        environ = os.environ

    symbols_raw = environ.get(ENV_DEFAULT_STOCKS, "")
    store_path = environ.get(ENV_REPORT_STORE_PATH, "").strip()

    config = AllocationConfig(
        base_budget=_read_number(
            environ, ENV_WEEKLY_INVESTMENT_AMOUNT, DEFAULT_BASE_BUDGET, float
        ),
        asset_symbols=parse_symbols(symbols_raw) or list(DEFAULT_ASSET_SYMBOLS),
        history_days=_read_number(
            environ, ENV_HISTORY_LOOKBACK_DAYS, HISTORY_LOOKBACK_DAYS, int
        ),
        max_concurrency=_read_number(
            environ, ENV_ANALYSIS_MAX_CONCURRENCY, DEFAULT_MAX_CONCURRENCY, int
        ),
        report_store_path=store_path or None,
    )
    config.validate()
    return config
