"""CSS allocation endpoints."""

import asyncio
import logging
import re
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from dca_api.core.config import AllocationConfig, load_config
from dca_api.core.delivery import deliver_report
from dca_api.core.market_data import MarketDataProvider
from dca_api.core.pipeline import AllocationEngine
from dca_api.core.protocols import ReportNotifier, ReportStore
from dca_api.core.sentiment import FearGreedClient
from dca_api.domain.exceptions import ConfigurationError
from dca_api.routes.email import EmailReportNotifier
from dca_api.storage import LocalReportStore, NullReportStore

logger = logging.getLogger(__name__)

router = APIRouter()

SYMBOL_PATTERN = re.compile(r"^[A-Za-z]{1,10}$")


# ============================================================================
# Request / Response models
# ============================================================================


class AllocationRunRequest(BaseModel):
    """Request model for a CSS allocation run."""

    investment_amount: float | None = Field(
        None,
        ge=50,
        le=10000,
        description="Weekly base budget override (50-10000). Defaults to WEEKLY_INVESTMENT_AMOUNT.",
    )
    stocks: list[str] | None = Field(
        None,
        min_length=1,
        max_length=20,
        description="Symbols to analyse (1-20, letters only). Defaults to DEFAULT_STOCKS.",
    )
    send_email: bool = Field(True, description="Email the report after the run")
    save_report: bool = Field(True, description="Store a report snapshot after the run")

    @field_validator("stocks")
    @classmethod
    def normalize_symbols(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        for symbol in value:
            if not SYMBOL_PATTERN.match(symbol):
                raise ValueError(f"Invalid stock symbol: {symbol!r} (1-10 letters)")
        return [symbol.upper() for symbol in value]


class AllocationPreviewResponse(BaseModel):
    """Response model for the preview endpoint (no delivery)."""

    success: bool = Field(..., description="True when the report was produced")
    report: dict[str, Any] = Field(..., description="Full allocation report")


class AllocationRunResponse(BaseModel):
    """Response model for an allocation run with delivery."""

    success: bool = Field(..., description="True when the report was produced")
    report: dict[str, Any] = Field(..., description="Full allocation report")
    email_sent: bool = Field(..., description="Whether the report email was sent")
    saved_report: bool = Field(..., description="Whether a report snapshot was stored")
    report_id: str | None = Field(None, description="Stored snapshot id (report date)")
    replaced_existing: bool = Field(
        False, description="True when a same-date snapshot was replaced"
    )
    storage_error: str | None = Field(None, description="Storage failure, if any")
    email_error: str | None = Field(None, description="Email failure, if any")


# ============================================================================
# Dependency injection for testability
# ============================================================================


def get_allocation_config() -> AllocationConfig:
    """Load the allocation config from the environment."""
    try:
        return load_config()
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def get_allocation_engine() -> AllocationEngine:
    return AllocationEngine(market_data=MarketDataProvider(), sentiment=FearGreedClient())


def get_report_store(
    config: AllocationConfig = Depends(get_allocation_config),
) -> ReportStore:
    """Local store when REPORT_STORE_PATH is set, otherwise the null store."""
    if config.report_store_path:
        return LocalReportStore(config.report_store_path)
    return NullReportStore()


def get_report_notifier() -> ReportNotifier:
    return EmailReportNotifier()


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/css", response_model=AllocationPreviewResponse)
async def preview_css_allocation(
    config: AllocationConfig = Depends(get_allocation_config),
    engine: AllocationEngine = Depends(get_allocation_engine),
) -> AllocationPreviewResponse:
    """Compute this week's CSS allocation without storing or emailing it."""
    try:
        report = await engine.generate_report(config)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return AllocationPreviewResponse(success=True, report=report.to_dict())


@router.post("/css", response_model=AllocationRunResponse)
async def run_css_allocation(
    request: AllocationRunRequest = AllocationRunRequest(),
    config: AllocationConfig = Depends(get_allocation_config),
    engine: AllocationEngine = Depends(get_allocation_engine),
    store: ReportStore = Depends(get_report_store),
    notifier: ReportNotifier = Depends(get_report_notifier),
) -> AllocationRunResponse:
    """Run the weekly CSS allocation, then store and email the report.

    Storage and email are best-effort: their failures are reported in the
    response and never fail the request.

    Raises:
        HTTPException 400: if the resulting configuration is invalid
    """
    run_config = config.with_overrides(
        base_budget=request.investment_amount,
        asset_symbols=request.stocks,
    )

    try:
        report = await engine.generate_report(run_config)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    # SMTP and file I/O are blocking
    delivery = await asyncio.to_thread(
        deliver_report,
        report,
        store=store if request.save_report else None,
        notifier=notifier if request.send_email else None,
    )
    logger.info(
        f"[Allocation] Delivery: saved={delivery.saved.success}, "
        f"email_sent={delivery.email_sent}"
    )

    return AllocationRunResponse(
        success=True,
        report=report.to_dict(),
        email_sent=delivery.email_sent,
        saved_report=delivery.saved.success,
        report_id=delivery.saved.report_id,
        replaced_existing=delivery.saved.replaced,
        storage_error=delivery.saved.error,
        email_error=delivery.email_error,
    )
