"""Health check endpoints."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dca_api.core.config import load_config
from dca_api.domain.exceptions import ConfigurationError
from dca_api.routes.email import is_gmail_configured

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def health_check() -> dict:
    """Generic health check."""
    return {"status": "healthy"}


@router.get("/live")
def liveness() -> dict:
    """Liveness check - is the process running?"""
    return {"status": "alive"}


@router.get("/ready")
def readiness():
    """Readiness check - can the service build a valid allocation config?

    Email delivery is best effort, so a missing Gmail setup is reported
    but does not make the service unready.
    """
    try:
        load_config()
    except ConfigurationError as e:
        logger.warning(f"[Health] Not ready: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "detail": str(e)},
        )
    return {"status": "ready", "email_configured": is_gmail_configured()}
