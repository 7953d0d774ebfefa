"""Root endpoint."""

from fastapi import APIRouter

from dca_api import __version__

router = APIRouter(tags=["root"])


@router.get("/")
def read_root() -> dict:
    """Service identification."""
    return {"message": "CSS weekly allocation API", "service": "dca-api", "version": __version__}
