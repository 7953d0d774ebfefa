"""FastAPI application entrypoint."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from dca_api import __version__
from dca_api.routes import allocation, health, root

# dca_api/.env, if present
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="DCA API",
    description="Composite Signal Score weekly allocation service",
    version=__version__,
)

app.include_router(root.router)
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(allocation.router, prefix="/allocation", tags=["allocation"])
