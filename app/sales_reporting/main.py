"""
Hardware Sales Reporting -- FastAPI application.

Serves read-only analytical reports (gross sales, top markets / customers /
products, regional share, market badges, forecast accuracy) computed in
memory over a snapshot of the sales warehouse tables.

The snapshot is loaded once at startup from ``DATA_SOURCE`` and shared by all
requests.  For local development set ``DATA_SOURCE=csv`` and point
``CSV_DATA_DIR`` at a directory of table extracts.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sales_reporting.errors import (
    DataIntegrityError,
    DataSourceError,
    InvalidParameterError,
    MissingReferenceDataError,
)
from sales_reporting.models import DatasetSummary
from sales_reporting.routers import reports
from sales_reporting.services.data_source import get_dataset, summarize
from sales_reporting.utils.config import APP_TITLE, APP_VERSION, LOG_LEVEL

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the dataset snapshot before serving the first request."""
    logger.info("Starting %s v%s", APP_TITLE, APP_VERSION)
    try:
        get_dataset()
    except Exception:
        # Keep serving /health; report endpoints retry the load.
        logger.exception("Initial dataset load failed")
    yield
    logger.info("Shutting down %s", APP_TITLE)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
app = FastAPI(
    title=APP_TITLE,
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reports.router)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
@app.exception_handler(InvalidParameterError)
async def invalid_parameter_handler(
    request: Request, exc: InvalidParameterError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(MissingReferenceDataError)
async def missing_reference_handler(
    request: Request, exc: MissingReferenceDataError
) -> JSONResponse:
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "missing": [
                {"kind": kind, "code": code, "fiscal_year": fy}
                for kind, code, fy in exc.missing
            ],
        },
    )


@app.exception_handler(DataSourceError)
@app.exception_handler(DataIntegrityError)
async def data_source_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Dataset unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(
        status_code=500, content={"detail": f"{type(exc).__name__}: {exc}"}
    )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return a simple health-check response."""
    return {"status": "healthy", "version": APP_VERSION}


# ---------------------------------------------------------------------------
# Dataset summary
# ---------------------------------------------------------------------------
@app.get(
    "/api/v1/dataset",
    response_model=DatasetSummary,
    tags=["dataset"],
    summary="Row counts of the loaded snapshot",
)
def api_get_dataset_summary() -> DatasetSummary:
    """Return table row counts and the fiscal years present in the sales data."""
    return summarize(get_dataset())
