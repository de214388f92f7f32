"""FastAPI application wiring for the analytics service."""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..analysis.engine import AnalyticsEngine
from ..config import AnalyticsConfig, load_default_config
from ..data.ingestion import load_readings_csv
from ..data.source import InMemoryReadingSource, ReadingSource
from ..exceptions import (
    AnalyticsError,
    ConfigurationError,
    InvalidRangeError,
    UnknownDeviceError,
    UpstreamUnavailableError,
)
from .routes.analytics import router as analytics_router

_logger = logging.getLogger(__name__)

READINGS_ENV_VAR = "FLEET_ANALYTICS_READINGS_CSV"

_STATUS_CODES: dict[type[AnalyticsError], int] = {
    InvalidRangeError: 400,
    UnknownDeviceError: 404,
    ConfigurationError: 422,
    UpstreamUnavailableError: 503,
}


def _default_source() -> ReadingSource:
    path = os.environ.get(READINGS_ENV_VAR)
    if path:
        source = load_readings_csv(path)
        _logger.info("Loaded %d readings from %s", len(source), path)
        return source
    return InMemoryReadingSource()


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    """Render the error taxonomy with the context needed to reproduce it."""

    status_code = next(
        (_STATUS_CODES[cls] for cls in type(exc).__mro__ if cls in _STATUS_CODES), 500
    )
    if status_code >= 500:
        _logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        {
            "detail": exc.args[0] if exc.args else str(exc),
            "error": type(exc).__name__,
            "context": exc.context(),
        },
        status_code=status_code,
    )


def create_app(
    source: ReadingSource | None = None, config: AnalyticsConfig | None = None
) -> FastAPI:
    """Build the API around a reading source (CSV from the environment by default)."""

    app = FastAPI(title="Fleet Analytics")
    app.state.engine = AnalyticsEngine(
        source if source is not None else _default_source(),
        config or load_default_config(),
    )
    app.add_exception_handler(AnalyticsError, analytics_error_handler)

    @app.get("/health")
    def health() -> JSONResponse:
        """Simple liveness endpoint used by deployment probes."""

        return JSONResponse({"status": "ok"})

    app.include_router(analytics_router)
    return app


app = create_app()


__all__ = ["app", "create_app"]
