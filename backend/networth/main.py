"""FastAPI application entrypoint."""

from __future__ import annotations

from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from networth import __version__
from networth.api.routes import api_router
from networth.config import get_settings
from networth.core.logging import setup_logging
from networth.core.telemetry import setup_telemetry
from networth.services.calibration import CalibrationCache

settings = get_settings()
app = FastAPI(title=settings.app_name, version=__version__)
setup_logging()
setup_telemetry(app, settings)
app.state.calibration_cache = CalibrationCache()

# Dashboard dev servers run on localhost with arbitrary ports
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["traceparent", "tracestate", "x-request-id"],
)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return service readiness metadata."""

    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "timezone": settings.timezone,
        "base_currency": settings.base_currency,
    }


def configure_app() -> FastAPI:
    """Attach routes."""

    app.include_router(api_router)
    return app


configure_app()

__all__ = ["app", "configure_app"]
