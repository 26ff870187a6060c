"""Request-scoped dependencies."""

from __future__ import annotations

from fastapi import Request

from networth.services.calibration import CalibrationCache


def get_calibration_cache(request: Request) -> CalibrationCache:
    """Return the calibration cache owned by the running application."""

    cache = getattr(request.app.state, "calibration_cache", None)
    if cache is None:
        cache = CalibrationCache()
        request.app.state.calibration_cache = cache
    return cache


__all__ = ["get_calibration_cache"]
