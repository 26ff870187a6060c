"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .montecarlo import router as montecarlo_router
from .performance import router as performance_router

api_router = APIRouter()
api_router.include_router(performance_router, prefix="/performance", tags=["performance"])
api_router.include_router(montecarlo_router, prefix="/montecarlo", tags=["montecarlo"])

__all__ = ["api_router"]
