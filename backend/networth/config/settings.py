"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_TIMEZONE = "Europe/Rome"
DEFAULT_BASE_CURRENCY = "EUR"
DEFAULT_RISK_FREE_RATE = 2.5
OUTLIER_RETURN_THRESHOLD_PCT = 50.0


class AppSettings(BaseSettings):
    """Configuration options for the net-worth analytics service."""

    app_name: str = Field(default="Net Worth Analytics Engine")
    timezone: str = Field(default=DEFAULT_TIMEZONE)
    base_currency: str = Field(default=DEFAULT_BASE_CURRENCY)

    risk_free_rate: float = Field(
        default=DEFAULT_RISK_FREE_RATE,
        description="Annual risk-free rate (%) used for Sharpe ratios when the caller omits one.",
    )
    outlier_return_threshold_pct: float = Field(
        default=OUTLIER_RETURN_THRESHOLD_PCT,
        gt=0.0,
        description="Monthly returns at or beyond this magnitude are treated as contribution artifacts.",
    )

    irr_max_iterations: int = Field(default=100, gt=0)
    irr_tolerance: float = Field(default=1e-6, gt=0.0)

    calibration_min_snapshots: int = Field(default=24, gt=1)
    calibration_min_points: int = Field(default=12, gt=1)
    calibration_cache_ttl_minutes: int = Field(default=60, ge=0)

    montecarlo_default_simulations: int = Field(default=1000, gt=0)
    montecarlo_max_simulations: int = Field(default=50_000, gt=0)
    montecarlo_distribution_bins: int = Field(default=10, gt=0)

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="networth-engine")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"telemetry_otlp_endpoint"}
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_BASE_CURRENCY",
    "DEFAULT_RISK_FREE_RATE",
    "DEFAULT_TIMEZONE",
    "OUTLIER_RETURN_THRESHOLD_PCT",
    "get_settings",
]
