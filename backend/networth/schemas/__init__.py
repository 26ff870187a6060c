"""Pydantic schema exports."""

from .snapshots import CashFlowSchema, MonthlySnapshotSchema
from .performance import (
    DividendSchema,
    HoldingSchema,
    PerformanceMetricsSchema,
    PerformanceRequest,
    PerformanceSummaryRequest,
    PerformanceSummaryResponse,
    RollingPeriodSchema,
    YieldMetricsSchema,
    YieldRequest,
    YieldResponse,
)
from .montecarlo import (
    CalibrationRequest,
    HistoricalReturnsSchema,
    MarketAssumptionSchema,
    MonteCarloRequest,
    MonteCarloResponse,
    ScenarioComparisonResponse,
    ScenarioParamsSchema,
    ScenarioRequest,
)

__all__ = [
    "CalibrationRequest",
    "CashFlowSchema",
    "DividendSchema",
    "HistoricalReturnsSchema",
    "HoldingSchema",
    "MarketAssumptionSchema",
    "MonteCarloRequest",
    "MonteCarloResponse",
    "MonthlySnapshotSchema",
    "PerformanceMetricsSchema",
    "PerformanceRequest",
    "PerformanceSummaryRequest",
    "PerformanceSummaryResponse",
    "RollingPeriodSchema",
    "ScenarioComparisonResponse",
    "ScenarioParamsSchema",
    "ScenarioRequest",
    "YieldMetricsSchema",
    "YieldRequest",
    "YieldResponse",
]
