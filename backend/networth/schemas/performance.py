"""Schemas for portfolio performance analytics."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, validator

from networth.services.snapshots import TimePeriod

from .snapshots import CashFlowSchema, MonthlySnapshotSchema


class HoldingSchema(BaseModel):
    asset_id: str
    ticker: str
    quantity: float
    current_price: float = Field(..., ge=0.0)
    average_cost: Optional[float] = Field(default=None, ge=0.0)


class DividendSchema(BaseModel):
    asset_id: str
    payment_date: date
    gross_amount: float = Field(..., ge=0.0)
    tax_amount: float = Field(0.0, ge=0.0)
    net_amount: Optional[float] = None


class PerformanceRequest(BaseModel):
    snapshots: list[MonthlySnapshotSchema]
    cash_flows: list[CashFlowSchema] = Field(default_factory=list)
    period: TimePeriod = TimePeriod.ALL
    custom_start: date | None = None
    custom_end: date | None = None
    risk_free_rate: float | None = None
    today: date | None = Field(default=None, description="Reference date for relative windows")
    dividends: list[DividendSchema] | None = None
    holdings: list[HoldingSchema] | None = None

    @validator("custom_end")
    def _custom_window_is_ordered(cls, value: date | None, values: dict) -> date | None:  # noqa: B902
        start = values.get("custom_start")
        if value is not None and start is not None and value < start:
            raise ValueError("custom_end must not precede custom_start")
        return value


class PerformanceMetricsSchema(BaseModel):
    time_period: TimePeriod | None
    start_date: date | None
    end_date: date | None
    start_net_worth: float
    end_net_worth: float
    risk_free_rate: float
    roi: float | None = None
    cagr: float | None = None
    time_weighted_return: float | None = None
    money_weighted_return: float | None = None
    sharpe_ratio: float | None = None
    volatility: float | None = None
    max_drawdown: float | None = None
    max_drawdown_date: str | None = None
    drawdown_duration: int | None = None
    drawdown_period: str | None = None
    recovery_time: int | None = None
    recovery_period: str | None = None
    still_underwater: bool = False
    current_yield: float | None = None
    yield_on_cost: float | None = None
    total_contributions: float = 0.0
    total_withdrawals: float = 0.0
    net_cash_flow: float = 0.0
    total_income: float = 0.0
    total_expenses: float = 0.0
    total_dividend_income: float = 0.0
    number_of_months: int = 0
    has_insufficient_data: bool = False
    error_message: str | None = None


class RollingPeriodSchema(BaseModel):
    period_start_date: date
    period_end_date: date
    cagr: float
    sharpe_ratio: float | None
    volatility: float | None


class PerformanceChartPointSchema(BaseModel):
    date: str = Field(..., examples=["03/2025"])
    net_worth: float
    contributions: float
    returns: float


class HeatmapMonthSchema(BaseModel):
    month: int
    return_pct: float | None


class HeatmapRowSchema(BaseModel):
    year: int
    months: list[HeatmapMonthSchema]


class UnderwaterPointSchema(BaseModel):
    date: str
    drawdown: float
    year: int
    month: int


class PerformanceSummaryRequest(BaseModel):
    snapshots: list[MonthlySnapshotSchema]
    cash_flows: list[CashFlowSchema] = Field(default_factory=list)
    risk_free_rate: float | None = None
    today: date | None = None


class PerformanceSummaryResponse(BaseModel):
    ytd: PerformanceMetricsSchema
    one_year: PerformanceMetricsSchema
    three_year: PerformanceMetricsSchema
    five_year: PerformanceMetricsSchema
    all_time: PerformanceMetricsSchema
    rolling_12m: list[RollingPeriodSchema]
    rolling_36m: list[RollingPeriodSchema]
    snapshot_count: int
    last_updated: datetime
    chart: list[PerformanceChartPointSchema] = Field(default_factory=list)
    heatmap: list[HeatmapRowSchema] = Field(default_factory=list)
    underwater: list[UnderwaterPointSchema] = Field(default_factory=list)


class YieldRequest(BaseModel):
    dividends: list[DividendSchema]
    holdings: list[HoldingSchema]
    as_of: date

    class Config:
        json_schema_extra = {
            "example": {
                "dividends": [
                    {"asset_id": "vwce", "payment_date": "2025-03-20", "gross_amount": 120, "tax_amount": 31.2}
                ],
                "holdings": [
                    {"asset_id": "vwce", "ticker": "VWCE", "quantity": 40, "current_price": 120, "average_cost": 95}
                ],
                "as_of": "2025-06-30",
            }
        }


class YieldMetricsSchema(BaseModel):
    yield_gross: float | None
    yield_net: float | None
    dividends_gross: float
    dividends_net: float
    base_value: float
    asset_count: int


class YieldResponse(BaseModel):
    current_yield: YieldMetricsSchema
    yield_on_cost: YieldMetricsSchema


__all__ = [
    "DividendSchema",
    "HeatmapMonthSchema",
    "HeatmapRowSchema",
    "HoldingSchema",
    "PerformanceChartPointSchema",
    "PerformanceMetricsSchema",
    "PerformanceRequest",
    "PerformanceSummaryRequest",
    "PerformanceSummaryResponse",
    "RollingPeriodSchema",
    "UnderwaterPointSchema",
    "YieldMetricsSchema",
    "YieldRequest",
    "YieldResponse",
]
