"""Portfolio performance endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter

from networth.api.converters import to_cash_flows, to_dividends, to_holdings, to_snapshots
from networth.schemas import (
    PerformanceMetricsSchema,
    PerformanceRequest,
    PerformanceSummaryRequest,
    PerformanceSummaryResponse,
    YieldMetricsSchema,
    YieldRequest,
    YieldResponse,
)
from networth.services.dividends import calculate_current_yield_metrics, calculate_yield_on_cost_metrics
from networth.services.performance import (
    calculate_performance_for_period,
    get_all_performance_data,
    prepare_monthly_returns_heatmap,
    prepare_performance_chart_data,
    prepare_underwater_drawdown_data,
)

router = APIRouter()


@router.post("/metrics", response_model=PerformanceMetricsSchema)
async def performance_metrics(request: PerformanceRequest) -> PerformanceMetricsSchema:
    """Return every metric for a single time window."""

    metrics = calculate_performance_for_period(
        to_snapshots(request.snapshots),
        request.period,
        request.risk_free_rate,
        to_cash_flows(request.cash_flows),
        request.custom_start,
        request.custom_end,
        today=request.today,
        dividends=to_dividends(request.dividends),
        holdings=to_holdings(request.holdings),
    )
    return PerformanceMetricsSchema.model_validate(asdict(metrics))


@router.post("/summary", response_model=PerformanceSummaryResponse)
async def performance_summary(request: PerformanceSummaryRequest) -> PerformanceSummaryResponse:
    """Return the standard windows, rolling series and chart data in one call."""

    snapshots = to_snapshots(request.snapshots)
    cash_flows = to_cash_flows(request.cash_flows)
    data = get_all_performance_data(snapshots, cash_flows, request.risk_free_rate, today=request.today)
    payload = asdict(data)
    payload["chart"] = [asdict(p) for p in prepare_performance_chart_data(snapshots, cash_flows)]
    payload["heatmap"] = [asdict(r) for r in prepare_monthly_returns_heatmap(snapshots, cash_flows)]
    payload["underwater"] = [asdict(p) for p in prepare_underwater_drawdown_data(snapshots, cash_flows)]
    return PerformanceSummaryResponse.model_validate(payload)


@router.post("/yield", response_model=YieldResponse)
async def dividend_yield(request: YieldRequest) -> YieldResponse:
    """Trailing-twelve-month current yield and yield on cost."""

    dividends = to_dividends(request.dividends) or []
    holdings = to_holdings(request.holdings) or []
    current = calculate_current_yield_metrics(dividends, holdings, request.as_of)
    on_cost = calculate_yield_on_cost_metrics(dividends, holdings, request.as_of)
    return YieldResponse(
        current_yield=YieldMetricsSchema.model_validate(asdict(current)),
        yield_on_cost=YieldMetricsSchema.model_validate(asdict(on_cost)),
    )


__all__ = ["dividend_yield", "performance_metrics", "performance_summary"]
