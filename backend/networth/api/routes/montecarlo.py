"""Monte Carlo retirement simulation endpoints."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status

from networth.api.converters import to_snapshots
from networth.api.deps import get_calibration_cache
from networth.config import get_settings
from networth.schemas import (
    CalibrationRequest,
    HistoricalReturnsSchema,
    MonteCarloRequest,
    MonteCarloResponse,
    ScenarioComparisonResponse,
    ScenarioParamsSchema,
    ScenarioRequest,
)
from networth.services.calibration import (
    CalibrationCache,
    calculate_historical_returns,
    snapshots_in_window,
)
from networth.services.montecarlo import (
    InvalidSimulationParameters,
    MarketAssumption,
    MonteCarloParams,
    MonteCarloResults,
    MonteCarloScenarios,
    ScenarioParams,
    get_default_market_parameters,
    run_monte_carlo_simulation,
    run_scenario_comparison,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _build_params(request: MonteCarloRequest) -> MonteCarloParams:
    defaults = get_default_market_parameters()
    assumptions = dict(defaults.assumptions)
    for asset_class, assumption in (request.assumptions or {}).items():
        assumptions[asset_class] = MarketAssumption(assumption.expected_return, assumption.volatility)

    simulations = request.number_of_simulations
    if simulations is None:
        simulations = get_settings().montecarlo_default_simulations
    return MonteCarloParams(
        initial_portfolio=request.initial_portfolio,
        retirement_years=request.retirement_years,
        annual_withdrawal=request.annual_withdrawal,
        allocation=dict(request.allocation),
        assumptions=assumptions,
        withdrawal_adjustment=request.withdrawal_adjustment,
        inflation_rate=defaults.inflation_rate if request.inflation_rate is None else request.inflation_rate,
        number_of_simulations=simulations,
        seed=request.seed,
    )


def _to_scenario(schema: ScenarioParamsSchema) -> ScenarioParams:
    return ScenarioParams(
        assumptions={
            asset_class: MarketAssumption(a.expected_return, a.volatility)
            for asset_class, a in schema.assumptions.items()
        },
        inflation_rate=schema.inflation_rate,
    )


def _to_response(results: MonteCarloResults, include_simulations: bool) -> MonteCarloResponse:
    payload = asdict(results)
    if not include_simulations:
        payload["simulations"] = None
    return MonteCarloResponse.model_validate(payload)


def _bad_request(exc: InvalidSimulationParameters) -> HTTPException:
    logger.info("Rejected simulation parameters: %s", exc)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/run", response_model=MonteCarloResponse)
async def run_monte_carlo(request: MonteCarloRequest) -> MonteCarloResponse:
    """Simulate retirement outcomes for the provided portfolio."""

    try:
        params = _build_params(request)
        results = await asyncio.to_thread(run_monte_carlo_simulation, params)
    except InvalidSimulationParameters as exc:
        raise _bad_request(exc) from exc
    return _to_response(results, request.include_simulations)


@router.post("/scenarios", response_model=ScenarioComparisonResponse)
async def run_scenarios(request: ScenarioRequest) -> ScenarioComparisonResponse:
    """Run bear, base and bull market assumptions side by side."""

    scenarios = None
    if request.scenarios is not None:
        scenarios = MonteCarloScenarios(
            bear=_to_scenario(request.scenarios.bear),
            base=_to_scenario(request.scenarios.base),
            bull=_to_scenario(request.scenarios.bull),
        )
    try:
        params = _build_params(request)
        comparison = await asyncio.to_thread(run_scenario_comparison, params, scenarios)
    except InvalidSimulationParameters as exc:
        raise _bad_request(exc) from exc
    return ScenarioComparisonResponse(
        bear=_to_response(comparison.bear, request.include_simulations),
        base=_to_response(comparison.base, request.include_simulations),
        bull=_to_response(comparison.bull, request.include_simulations),
    )


@router.post("/calibrate", response_model=HistoricalReturnsSchema | None)
async def calibrate(
    request: CalibrationRequest,
    cache: CalibrationCache = Depends(get_calibration_cache),
) -> HistoricalReturnsSchema | None:
    """Derive equity/bond assumptions from the caller's snapshot history.

    Returns ``null`` when the history is too short to calibrate.
    """

    snapshots = to_snapshots(request.snapshots)
    if request.user_id:
        data = cache.get_or_compute(request.user_id, snapshots, request.start, request.end)
    else:
        data = calculate_historical_returns(snapshots_in_window(snapshots, request.start, request.end))
    if data is None:
        return None
    return HistoricalReturnsSchema.model_validate(asdict(data))


@router.delete("/calibrate/{user_id}")
async def invalidate_calibration(
    user_id: str,
    cache: CalibrationCache = Depends(get_calibration_cache),
) -> dict[str, int]:
    """Forget cached calibrations after the user's history changed."""

    return {"invalidated": cache.invalidate(user_id)}


__all__ = ["calibrate", "invalidate_calibration", "run_monte_carlo", "run_scenarios"]
