"""Monte Carlo retirement simulator.

Each simulated path draws yearly per-asset-class returns from independent
normal distributions, blends them by allocation, applies the return to the
portfolio and then subtracts the year's withdrawal. A path fails the first year
its value drops to zero or below. All paths of a run advance together as numpy
arrays: every year draws a fresh (paths x asset classes) block of independent
variates from one seeded ``numpy.random.Generator``, so no path reads another
path's draws and a seeded run is reproducible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Sequence

import numpy as np

from networth.config import get_settings
from networth.core.stats import lower_median, mean, random_normal
from networth.core.telemetry import get_meter, get_tracer

logger = logging.getLogger(__name__)

ALLOCATION_TOLERANCE = 0.01
PERCENTILE_LEVELS = {"p10": 0.10, "p25": 0.25, "p50": 0.50, "p75": 0.75, "p90": 0.90}

_paths_counter = get_meter().create_counter(
    "networth.montecarlo.paths",
    unit="1",
    description="Simulated retirement paths",
)


class AssetClass(str, Enum):
    EQUITY = "equity"
    BONDS = "bonds"
    REAL_ESTATE = "real_estate"
    COMMODITIES = "commodities"


class WithdrawalAdjustment(str, Enum):
    NONE = "none"
    INFLATION = "inflation"


class InvalidSimulationParameters(ValueError):
    """Raised before any simulation work when the configuration is unusable."""


@dataclass
class MarketAssumption:
    expected_return: float
    volatility: float


@dataclass
class MonteCarloParams:
    """Scenario definition; returns, volatilities and rates are percentages."""

    initial_portfolio: float
    retirement_years: int
    annual_withdrawal: float
    allocation: dict[AssetClass, float]
    assumptions: dict[AssetClass, MarketAssumption]
    withdrawal_adjustment: WithdrawalAdjustment = WithdrawalAdjustment.INFLATION
    inflation_rate: float = 2.5
    number_of_simulations: int = 1000
    seed: int | None = None

    def __post_init__(self) -> None:
        try:
            self.allocation = {AssetClass(k): float(v) for k, v in self.allocation.items()}
            self.assumptions = {AssetClass(k): v for k, v in self.assumptions.items()}
            self.withdrawal_adjustment = WithdrawalAdjustment(self.withdrawal_adjustment)
        except ValueError as exc:
            raise InvalidSimulationParameters(str(exc)) from exc


@dataclass
class SimulationPathPoint:
    year: int
    value: float


@dataclass
class SingleSimulationResult:
    simulation_id: int
    success: bool
    final_value: float
    path: list[SimulationPathPoint]
    failure_year: int | None = None


@dataclass
class PercentilesData:
    year: int
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float


@dataclass
class DistributionBin:
    range_start: float
    range_end: float
    label: str
    count: int
    percentage: float


@dataclass
class FailureAnalysis:
    average_failure_year: float
    median_failure_year: int


@dataclass
class MonteCarloResults:
    success_rate: float
    success_count: int
    failure_count: int
    median_final_value: float | None
    percentiles: list[PercentilesData]
    distribution: list[DistributionBin]
    failure_analysis: FailureAnalysis | None = None
    simulations: list[SingleSimulationResult] = field(default_factory=list)


@dataclass
class ScenarioParams:
    """Market assumptions that distinguish one scenario from another."""

    assumptions: dict[AssetClass, MarketAssumption]
    inflation_rate: float

    def __post_init__(self) -> None:
        self.assumptions = {AssetClass(k): v for k, v in self.assumptions.items()}


@dataclass
class MonteCarloScenarios:
    bear: ScenarioParams
    base: ScenarioParams
    bull: ScenarioParams


@dataclass
class ScenarioComparison:
    bear: MonteCarloResults
    base: MonteCarloResults
    bull: MonteCarloResults


def get_default_market_parameters() -> ScenarioParams:
    """Long-run market defaults used when nothing better is known."""

    return ScenarioParams(
        assumptions={
            AssetClass.EQUITY: MarketAssumption(7.0, 18.0),
            AssetClass.BONDS: MarketAssumption(3.0, 6.0),
            AssetClass.REAL_ESTATE: MarketAssumption(5.0, 12.0),
            AssetClass.COMMODITIES: MarketAssumption(4.0, 15.0),
        },
        inflation_rate=2.5,
    )


def default_scenarios() -> MonteCarloScenarios:
    return MonteCarloScenarios(
        bear=ScenarioParams(
            assumptions={
                AssetClass.EQUITY: MarketAssumption(4.0, 22.0),
                AssetClass.BONDS: MarketAssumption(2.0, 7.0),
                AssetClass.REAL_ESTATE: MarketAssumption(3.0, 15.0),
                AssetClass.COMMODITIES: MarketAssumption(2.0, 18.0),
            },
            inflation_rate=3.5,
        ),
        base=get_default_market_parameters(),
        bull=ScenarioParams(
            assumptions={
                AssetClass.EQUITY: MarketAssumption(10.0, 16.0),
                AssetClass.BONDS: MarketAssumption(4.0, 5.0),
                AssetClass.REAL_ESTATE: MarketAssumption(7.0, 10.0),
                AssetClass.COMMODITIES: MarketAssumption(6.0, 13.0),
            },
            inflation_rate=2.0,
        ),
    )


def validate_params(params: MonteCarloParams, max_simulations: int | None = None) -> None:
    """Reject structurally invalid configuration before simulating."""

    if max_simulations is None:
        max_simulations = get_settings().montecarlo_max_simulations

    if not params.initial_portfolio > 0:
        raise InvalidSimulationParameters("initial_portfolio must be greater than zero")
    if isinstance(params.retirement_years, bool) or not isinstance(params.retirement_years, int):
        raise InvalidSimulationParameters("retirement_years must be an integer")
    if params.retirement_years <= 0:
        raise InvalidSimulationParameters("retirement_years must be greater than zero")
    if isinstance(params.number_of_simulations, bool) or not isinstance(params.number_of_simulations, int):
        raise InvalidSimulationParameters("number_of_simulations must be an integer")
    if params.number_of_simulations <= 0:
        raise InvalidSimulationParameters("number_of_simulations must be greater than zero")
    if params.number_of_simulations > max_simulations:
        raise InvalidSimulationParameters(
            f"number_of_simulations must not exceed {max_simulations}"
        )
    if params.annual_withdrawal < 0:
        raise InvalidSimulationParameters("annual_withdrawal must not be negative")

    for asset_class, pct in params.allocation.items():
        if pct < 0:
            raise InvalidSimulationParameters(f"allocation for {asset_class.value} must not be negative")
        if pct > 0 and asset_class not in params.assumptions:
            raise InvalidSimulationParameters(f"missing market assumption for {asset_class.value}")
    total = sum(params.allocation.values())
    if abs(total - 100.0) > ALLOCATION_TOLERANCE:
        raise InvalidSimulationParameters(
            f"asset allocation must sum to 100%, got {total:g}%"
        )


def _withdrawal_for_year(params: MonteCarloParams, year: int) -> float:
    if params.withdrawal_adjustment is WithdrawalAdjustment.INFLATION:
        return params.annual_withdrawal * (1 + params.inflation_rate / 100) ** year
    return params.annual_withdrawal


def _simulate_paths(
    params: MonteCarloParams,
    count: int,
    rng: np.random.Generator,
) -> tuple[np.ndarray, np.ndarray]:
    """Advance ``count`` portfolios year by year as one array.

    Returns the ``(count, years + 1)`` value matrix, zero from a path's failure
    year onwards, and each path's failure year (0 for surviving paths).
    """

    held = [(params.assumptions[c], pct / 100) for c, pct in params.allocation.items() if pct > 0]
    means = np.array([assumption.expected_return for assumption, _ in held])
    vols = np.array([assumption.volatility for assumption, _ in held])
    weights = np.array([weight for _, weight in held])

    values = np.zeros((count, params.retirement_years + 1))
    failure_years = np.zeros(count, dtype=int)
    portfolio = np.full(count, float(params.initial_portfolio))
    alive = np.ones(count, dtype=bool)
    values[:, 0] = portfolio

    for year in range(1, params.retirement_years + 1):
        # Each row is one path's own draws for the year
        draws = random_normal(means, vols, rng, size=(count, len(held)))
        portfolio = portfolio * (1 + draws @ weights / 100) - _withdrawal_for_year(params, year)
        failed_now = alive & (portfolio <= 0)
        failure_years[failed_now] = year
        alive &= ~failed_now
        portfolio = np.where(alive, portfolio, 0.0)
        values[:, year] = portfolio

    return values, failure_years


def _to_results(
    values: np.ndarray,
    failure_years: np.ndarray,
    first_id: int = 0,
) -> list[SingleSimulationResult]:
    results: list[SingleSimulationResult] = []
    for offset, (row, failure_year) in enumerate(zip(values.tolist(), failure_years.tolist())):
        survived = failure_year == 0
        kept = row if survived else row[:failure_year]
        results.append(
            SingleSimulationResult(
                simulation_id=first_id + offset,
                success=survived,
                final_value=row[-1] if survived else 0.0,
                path=[SimulationPathPoint(year=year, value=value) for year, value in enumerate(kept)],
                failure_year=None if survived else failure_year,
            )
        )
    return results


def run_single_simulation(
    params: MonteCarloParams,
    simulation_id: int,
    rng: np.random.Generator,
) -> SingleSimulationResult:
    """Simulate one retirement path; the path stops before the failure year."""

    values, failure_years = _simulate_paths(params, 1, rng)
    return _to_results(values, failure_years, simulation_id)[0]


def _path_matrix(simulations: Sequence[SingleSimulationResult], years: int) -> np.ndarray:
    values = np.zeros((len(simulations), years + 1))
    for row, sim in enumerate(simulations):
        kept = [point.value for point in sim.path[: years + 1]]
        values[row, : len(kept)] = kept
    return values


def _percentiles_from_matrix(values: np.ndarray) -> list[PercentilesData]:
    count = values.shape[0]
    if count == 0:
        return []
    ordered = np.sort(values, axis=0)
    rows = {
        name: ordered[min(int(np.floor(count * level)), count - 1)].tolist()
        for name, level in PERCENTILE_LEVELS.items()
    }
    return [
        PercentilesData(year=year, **{name: row[year] for name, row in rows.items()})
        for year in range(values.shape[1])
    ]


def calculate_percentiles(
    simulations: Sequence[SingleSimulationResult],
    years: int,
) -> list[PercentilesData]:
    """Nearest-rank percentile bands per year; failed paths count as 0 afterwards."""

    if not simulations:
        return []
    return _percentiles_from_matrix(_path_matrix(simulations, years))


def _bin_label(start: float, end: float) -> str:
    if start == 0 and end == 0:
        return "0"
    return f"{round(start / 1000)}k-{round(end / 1000)}k"


def create_distribution(
    simulations: Sequence[SingleSimulationResult],
    bins: int | None = None,
) -> list[DistributionBin]:
    """Equal-width histogram of final values; the last bin includes the maximum."""

    if bins is None:
        bins = get_settings().montecarlo_distribution_bins
    if bins <= 0:
        raise ValueError("bins must be greater than zero")
    if not simulations:
        return []

    final_values = [sim.final_value for sim in simulations]
    low, high = min(final_values), max(final_values)
    width = (high - low) / bins
    counts = [0] * bins
    for value in final_values:
        index = bins - 1 if width == 0 else min(int((value - low) / width), bins - 1)
        counts[index] += 1

    total = len(final_values)
    distribution: list[DistributionBin] = []
    for index, count in enumerate(counts):
        start = low + index * width
        end = high if index == bins - 1 else low + (index + 1) * width
        distribution.append(
            DistributionBin(
                range_start=start,
                range_end=end,
                label=_bin_label(start, end),
                count=count,
                percentage=count / total * 100,
            )
        )
    return distribution


def _failure_analysis(failed: Sequence[SingleSimulationResult]) -> FailureAnalysis | None:
    if not failed:
        return None
    years = sorted(sim.failure_year or 0 for sim in failed)
    return FailureAnalysis(
        average_failure_year=mean(years),
        median_failure_year=int(lower_median(years)),
    )


def _summarise(
    simulations: Sequence[SingleSimulationResult],
    percentiles: list[PercentilesData],
    bins: int | None,
) -> MonteCarloResults:
    successful = [sim for sim in simulations if sim.success]
    failed = [sim for sim in simulations if not sim.success]
    total = len(simulations)
    # Failures all end at 0; including them would drag the median toward ruin
    successful_finals = sorted(sim.final_value for sim in successful)

    return MonteCarloResults(
        success_rate=len(successful) / total * 100 if total else 0.0,
        success_count=len(successful),
        failure_count=len(failed),
        median_final_value=lower_median(successful_finals) if successful_finals else None,
        percentiles=percentiles,
        distribution=create_distribution(simulations, bins),
        failure_analysis=_failure_analysis(failed),
        simulations=list(simulations),
    )


def aggregate_simulations(
    simulations: Sequence[SingleSimulationResult],
    years: int,
    bins: int | None = None,
) -> MonteCarloResults:
    """Summarise a batch of completed paths."""

    return _summarise(simulations, calculate_percentiles(simulations, years), bins)


def run_monte_carlo_simulation(
    params: MonteCarloParams,
    *,
    max_simulations: int | None = None,
) -> MonteCarloResults:
    """Validate ``params``, run every path and aggregate the outcome."""

    validate_params(params, max_simulations)
    rng = np.random.default_rng(params.seed)

    with get_tracer().start_as_current_span("montecarlo.run") as span:
        span.set_attribute("montecarlo.simulations", params.number_of_simulations)
        span.set_attribute("montecarlo.years", params.retirement_years)
        values, failure_years = _simulate_paths(params, params.number_of_simulations, rng)
        simulations = _to_results(values, failure_years)
        results = _summarise(simulations, _percentiles_from_matrix(values), None)
        span.set_attribute("montecarlo.success_rate", results.success_rate)

    _paths_counter.add(len(simulations))
    logger.info(
        "Monte Carlo run finished: %d paths over %d years, success rate %.1f%%",
        len(simulations),
        params.retirement_years,
        results.success_rate,
    )
    return results


def apply_scenario(params: MonteCarloParams, scenario: ScenarioParams) -> MonteCarloParams:
    """Return a copy of ``params`` using the scenario's market assumptions."""

    assumptions = dict(params.assumptions)
    assumptions.update(scenario.assumptions)
    return replace(params, assumptions=assumptions, inflation_rate=scenario.inflation_rate)


def run_scenario_comparison(
    params: MonteCarloParams,
    scenarios: MonteCarloScenarios | None = None,
    *,
    max_simulations: int | None = None,
) -> ScenarioComparison:
    """Run bear, base and bull as three independent Monte Carlo runs.

    A seeded request derives one independent child seed per scenario, so the
    scenarios never share a random stream.
    """

    scenarios = scenarios or default_scenarios()
    # Validate once up front so no scenario runs when the shared config is bad
    for scenario in (scenarios.bear, scenarios.base, scenarios.bull):
        validate_params(apply_scenario(params, scenario), max_simulations)

    child_seeds: Sequence[int | None] = [None, None, None]
    if params.seed is not None:
        child_seeds = [
            int(child.generate_state(1)[0])
            for child in np.random.SeedSequence(params.seed).spawn(3)
        ]

    bear, base, bull = (
        run_monte_carlo_simulation(
            replace(apply_scenario(params, scenario), seed=seed),
            max_simulations=max_simulations,
        )
        for scenario, seed in zip((scenarios.bear, scenarios.base, scenarios.bull), child_seeds)
    )
    return ScenarioComparison(bear=bear, base=base, bull=bull)


__all__ = [
    "AssetClass",
    "DistributionBin",
    "FailureAnalysis",
    "InvalidSimulationParameters",
    "MarketAssumption",
    "MonteCarloParams",
    "MonteCarloResults",
    "MonteCarloScenarios",
    "PercentilesData",
    "ScenarioComparison",
    "ScenarioParams",
    "SimulationPathPoint",
    "SingleSimulationResult",
    "WithdrawalAdjustment",
    "aggregate_simulations",
    "apply_scenario",
    "calculate_percentiles",
    "create_distribution",
    "default_scenarios",
    "get_default_market_parameters",
    "run_monte_carlo_simulation",
    "run_scenario_comparison",
    "run_single_simulation",
    "validate_params",
]
