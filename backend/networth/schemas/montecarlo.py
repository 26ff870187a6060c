"""Schemas for the Monte Carlo retirement simulator."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from networth.services.montecarlo import AssetClass, WithdrawalAdjustment

from .snapshots import MonthlySnapshotSchema


class MarketAssumptionSchema(BaseModel):
    expected_return: float = Field(..., description="Annual mean return (%)")
    volatility: float = Field(..., ge=0.0, description="Annual standard deviation (%)")


class MonteCarloRequest(BaseModel):
    initial_portfolio: float
    retirement_years: int
    annual_withdrawal: float
    allocation: dict[AssetClass, float] = Field(..., description="Percent per asset class, summing to 100")
    assumptions: dict[AssetClass, MarketAssumptionSchema] | None = Field(
        default=None, description="Falls back to long-run market defaults when omitted"
    )
    withdrawal_adjustment: WithdrawalAdjustment = WithdrawalAdjustment.INFLATION
    inflation_rate: float | None = None
    number_of_simulations: int | None = None
    seed: int | None = Field(default=None, ge=0)
    include_simulations: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "initial_portfolio": 500000,
                "retirement_years": 30,
                "annual_withdrawal": 20000,
                "allocation": {"equity": 60, "bonds": 40},
                "withdrawal_adjustment": "inflation",
                "inflation_rate": 2.5,
                "number_of_simulations": 1000,
            }
        }


class PercentilesSchema(BaseModel):
    year: int
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float


class DistributionBinSchema(BaseModel):
    range_start: float
    range_end: float
    label: str
    count: int
    percentage: float


class FailureAnalysisSchema(BaseModel):
    average_failure_year: float
    median_failure_year: int


class SimulationPathPointSchema(BaseModel):
    year: int
    value: float


class SingleSimulationSchema(BaseModel):
    simulation_id: int
    success: bool
    final_value: float
    path: list[SimulationPathPointSchema]
    failure_year: int | None = None


class MonteCarloResponse(BaseModel):
    success_rate: float
    success_count: int
    failure_count: int
    median_final_value: float | None
    percentiles: list[PercentilesSchema]
    distribution: list[DistributionBinSchema]
    failure_analysis: FailureAnalysisSchema | None = None
    simulations: list[SingleSimulationSchema] | None = None


class ScenarioParamsSchema(BaseModel):
    assumptions: dict[AssetClass, MarketAssumptionSchema]
    inflation_rate: float


class ScenarioSetSchema(BaseModel):
    bear: ScenarioParamsSchema
    base: ScenarioParamsSchema
    bull: ScenarioParamsSchema


class ScenarioRequest(MonteCarloRequest):
    scenarios: ScenarioSetSchema | None = None


class ScenarioComparisonResponse(BaseModel):
    bear: MonteCarloResponse
    base: MonteCarloResponse
    bull: MonteCarloResponse


class CalibrationRequest(BaseModel):
    snapshots: list[MonthlySnapshotSchema]
    user_id: str | None = Field(default=None, description="Cache results per user when provided")
    start: date | None = None
    end: date | None = None


class AssetClassHistorySchema(BaseModel):
    mean: float
    volatility: float
    monthly_returns: list[float]
    from_history: bool


class HistoricalReturnsSchema(BaseModel):
    equity: AssetClassHistorySchema
    bonds: AssetClassHistorySchema
    available_months: int
    start_date: str = Field(..., examples=["2023-01"])
    end_date: str


__all__ = [
    "AssetClassHistorySchema",
    "CalibrationRequest",
    "DistributionBinSchema",
    "FailureAnalysisSchema",
    "HistoricalReturnsSchema",
    "MarketAssumptionSchema",
    "MonteCarloRequest",
    "MonteCarloResponse",
    "PercentilesSchema",
    "ScenarioComparisonResponse",
    "ScenarioParamsSchema",
    "ScenarioRequest",
    "ScenarioSetSchema",
    "SimulationPathPointSchema",
    "SingleSimulationSchema",
]
