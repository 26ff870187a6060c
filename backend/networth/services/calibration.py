"""Calibrate Monte Carlo market assumptions from the user's own history."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Sequence

from networth.config import get_settings
from networth.core.stats import mean, population_std
from networth.services.montecarlo import AssetClass, MarketAssumption, get_default_market_parameters
from networth.services.snapshots import MonthlySnapshot, deduplicate_snapshots

logger = logging.getLogger(__name__)

CALIBRATED_CLASSES = (AssetClass.EQUITY, AssetClass.BONDS)


@dataclass
class AssetClassHistory:
    mean: float
    volatility: float
    monthly_returns: list[float]
    from_history: bool


@dataclass
class HistoricalReturnsData:
    equity: AssetClassHistory
    bonds: AssetClassHistory
    available_months: int
    start_date: str
    end_date: str

    def as_assumptions(self) -> dict[AssetClass, MarketAssumption]:
        return {
            AssetClass.EQUITY: MarketAssumption(self.equity.mean, self.equity.volatility),
            AssetClass.BONDS: MarketAssumption(self.bonds.mean, self.bonds.volatility),
        }


def calculate_asset_class_returns(
    snapshots: Sequence[MonthlySnapshot],
    asset_class: str,
    outlier_threshold: float | None = None,
) -> list[float]:
    """Month-over-month change (%) of one asset class's value.

    Months where the class is absent on either side are skipped; moves at or
    beyond ``outlier_threshold`` percent are treated as deposits/withdrawals.
    """

    if outlier_threshold is None:
        outlier_threshold = get_settings().outlier_return_threshold_pct
    returns: list[float] = []
    for previous, current in zip(snapshots, snapshots[1:]):
        prev_value = previous.by_asset_class.get(asset_class, 0.0)
        curr_value = current.by_asset_class.get(asset_class, 0.0)
        if prev_value == 0 or curr_value == 0:
            continue
        change = (curr_value - prev_value) / prev_value * 100
        if abs(change) < outlier_threshold:
            returns.append(change)
    return returns


def annualize_returns(monthly_returns: Sequence[float]) -> float:
    if not monthly_returns:
        return 0.0
    return ((1 + mean(monthly_returns) / 100) ** 12 - 1) * 100


def annualize_volatility(monthly_returns: Sequence[float]) -> float:
    return population_std(monthly_returns) * math.sqrt(12)


def calculate_historical_returns(snapshots: Sequence[MonthlySnapshot]) -> HistoricalReturnsData | None:
    """Annualised equity/bond mean and volatility from monthly snapshots.

    Needs the configured minimum history (24 months by default). A class with
    too few usable months falls back to the market default so the simulator
    always receives usable parameters; ``None`` only when neither class has
    enough data.
    """

    settings = get_settings()
    ordered = deduplicate_snapshots(snapshots)
    if len(ordered) < settings.calibration_min_snapshots:
        logger.debug("Calibration skipped: %d snapshots available", len(ordered))
        return None

    defaults = get_default_market_parameters().assumptions
    histories: dict[AssetClass, AssetClassHistory] = {}
    for asset_class in CALIBRATED_CLASSES:
        monthly = calculate_asset_class_returns(ordered, asset_class.value)
        if len(monthly) >= settings.calibration_min_points:
            histories[asset_class] = AssetClassHistory(
                mean=annualize_returns(monthly),
                volatility=annualize_volatility(monthly),
                monthly_returns=monthly,
                from_history=True,
            )
        else:
            fallback = defaults[asset_class]
            histories[asset_class] = AssetClassHistory(
                mean=fallback.expected_return,
                volatility=fallback.volatility,
                monthly_returns=monthly,
                from_history=False,
            )

    if not any(history.from_history for history in histories.values()):
        return None

    first, last = ordered[0], ordered[-1]
    return HistoricalReturnsData(
        equity=histories[AssetClass.EQUITY],
        bonds=histories[AssetClass.BONDS],
        available_months=len(ordered),
        start_date=f"{first.year}-{first.month:02d}",
        end_date=f"{last.year}-{last.month:02d}",
    )


def snapshots_in_window(
    snapshots: Sequence[MonthlySnapshot],
    start: date | None = None,
    end: date | None = None,
) -> list[MonthlySnapshot]:
    return [
        s
        for s in snapshots
        if (start is None or s.period_start >= start) and (end is None or s.period_start <= end)
    ]


CacheKey = tuple[str, date | None, date | None]


@dataclass
class CachedCalibration:
    key: CacheKey
    as_of: datetime
    data: HistoricalReturnsData | None


@dataclass
class CalibrationCache:
    """Per-user calibration results owned by the caller.

    Entries are keyed by user and window and expire after ``ttl``. Call
    :meth:`invalidate` whenever a new snapshot is ingested for a user.
    """

    ttl: timedelta = field(
        default_factory=lambda: timedelta(minutes=get_settings().calibration_cache_ttl_minutes)
    )
    clock: Callable[[], datetime] = datetime.utcnow
    _store: Dict[CacheKey, CachedCalibration] = field(default_factory=dict, init=False, repr=False)

    def get(self, user_id: str, start: date | None = None, end: date | None = None) -> CachedCalibration | None:
        key = (user_id, start, end)
        cached = self._store.get(key)
        if not cached:
            return None
        if self.clock() - cached.as_of > self.ttl:
            self._store.pop(key, None)
            return None
        return cached

    def set(
        self,
        user_id: str,
        data: HistoricalReturnsData | None,
        start: date | None = None,
        end: date | None = None,
    ) -> None:
        key = (user_id, start, end)
        self._store[key] = CachedCalibration(key=key, as_of=self.clock(), data=data)

    def get_or_compute(
        self,
        user_id: str,
        snapshots: Sequence[MonthlySnapshot],
        start: date | None = None,
        end: date | None = None,
    ) -> HistoricalReturnsData | None:
        cached = self.get(user_id, start, end)
        if cached is not None:
            return cached.data
        data = calculate_historical_returns(snapshots_in_window(snapshots, start, end))
        self.set(user_id, data, start, end)
        return data

    def invalidate(self, user_id: str) -> int:
        """Drop every window cached for ``user_id``; returns how many were removed."""

        stale = [key for key in self._store if key[0] == user_id]
        for key in stale:
            del self._store[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._store)


__all__ = [
    "AssetClassHistory",
    "CachedCalibration",
    "CalibrationCache",
    "HistoricalReturnsData",
    "annualize_returns",
    "annualize_volatility",
    "calculate_asset_class_returns",
    "calculate_historical_returns",
    "snapshots_in_window",
]
