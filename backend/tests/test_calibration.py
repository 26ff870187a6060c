"""Historical calibration and calibration cache tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from networth.services.calibration import (
    CalibrationCache,
    annualize_returns,
    calculate_asset_class_returns,
    calculate_historical_returns,
)
from networth.services.montecarlo import AssetClass
from networth.services.snapshots import MonthlySnapshot


def _history(months: int, equity_growth: float = 0.01, bonds_growth: float | None = 0.005) -> list[MonthlySnapshot]:
    snapshots = []
    equity, bonds = 60_000.0, 40_000.0
    for index in range(months):
        year, month = divmod(2022 * 12 + index, 12)
        by_class = {"equity": equity}
        if bonds_growth is not None:
            by_class["bonds"] = bonds
        snapshots.append(
            MonthlySnapshot(
                year=year,
                month=month + 1,
                total_net_worth=sum(by_class.values()),
                by_asset_class=by_class,
            )
        )
        equity *= 1 + equity_growth
        bonds *= 1 + (bonds_growth or 0)
    return snapshots


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0)

    def __call__(self) -> datetime:
        return self.now


def test_asset_class_returns_skip_missing_and_outlier_months():
    snapshots = _history(4)
    snapshots[3].by_asset_class["equity"] = snapshots[2].by_asset_class["equity"] * 1.6
    snapshots[3].by_asset_class["bonds"] = 0
    equity = calculate_asset_class_returns(snapshots, "equity")
    bonds = calculate_asset_class_returns(snapshots, "bonds")
    assert equity == pytest.approx([1.0, 1.0])
    assert bonds == pytest.approx([0.5, 0.5])


def test_calibration_requires_two_years_of_history():
    assert calculate_historical_returns(_history(23)) is None


def test_calibration_annualises_monthly_moves():
    data = calculate_historical_returns(_history(30))
    assert data is not None
    assert data.available_months == 30
    assert data.start_date == "2022-01"
    assert data.end_date == "2024-06"
    assert data.equity.from_history and data.bonds.from_history
    assert data.equity.mean == pytest.approx((1.01**12 - 1) * 100)
    assert data.bonds.mean == pytest.approx((1.005**12 - 1) * 100)
    assert data.equity.volatility == pytest.approx(0.0, abs=1e-6)
    assumptions = data.as_assumptions()
    assert assumptions[AssetClass.EQUITY].expected_return == data.equity.mean


def test_missing_class_falls_back_to_market_defaults():
    data = calculate_historical_returns(_history(30, bonds_growth=None))
    assert data is not None
    assert data.equity.from_history is True
    assert data.bonds.from_history is False
    assert (data.bonds.mean, data.bonds.volatility) == (3.0, 6.0)


def test_no_usable_class_returns_none():
    snapshots = [MonthlySnapshot(year=2022 + i // 12, month=i % 12 + 1, total_net_worth=1_000) for i in range(30)]
    assert calculate_historical_returns(snapshots) is None


def test_annualize_returns_handles_empty_input():
    assert annualize_returns([]) == 0.0
    assert annualize_returns([1.0, 1.0]) == pytest.approx((1.01**12 - 1) * 100)


def test_cache_reuses_results_until_invalidated():
    cache = CalibrationCache(ttl=timedelta(minutes=30), clock=FakeClock())
    first = cache.get_or_compute("user-1", _history(30))
    assert first is not None
    # Cached value is returned even though the new history is too short
    assert cache.get_or_compute("user-1", _history(5)) is first
    assert cache.get_or_compute("user-2", _history(5)) is None
    assert len(cache) == 2

    assert cache.invalidate("user-1") == 1
    assert cache.get_or_compute("user-1", _history(5)) is None


def test_cache_keys_include_window():
    cache = CalibrationCache(clock=FakeClock())
    full = cache.get_or_compute("user-1", _history(36))
    windowed = cache.get_or_compute("user-1", _history(36), start=date(2022, 1, 1), end=date(2023, 6, 1))
    assert full.available_months == 36
    assert windowed is None
    assert cache.invalidate("user-1") == 2


def test_cache_entries_expire():
    clock = FakeClock()
    cache = CalibrationCache(ttl=timedelta(minutes=10), clock=clock)
    cache.set("user-1", None)
    assert cache.get("user-1") is not None
    clock.now += timedelta(minutes=11)
    assert cache.get("user-1") is None
    assert len(cache) == 0
