"""Snapshot windowing and cash-flow aggregation tests."""

from __future__ import annotations

from datetime import date

import pytest

from networth.services.snapshots import (
    CashFlowData,
    LedgerEntry,
    MonthlySnapshot,
    TimePeriod,
    cash_flow_map,
    cash_flows_from_ledger,
    deduplicate_snapshots,
    get_snapshots_for_period,
)

from conftest import build_series

TODAY = date(2025, 6, 15)


def _history() -> list[MonthlySnapshot]:
    snapshots = build_series(2023, 1, [100_000 + 1_000 * i for i in range(30)])
    snapshots.append(MonthlySnapshot(year=2024, month=2, total_net_worth=1.0, is_dummy=True))
    return snapshots


def test_ytd_only_returns_current_year():
    window = get_snapshots_for_period(_history(), TimePeriod.YTD, today=TODAY)
    assert [s.month for s in window] == [1, 2, 3, 4, 5, 6]
    assert {s.year for s in window} == {2025}


def test_trailing_year_includes_current_month():
    window = get_snapshots_for_period(_history(), "1Y", today=TODAY)
    assert len(window) == 12
    assert (window[0].year, window[0].month) == (2024, 7)
    assert (window[-1].year, window[-1].month) == (2025, 6)


def test_all_excludes_dummy_snapshots_and_is_sorted():
    history = list(reversed(_history()))
    window = get_snapshots_for_period(history, TimePeriod.ALL, today=TODAY)
    assert len(window) == 30
    assert not any(s.is_dummy for s in window)
    assert [s.key for s in window] == sorted(s.key for s in window)


def test_custom_window_and_unknown_selector():
    window = get_snapshots_for_period(
        _history(), TimePeriod.CUSTOM, "2024-03-10", date(2024, 5, 31), today=TODAY
    )
    assert [s.month for s in window] == [3, 4, 5]
    assert get_snapshots_for_period(_history(), TimePeriod.CUSTOM, None, "2024-05-31") == []
    assert get_snapshots_for_period(_history(), "10Y", today=TODAY) == []


def test_deduplicate_keeps_latest_record_per_month():
    original = MonthlySnapshot(year=2025, month=1, total_net_worth=100.0)
    corrected = MonthlySnapshot(year=2025, month=1, total_net_worth=110.0)
    dummy = MonthlySnapshot(year=2025, month=2, total_net_worth=5.0, is_dummy=True)
    result = deduplicate_snapshots([original, dummy, corrected])
    assert result == [corrected]


def test_snapshot_rejects_invalid_month():
    with pytest.raises(ValueError):
        MonthlySnapshot(year=2025, month=13, total_net_worth=1.0)


def test_cash_flow_excludes_dividends_by_default():
    flow = CashFlowData.from_components("2025-03-17", 3_000, 1_800, 120)
    assert flow.date == date(2025, 3, 1)
    assert flow.net_cash_flow == 1_200
    with_dividends = CashFlowData.from_components("2025-03-17", 3_000, 1_800, 120, include_dividends=True)
    assert with_dividends.net_cash_flow == 1_320


def test_cash_flows_from_ledger_groups_by_month():
    entries = [
        LedgerEntry(date="2025-01-05", amount=2_500, type="income"),
        LedgerEntry(date="2025-01-20", amount=-900, type="expense"),
        LedgerEntry(date="2025-01-28", amount=40, type="income", category_id="dividends"),
        LedgerEntry(date="2025-02-03", amount=2_500, type="income"),
        LedgerEntry(date="2024-12-30", amount=10_000, type="income"),
    ]
    flows = cash_flows_from_ledger(entries, start="2025-01-01", dividend_category_id="dividends")
    assert [f.date for f in flows] == [date(2025, 1, 1), date(2025, 2, 1)]
    january = flows[0]
    assert january.income == 2_500
    assert january.expenses == 900
    assert january.dividend_income == 40
    assert january.net_cash_flow == 1_600
    assert cash_flow_map(flows) == {"2025-01": 1_600, "2025-02": 2_500}


def test_period_window_collapses_duplicate_months():
    history = build_series(2025, 1, [100.0, 200.0, 300.0])
    history.append(MonthlySnapshot(year=2025, month=2, total_net_worth=250.0))
    window = get_snapshots_for_period(history, TimePeriod.YTD, today=TODAY)
    assert [(s.month, s.total_net_worth) for s in window] == [(1, 100.0), (2, 250.0), (3, 300.0)]
