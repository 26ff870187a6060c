"""Trailing-twelve-month dividend yield tests."""

from __future__ import annotations

from datetime import date

import pytest

from networth.services.dividends import (
    DividendPayment,
    Holding,
    calculate_current_yield_metrics,
    calculate_yield_on_cost_metrics,
    trailing_twelve_month_window,
)

AS_OF = date(2025, 6, 30)


def _holdings() -> list[Holding]:
    return [
        Holding(asset_id="etf", ticker="VWCE", quantity=10, current_price=100, average_cost=50),
        Holding(asset_id="bond", ticker="BTP", quantity=5, current_price=200, average_cost=None),
        Holding(asset_id="sold", ticker="ENI", quantity=0, current_price=15, average_cost=12),
        Holding(asset_id="growth", ticker="NVDA", quantity=3, current_price=900, average_cost=400),
    ]


def _dividends() -> list[DividendPayment]:
    return [
        DividendPayment(asset_id="etf", payment_date="2025-03-20", gross_amount=40, tax_amount=10),
        DividendPayment(asset_id="etf", payment_date=date(2024, 6, 30), gross_amount=999),
        DividendPayment(asset_id="bond", payment_date=date(2025, 1, 15), gross_amount=30, net_amount=26),
        DividendPayment(asset_id="sold", payment_date=date(2025, 2, 1), gross_amount=8),
    ]


def test_ttm_window_bounds():
    assert trailing_twelve_month_window(AS_OF) == (date(2024, 7, 1), date(2025, 6, 30))
    assert trailing_twelve_month_window("2024-02-29") == (date(2023, 3, 1), date(2024, 2, 29))


def test_current_yield_counts_only_paying_holdings():
    metrics = calculate_current_yield_metrics(_dividends(), _holdings(), AS_OF)
    # etf (1000 market value) and bond (1000) paid within the window
    assert metrics.asset_count == 2
    assert metrics.base_value == pytest.approx(2_000)
    assert metrics.dividends_gross == pytest.approx(70)
    assert metrics.dividends_net == pytest.approx(56)
    assert metrics.yield_gross == pytest.approx(3.5)
    assert metrics.yield_net == pytest.approx(2.8)


def test_yield_on_cost_skips_holdings_without_cost_basis():
    metrics = calculate_yield_on_cost_metrics(_dividends(), _holdings(), AS_OF)
    assert metrics.asset_count == 1
    assert metrics.base_value == pytest.approx(500)
    assert metrics.yield_gross == pytest.approx(8.0)
    assert metrics.yield_net == pytest.approx(6.0)


def test_no_qualifying_holdings_yields_null_metrics():
    metrics = calculate_current_yield_metrics([], _holdings(), AS_OF)
    assert metrics.yield_gross is None
    assert metrics.yield_net is None
    assert metrics.asset_count == 0
