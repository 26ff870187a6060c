"""Dividend yield metrics over the trailing twelve months."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Iterable, Sequence

from networth.core.dates import to_date


@dataclass
class Holding:
    """Current position in a dividend-paying instrument."""

    asset_id: str
    ticker: str
    quantity: float
    current_price: float
    average_cost: float | None = None

    @property
    def market_value(self) -> float:
        return self.quantity * self.current_price

    @property
    def cost_basis(self) -> float | None:
        if self.average_cost is None:
            return None
        return self.quantity * self.average_cost


@dataclass
class DividendPayment:
    asset_id: str
    payment_date: Any
    gross_amount: float
    tax_amount: float = 0.0
    net_amount: float | None = None

    @property
    def net(self) -> float:
        if self.net_amount is not None:
            return self.net_amount
        return self.gross_amount - self.tax_amount


@dataclass
class YieldMetrics:
    yield_gross: float | None
    yield_net: float | None
    dividends_gross: float
    dividends_net: float
    base_value: float
    asset_count: int


def trailing_twelve_month_window(as_of: Any) -> tuple[date, date]:
    end = to_date(as_of)
    if end is None:
        raise ValueError("as_of date is required")
    try:
        start = end.replace(year=end.year - 1)
    except ValueError:
        # 29 February has no counterpart in the previous year
        start = end.replace(year=end.year - 1, day=28)
    return start + timedelta(days=1), end


def _ttm_dividends(dividends: Iterable[DividendPayment], as_of: Any) -> dict[str, list[DividendPayment]]:
    start, end = trailing_twelve_month_window(as_of)
    by_asset: dict[str, list[DividendPayment]] = {}
    for dividend in dividends:
        paid = to_date(dividend.payment_date)
        if paid is None or not start <= paid <= end:
            continue
        by_asset.setdefault(dividend.asset_id, []).append(dividend)
    return by_asset


def _yield_metrics(
    dividends: Iterable[DividendPayment],
    holdings: Sequence[Holding],
    as_of: Any,
    base: Callable[[Holding], float | None],
) -> YieldMetrics:
    ttm = _ttm_dividends(dividends, as_of)
    gross = net = base_total = 0.0
    count = 0
    for holding in holdings:
        payments = ttm.get(holding.asset_id)
        if holding.quantity <= 0 or not payments:
            continue
        value = base(holding)
        if value is None or value <= 0:
            continue
        gross += sum(p.gross_amount for p in payments)
        net += sum(p.net for p in payments)
        base_total += value
        count += 1

    if count == 0:
        return YieldMetrics(None, None, 0.0, 0.0, 0.0, 0)
    return YieldMetrics(
        yield_gross=gross / base_total * 100,
        yield_net=net / base_total * 100,
        dividends_gross=gross,
        dividends_net=net,
        base_value=base_total,
        asset_count=count,
    )


def calculate_current_yield_metrics(
    dividends: Iterable[DividendPayment],
    holdings: Sequence[Holding],
    as_of: Any,
) -> YieldMetrics:
    """TTM dividends over the current market value of the paying holdings."""

    return _yield_metrics(dividends, holdings, as_of, lambda h: h.market_value)


def calculate_yield_on_cost_metrics(
    dividends: Iterable[DividendPayment],
    holdings: Sequence[Holding],
    as_of: Any,
) -> YieldMetrics:
    """TTM dividends over the original cost basis of the paying holdings."""

    return _yield_metrics(dividends, holdings, as_of, lambda h: h.cost_basis)


__all__ = [
    "DividendPayment",
    "Holding",
    "YieldMetrics",
    "calculate_current_yield_metrics",
    "calculate_yield_on_cost_metrics",
    "trailing_twelve_month_window",
]
