"""Translate request schemas into engine inputs."""

from __future__ import annotations

from typing import Iterable

from networth.schemas import CashFlowSchema, DividendSchema, HoldingSchema, MonthlySnapshotSchema
from networth.services.dividends import DividendPayment, Holding
from networth.services.snapshots import CashFlowData, MonthlySnapshot


def to_snapshots(payload: Iterable[MonthlySnapshotSchema]) -> list[MonthlySnapshot]:
    return [
        MonthlySnapshot(
            year=item.year,
            month=item.month,
            total_net_worth=item.total_net_worth,
            by_asset_class=dict(item.by_asset_class),
            is_dummy=item.is_dummy,
            liquid_net_worth=item.liquid_net_worth,
            illiquid_net_worth=item.illiquid_net_worth,
            note=item.note,
        )
        for item in payload
    ]


def to_cash_flows(payload: Iterable[CashFlowSchema]) -> list[CashFlowData]:
    flows: list[CashFlowData] = []
    for item in payload:
        flow = CashFlowData.from_components(item.date, item.income, item.expenses, item.dividend_income)
        if item.net_cash_flow is not None:
            flow.net_cash_flow = item.net_cash_flow
        flows.append(flow)
    return flows


def to_holdings(payload: Iterable[HoldingSchema] | None) -> list[Holding] | None:
    if payload is None:
        return None
    return [Holding(**item.model_dump()) for item in payload]


def to_dividends(payload: Iterable[DividendSchema] | None) -> list[DividendPayment] | None:
    if payload is None:
        return None
    return [DividendPayment(**item.model_dump()) for item in payload]


__all__ = ["to_cash_flows", "to_dividends", "to_holdings", "to_snapshots"]
