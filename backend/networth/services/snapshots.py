"""Monthly snapshot and cash-flow inputs plus period windowing."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Literal, Sequence

from networth.core.dates import (
    date_month_key,
    first_of_month,
    month_key,
    shift_months,
    to_date,
)


class TimePeriod(str, Enum):
    YTD = "YTD"
    ONE_YEAR = "1Y"
    THREE_YEAR = "3Y"
    FIVE_YEAR = "5Y"
    ALL = "ALL"
    CUSTOM = "CUSTOM"


# Trailing windows include the current month, so 12 months reach back 11.
_TRAILING_MONTHS = {
    TimePeriod.ONE_YEAR: 12,
    TimePeriod.THREE_YEAR: 36,
    TimePeriod.FIVE_YEAR: 60,
}


@dataclass
class AssetValue:
    """Per-instrument valuation captured inside a snapshot."""

    asset_id: str
    ticker: str
    quantity: float
    price: float
    name: str = ""
    total_value: float | None = None

    def __post_init__(self) -> None:
        if self.total_value is None:
            self.total_value = self.quantity * self.price


@dataclass
class MonthlySnapshot:
    """Point-in-time valuation of a user's portfolio for one calendar month."""

    year: int
    month: int
    total_net_worth: float
    by_asset_class: dict[str, float] = field(default_factory=dict)
    by_asset: list[AssetValue] = field(default_factory=list)
    is_dummy: bool = False
    liquid_net_worth: float | None = None
    illiquid_net_worth: float | None = None
    created_at: datetime | None = None
    note: str | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be within 1..12, got {self.month}")

    @property
    def key(self) -> str:
        return month_key(self.year, self.month)

    @property
    def period_start(self) -> date:
        return date(self.year, self.month, 1)


@dataclass
class CashFlowData:
    """Net contribution or withdrawal recorded for one month.

    ``net_cash_flow`` excludes dividends unless the caller built the record with
    ``include_dividends=True``; dividends are portfolio return, not new money.
    """

    date: date
    income: float = 0.0
    expenses: float = 0.0
    dividend_income: float = 0.0
    net_cash_flow: float = 0.0

    @classmethod
    def from_components(
        cls,
        when: Any,
        income: float,
        expenses: float,
        dividend_income: float = 0.0,
        *,
        include_dividends: bool = False,
    ) -> "CashFlowData":
        day = to_date(when)
        if day is None:
            raise ValueError("Cash flow date is required")
        net = income - expenses
        if include_dividends:
            net += dividend_income
        return cls(
            date=first_of_month(day),
            income=income,
            expenses=expenses,
            dividend_income=dividend_income,
            net_cash_flow=net,
        )

    @property
    def key(self) -> str:
        return date_month_key(self.date)


@dataclass
class LedgerEntry:
    """Single cashflow ledger row as provided by the expense tracker."""

    date: Any
    amount: float
    type: Literal["income", "expense"]
    category_id: str | None = None


def sort_snapshots(snapshots: Iterable[MonthlySnapshot]) -> list[MonthlySnapshot]:
    return sorted(snapshots, key=lambda s: (s.year, s.month))


def deduplicate_snapshots(snapshots: Iterable[MonthlySnapshot]) -> list[MonthlySnapshot]:
    """Drop dummy snapshots and keep one snapshot per (year, month).

    When the storage layer hands over a corrected duplicate, the later record
    in input order wins.
    """

    by_month: dict[tuple[int, int], MonthlySnapshot] = {}
    for snapshot in snapshots:
        if snapshot.is_dummy:
            continue
        by_month[(snapshot.year, snapshot.month)] = snapshot
    return sort_snapshots(by_month.values())


def get_snapshots_for_period(
    snapshots: Sequence[MonthlySnapshot],
    period: TimePeriod | str,
    custom_start: Any = None,
    custom_end: Any = None,
    *,
    today: date | None = None,
) -> list[MonthlySnapshot]:
    """Return the chronological, non-dummy snapshots falling inside ``period``.

    Duplicate months collapse to one snapshot as in :func:`deduplicate_snapshots`.
    Unknown selectors and custom windows without both dates yield an empty list.
    """

    try:
        selector = TimePeriod(period)
    except ValueError:
        return []

    unique = deduplicate_snapshots(snapshots)
    now = today or date.today()
    end = now
    if selector is TimePeriod.ALL:
        return unique
    if selector is TimePeriod.YTD:
        start = date(now.year, 1, 1)
    elif selector in _TRAILING_MONTHS:
        start = shift_months(now, -(_TRAILING_MONTHS[selector] - 1))
    else:
        start_day = to_date(custom_start)
        end_day = to_date(custom_end)
        if start_day is None or end_day is None:
            return []
        start = first_of_month(start_day)
        end = end_day

    return [s for s in unique if start <= s.period_start <= end]


def cash_flows_from_ledger(
    entries: Iterable[LedgerEntry],
    start: Any = None,
    end: Any = None,
    dividend_category_id: str | None = None,
) -> list[CashFlowData]:
    """Group ledger rows into monthly :class:`CashFlowData` records.

    Income booked under ``dividend_category_id`` is tracked as dividend income
    and kept out of ``net_cash_flow``. Expenses are counted by magnitude.
    """

    start_day = to_date(start)
    end_day = to_date(end)
    monthly: dict[date, list[float]] = {}
    for entry in entries:
        day = to_date(entry.date)
        if day is None:
            continue
        if start_day and day < start_day:
            continue
        if end_day and day > end_day:
            continue
        bucket = monthly.setdefault(first_of_month(day), [0.0, 0.0, 0.0])
        if entry.type == "income":
            if dividend_category_id and entry.category_id == dividend_category_id:
                bucket[2] += entry.amount
            else:
                bucket[0] += entry.amount
        else:
            bucket[1] += abs(entry.amount)

    return [
        CashFlowData.from_components(month, income, expenses, dividends)
        for month, (income, expenses, dividends) in sorted(monthly.items())
    ]


def cash_flow_map(cash_flows: Iterable[CashFlowData]) -> dict[str, float]:
    """Map ``YYYY-MM`` to the month's net cash flow."""

    return {cf.key: cf.net_cash_flow for cf in cash_flows}


def cash_flows_between(cash_flows: Iterable[CashFlowData], start: date, end: date) -> list[CashFlowData]:
    return sorted((cf for cf in cash_flows if start <= cf.date <= end), key=lambda cf: cf.date)


__all__ = [
    "AssetValue",
    "CashFlowData",
    "LedgerEntry",
    "MonthlySnapshot",
    "TimePeriod",
    "cash_flow_map",
    "cash_flows_between",
    "cash_flows_from_ledger",
    "deduplicate_snapshots",
    "get_snapshots_for_period",
    "sort_snapshots",
]
