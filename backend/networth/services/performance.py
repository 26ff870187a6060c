"""Portfolio performance analytics over monthly net-worth snapshots.

Every metric is independently nullable: a metric whose preconditions are not
met (too few snapshots, zero denominator, solver non-convergence) is ``None``
rather than a misleading number, and sibling metrics are still computed.
Monetary inputs are plain floats in the user's base currency; percentages are
expressed as percent (``10.0`` means 10 %).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Sequence

from networth.config import get_settings
from networth.core.dates import (
    format_month_short,
    last_day_of_month,
    months_between_inclusive,
    shift_months,
)
from networth.core.stats import sample_std
from networth.services.dividends import (
    DividendPayment,
    Holding,
    calculate_current_yield_metrics,
    calculate_yield_on_cost_metrics,
)
from networth.services.snapshots import (
    CashFlowData,
    LedgerEntry,
    MonthlySnapshot,
    TimePeriod,
    cash_flow_map,
    cash_flows_between,
    cash_flows_from_ledger,
    deduplicate_snapshots,
    get_snapshots_for_period,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_MESSAGE = "Insufficient data: need at least 2 snapshots"
STILL_UNDERWATER_LABEL = "Presente"
STANDARD_PERIODS = (
    TimePeriod.YTD,
    TimePeriod.ONE_YEAR,
    TimePeriod.THREE_YEAR,
    TimePeriod.FIVE_YEAR,
    TimePeriod.ALL,
)


@dataclass
class DrawdownResult:
    value: float | None = None
    trough_date: str | None = None


@dataclass
class DurationResult:
    """Length of a drawdown phase in months, inclusive of both ends.

    ``duration`` stays ``None`` while the portfolio is still underwater; the
    ``period`` label then ends with ``Presente``.
    """

    duration: int | None = None
    period: str | None = None
    recovered: bool = False


@dataclass
class PerformanceMetrics:
    time_period: TimePeriod | None
    start_date: date | None
    end_date: date | None
    start_net_worth: float
    end_net_worth: float
    risk_free_rate: float
    cash_flows: list[CashFlowData] = field(default_factory=list)

    roi: float | None = None
    cagr: float | None = None
    time_weighted_return: float | None = None
    money_weighted_return: float | None = None
    sharpe_ratio: float | None = None
    volatility: float | None = None
    max_drawdown: float | None = None
    drawdown_duration: int | None = None
    recovery_time: int | None = None

    max_drawdown_date: str | None = None
    drawdown_period: str | None = None
    recovery_period: str | None = None
    still_underwater: bool = False

    current_yield: float | None = None
    yield_on_cost: float | None = None

    total_contributions: float = 0.0
    total_withdrawals: float = 0.0
    net_cash_flow: float = 0.0
    total_income: float = 0.0
    total_expenses: float = 0.0
    total_dividend_income: float = 0.0
    number_of_months: int = 0

    has_insufficient_data: bool = False
    error_message: str | None = None


@dataclass
class RollingPeriodPerformance:
    period_start_date: date
    period_end_date: date
    cagr: float
    sharpe_ratio: float | None
    volatility: float | None


@dataclass
class PerformanceData:
    ytd: PerformanceMetrics
    one_year: PerformanceMetrics
    three_year: PerformanceMetrics
    five_year: PerformanceMetrics
    all_time: PerformanceMetrics
    rolling_12m: list[RollingPeriodPerformance]
    rolling_36m: list[RollingPeriodPerformance]
    snapshot_count: int
    last_updated: datetime
    custom: PerformanceMetrics | None = None


@dataclass
class PerformanceChartPoint:
    date: str
    net_worth: float
    contributions: float
    returns: float


@dataclass
class HeatmapMonth:
    month: int
    return_pct: float | None


@dataclass
class MonthlyReturnHeatmapRow:
    year: int
    months: list[HeatmapMonth]


@dataclass
class UnderwaterPoint:
    date: str
    drawdown: float
    year: int
    month: int


# Return metrics


def calculate_roi(start_value: float, end_value: float, net_cash_flow: float) -> float | None:
    """Simple ROI (%) with deposits and withdrawals removed from the gain."""

    if start_value == 0:
        return None
    gain = end_value - start_value - net_cash_flow
    return gain / start_value * 100


def calculate_cagr(
    start_value: float,
    end_value: float,
    net_cash_flow: float,
    number_of_months: int,
) -> float | None:
    """Compound annual growth rate (%) on a cash-flow adjusted starting base."""

    if number_of_months < 1:
        return None
    adjusted_start = start_value + net_cash_flow
    if adjusted_start <= 0:
        return None
    ratio = end_value / adjusted_start
    if ratio < 0:
        return None
    years = number_of_months / 12
    cagr = (ratio ** (1 / years) - 1) * 100
    return cagr if math.isfinite(cagr) else None


def _monthly_returns(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData],
) -> list[tuple[MonthlySnapshot, float]]:
    """Cash-flow adjusted month-over-month returns as fractions.

    Months whose previous value is zero have no defined return and are skipped.
    """

    flows = cash_flow_map(cash_flows)
    returns: list[tuple[MonthlySnapshot, float]] = []
    for previous, current in zip(snapshots, snapshots[1:]):
        start = previous.total_net_worth
        if start == 0:
            continue
        flow = flows.get(current.key, 0.0)
        returns.append((current, (current.total_net_worth - flow) / start - 1))
    return returns


def calculate_time_weighted_return(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData],
) -> float | None:
    """Annualised time-weighted return (%) from geometrically linked months."""

    if len(snapshots) < 2:
        return None
    linked = 1.0
    for _, period_return in _monthly_returns(snapshots, cash_flows):
        linked *= 1 + period_return
    if linked <= 0:
        return None
    years = (len(snapshots) - 1) / 12
    twr = (linked ** (1 / years) - 1) * 100
    return twr if math.isfinite(twr) else None


def calculate_irr(
    start_value: float,
    end_value: float,
    cash_flows: Sequence[CashFlowData],
    number_of_months: int,
    *,
    start_date: date | None = None,
    max_iterations: int | None = None,
    tolerance: float | None = None,
) -> float | None:
    """Money-weighted return (%) solved with a bounded Newton-Raphson search.

    The opening value is the investor's outflow at ``t = 0`` and the closing
    value the inflow at ``number_of_months``. Contributions into the portfolio
    are further outflows, withdrawals are inflows; each is placed at the end of
    its month relative to ``start_date`` (the first cash flow's month when not
    given). Returns ``None`` when the solver does not converge.
    """

    if number_of_months < 1 or start_value == 0:
        return None
    settings = get_settings()
    max_iterations = max_iterations or settings.irr_max_iterations
    tolerance = tolerance or settings.irr_tolerance

    origin = start_date or (cash_flows[0].date if cash_flows else None)
    flows: list[tuple[float, float]] = [(-start_value, 0.0)]
    for cf in cash_flows:
        offset = months_between_inclusive(origin, cf.date) if origin else 0
        flows.append((-cf.net_cash_flow, offset / 12))
    flows.append((end_value, number_of_months / 12))

    rate = 0.1
    for _ in range(max_iterations):
        npv = 0.0
        derivative = 0.0
        for amount, years in flows:
            discount = (1 + rate) ** -years
            npv += amount * discount
            derivative -= amount * years * discount / (1 + rate)
        if not math.isfinite(npv) or not math.isfinite(derivative):
            break
        if abs(npv) < tolerance:
            return rate * 100
        if derivative == 0:
            break
        rate -= npv / derivative
        # Rates at or below -100% leave the discount factor undefined
        rate = max(rate, -0.99)

    logger.debug("IRR did not converge after %d iterations", max_iterations)
    return None


# Risk metrics


def calculate_sharpe_ratio(portfolio_return: float, risk_free_rate: float, volatility: float) -> float | None:
    if volatility == 0:
        return None
    return (portfolio_return - risk_free_rate) / volatility


def calculate_volatility(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData],
    outlier_threshold: float | None = None,
) -> float | None:
    """Annualised volatility (%) of cash-flow adjusted monthly returns.

    Monthly moves at or beyond ``outlier_threshold`` percent are dropped as
    contribution/withdrawal artifacts before the standard deviation is taken.
    """

    if len(snapshots) < 2:
        return None
    if outlier_threshold is None:
        outlier_threshold = get_settings().outlier_return_threshold_pct

    monthly = [r * 100 for _, r in _monthly_returns(snapshots, cash_flows)]
    usable = [r for r in monthly if abs(r) < outlier_threshold]
    if len(usable) < 2:
        return None
    return sample_std(usable) * math.sqrt(12)


def _adjusted_values(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData],
) -> list[float]:
    """Net worth minus cumulative net cash flow, isolating investment moves."""

    flows = cash_flow_map(cash_flows)
    cumulative = 0.0
    values: list[float] = []
    for snapshot in snapshots:
        cumulative += flows.get(snapshot.key, 0.0)
        values.append(snapshot.total_net_worth - cumulative)
    return values


@dataclass
class _DeepestDrawdown:
    peak_index: int
    trough_index: int
    peak_value: float
    drawdown: float


def _find_deepest_drawdown(values: Sequence[float]) -> _DeepestDrawdown | None:
    if len(values) < 2:
        return None
    peak_index = 0
    deepest: _DeepestDrawdown | None = None
    for index, value in enumerate(values):
        if value > values[peak_index]:
            peak_index = index
        peak = values[peak_index]
        if peak <= 0:
            continue
        drawdown = (value - peak) / peak * 100
        if drawdown < 0 and (deepest is None or drawdown < deepest.drawdown):
            deepest = _DeepestDrawdown(peak_index, index, peak, drawdown)
    return deepest


def _recovery_index(values: Sequence[float], deepest: _DeepestDrawdown) -> int | None:
    for index in range(deepest.trough_index + 1, len(values)):
        if values[index] >= deepest.peak_value:
            return index
    return None


def calculate_max_drawdown(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData] = (),
) -> DrawdownResult:
    """Deepest peak-to-trough decline (%) and the ``MM/YY`` month of the trough."""

    ordered = deduplicate_snapshots(snapshots)
    deepest = _find_deepest_drawdown(_adjusted_values(ordered, cash_flows))
    if deepest is None:
        return DrawdownResult()
    trough = ordered[deepest.trough_index]
    return DrawdownResult(
        value=deepest.drawdown,
        trough_date=format_month_short(trough.year, trough.month),
    )


def _phase_duration(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData],
    *,
    from_trough: bool,
) -> DurationResult:
    ordered = deduplicate_snapshots(snapshots)
    values = _adjusted_values(ordered, cash_flows)
    deepest = _find_deepest_drawdown(values)
    if deepest is None:
        return DurationResult()

    begin = ordered[deepest.trough_index if from_trough else deepest.peak_index]
    begin_label = format_month_short(begin.year, begin.month)
    recovery = _recovery_index(values, deepest)
    if recovery is None:
        return DurationResult(period=f"{begin_label} - {STILL_UNDERWATER_LABEL}")

    end = ordered[recovery]
    return DurationResult(
        duration=months_between_inclusive(begin.period_start, end.period_start),
        period=f"{begin_label} - {format_month_short(end.year, end.month)}",
        recovered=True,
    )


def calculate_drawdown_duration(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData] = (),
) -> DurationResult:
    """Months from the peak before the deepest drawdown until it is regained."""

    return _phase_duration(snapshots, cash_flows, from_trough=False)


def calculate_recovery_time(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData] = (),
) -> DurationResult:
    """Months from the deepest trough until the prior peak is regained."""

    return _phase_duration(snapshots, cash_flows, from_trough=True)


# Period aggregation


def _period_bounds(snapshots: Sequence[MonthlySnapshot]) -> tuple[date, date]:
    first, last = snapshots[0], snapshots[-1]
    return first.period_start, last_day_of_month(last.year, last.month)


def calculate_performance_for_period(
    all_snapshots: Sequence[MonthlySnapshot],
    period: TimePeriod | str,
    risk_free_rate: float | None = None,
    cash_flows: Sequence[CashFlowData] = (),
    custom_start: Any = None,
    custom_end: Any = None,
    *,
    today: date | None = None,
    dividends: Sequence[DividendPayment] | None = None,
    holdings: Sequence[Holding] | None = None,
    ledger: Sequence[LedgerEntry] | None = None,
    dividend_category_id: str | None = None,
) -> PerformanceMetrics:
    """Compute every metric for one time window of the snapshot history.

    Monthly cash flows may be passed ready-made or derived from raw ``ledger``
    rows; explicit ``cash_flows`` win when both are given.
    """

    if risk_free_rate is None:
        risk_free_rate = get_settings().risk_free_rate
    if not cash_flows and ledger:
        cash_flows = cash_flows_from_ledger(ledger, dividend_category_id=dividend_category_id)
    try:
        selector: TimePeriod | None = TimePeriod(period)
    except ValueError:
        selector = None
    snapshots = get_snapshots_for_period(all_snapshots, period, custom_start, custom_end, today=today)

    if len(snapshots) < 2:
        logger.debug("Period %s has %d snapshots; metrics left undefined", period, len(snapshots))
        return PerformanceMetrics(
            time_period=selector,
            start_date=None,
            end_date=None,
            start_net_worth=snapshots[0].total_net_worth if snapshots else 0.0,
            end_net_worth=snapshots[-1].total_net_worth if snapshots else 0.0,
            risk_free_rate=risk_free_rate,
            has_insufficient_data=True,
            error_message=INSUFFICIENT_DATA_MESSAGE,
        )

    start_snapshot, end_snapshot = snapshots[0], snapshots[-1]
    start_date, end_date = _period_bounds(snapshots)
    number_of_months = months_between_inclusive(start_date, end_date)
    period_flows = cash_flows_between(cash_flows, start_date, end_date)

    total_contributions = sum(cf.net_cash_flow for cf in period_flows if cf.net_cash_flow > 0)
    total_withdrawals = sum(-cf.net_cash_flow for cf in period_flows if cf.net_cash_flow < 0)
    net_cash_flow = total_contributions - total_withdrawals

    twr = calculate_time_weighted_return(snapshots, period_flows)
    volatility = calculate_volatility(snapshots, period_flows)
    sharpe = None
    if twr is not None and volatility is not None:
        sharpe = calculate_sharpe_ratio(twr, risk_free_rate, volatility)
    drawdown = calculate_max_drawdown(snapshots, period_flows)
    duration = calculate_drawdown_duration(snapshots, period_flows)
    recovery = calculate_recovery_time(snapshots, period_flows)

    metrics = PerformanceMetrics(
        time_period=selector,
        start_date=start_date,
        end_date=end_date,
        start_net_worth=start_snapshot.total_net_worth,
        end_net_worth=end_snapshot.total_net_worth,
        risk_free_rate=risk_free_rate,
        cash_flows=period_flows,
        roi=calculate_roi(start_snapshot.total_net_worth, end_snapshot.total_net_worth, net_cash_flow),
        cagr=calculate_cagr(
            start_snapshot.total_net_worth,
            end_snapshot.total_net_worth,
            net_cash_flow,
            number_of_months,
        ),
        time_weighted_return=twr,
        money_weighted_return=calculate_irr(
            start_snapshot.total_net_worth,
            end_snapshot.total_net_worth,
            period_flows,
            number_of_months,
            start_date=start_date,
        ),
        sharpe_ratio=sharpe,
        volatility=volatility,
        max_drawdown=drawdown.value,
        max_drawdown_date=drawdown.trough_date,
        drawdown_duration=duration.duration,
        drawdown_period=duration.period,
        recovery_time=recovery.duration,
        recovery_period=recovery.period,
        still_underwater=drawdown.value is not None and not duration.recovered,
        total_contributions=total_contributions,
        total_withdrawals=total_withdrawals,
        net_cash_flow=net_cash_flow,
        total_income=sum(cf.income for cf in period_flows),
        total_expenses=sum(cf.expenses for cf in period_flows),
        total_dividend_income=sum(cf.dividend_income for cf in period_flows),
        number_of_months=number_of_months,
    )

    if dividends is not None and holdings is not None:
        # Dividends cannot be received after today even if the window runs longer
        as_of = min(end_date, today or date.today())
        metrics.current_yield = calculate_current_yield_metrics(dividends, holdings, as_of).yield_gross
        metrics.yield_on_cost = calculate_yield_on_cost_metrics(dividends, holdings, as_of).yield_gross
    return metrics


def calculate_rolling_periods(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData] = (),
    window_months: int = 12,
    risk_free_rate: float | None = None,
) -> list[RollingPeriodPerformance]:
    """Trailing ``window_months`` CAGR series ending at every snapshot.

    A window is emitted only when a snapshot exists exactly ``window_months``
    earlier and its CAGR is defined.
    """

    if risk_free_rate is None:
        risk_free_rate = get_settings().risk_free_rate
    ordered = deduplicate_snapshots(snapshots)
    by_start = {s.period_start: s for s in ordered}

    rolling: list[RollingPeriodPerformance] = []
    for end_snapshot in ordered:
        window_start = shift_months(end_snapshot.period_start, -window_months)
        start_snapshot = by_start.get(window_start)
        if start_snapshot is None:
            continue
        window = [s for s in ordered if window_start <= s.period_start <= end_snapshot.period_start]
        flows = cash_flows_between(cash_flows, window_start, end_snapshot.period_start)
        net_flow = sum(cf.net_cash_flow for cf in flows)

        cagr = calculate_cagr(
            start_snapshot.total_net_worth,
            end_snapshot.total_net_worth,
            net_flow,
            window_months,
        )
        if cagr is None:
            continue
        volatility = calculate_volatility(window, flows)
        twr = calculate_time_weighted_return(window, flows)
        sharpe = None
        if twr is not None and volatility is not None:
            sharpe = calculate_sharpe_ratio(twr, risk_free_rate, volatility)
        rolling.append(
            RollingPeriodPerformance(
                period_start_date=window_start,
                period_end_date=end_snapshot.period_start,
                cagr=cagr,
                sharpe_ratio=sharpe,
                volatility=volatility,
            )
        )
    return rolling


def get_all_performance_data(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData] = (),
    risk_free_rate: float | None = None,
    *,
    today: date | None = None,
) -> PerformanceData:
    """Metrics for every standard window plus the rolling 12/36-month series."""

    if risk_free_rate is None:
        risk_free_rate = get_settings().risk_free_rate
    per_period = {
        period: calculate_performance_for_period(
            snapshots, period, risk_free_rate, cash_flows, today=today
        )
        for period in STANDARD_PERIODS
    }
    return PerformanceData(
        ytd=per_period[TimePeriod.YTD],
        one_year=per_period[TimePeriod.ONE_YEAR],
        three_year=per_period[TimePeriod.THREE_YEAR],
        five_year=per_period[TimePeriod.FIVE_YEAR],
        all_time=per_period[TimePeriod.ALL],
        rolling_12m=calculate_rolling_periods(snapshots, cash_flows, 12, risk_free_rate),
        rolling_36m=calculate_rolling_periods(snapshots, cash_flows, 36, risk_free_rate),
        snapshot_count=len(deduplicate_snapshots(snapshots)),
        last_updated=datetime.now(),
    )


# Chart series


def prepare_performance_chart_data(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData] = (),
) -> list[PerformanceChartPoint]:
    """Net worth split into cumulative contributions and investment returns."""

    flows = cash_flow_map(cash_flows)
    cumulative = 0.0
    points: list[PerformanceChartPoint] = []
    for snapshot in deduplicate_snapshots(snapshots):
        cumulative += flows.get(snapshot.key, 0.0)
        points.append(
            PerformanceChartPoint(
                date=f"{snapshot.month:02d}/{snapshot.year}",
                net_worth=snapshot.total_net_worth,
                contributions=cumulative,
                returns=snapshot.total_net_worth - cumulative,
            )
        )
    return points


def prepare_monthly_returns_heatmap(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData] = (),
) -> list[MonthlyReturnHeatmapRow]:
    """Cash-flow adjusted monthly returns (%) laid out year by month.

    A month has a value only when the preceding calendar month was also
    snapshotted with a non-zero net worth.
    """

    ordered = deduplicate_snapshots(snapshots)
    if not ordered:
        return []
    flows = cash_flow_map(cash_flows)
    by_start = {s.period_start: s for s in ordered}
    returns: dict[tuple[int, int], float] = {}
    for snapshot in ordered:
        previous = by_start.get(shift_months(snapshot.period_start, -1))
        if previous is None or previous.total_net_worth == 0:
            continue
        flow = flows.get(snapshot.key, 0.0)
        returns[(snapshot.year, snapshot.month)] = (
            (snapshot.total_net_worth - flow) / previous.total_net_worth - 1
        ) * 100

    return [
        MonthlyReturnHeatmapRow(
            year=year,
            months=[HeatmapMonth(month=m, return_pct=returns.get((year, m))) for m in range(1, 13)],
        )
        for year in range(ordered[-1].year, ordered[0].year - 1, -1)
    ]


def prepare_underwater_drawdown_data(
    snapshots: Sequence[MonthlySnapshot],
    cash_flows: Sequence[CashFlowData] = (),
) -> list[UnderwaterPoint]:
    """Drawdown from the running peak (always ``<= 0``) at every snapshot."""

    ordered = deduplicate_snapshots(snapshots)
    values = _adjusted_values(ordered, cash_flows)
    points: list[UnderwaterPoint] = []
    peak = float("-inf")
    for snapshot, value in zip(ordered, values):
        peak = max(peak, value)
        drawdown = (value - peak) / peak * 100 if peak > 0 else 0.0
        points.append(
            UnderwaterPoint(
                date=format_month_short(snapshot.year, snapshot.month),
                drawdown=min(drawdown, 0.0),
                year=snapshot.year,
                month=snapshot.month,
            )
        )
    return points


__all__ = [
    "DrawdownResult",
    "DurationResult",
    "HeatmapMonth",
    "INSUFFICIENT_DATA_MESSAGE",
    "MonthlyReturnHeatmapRow",
    "PerformanceChartPoint",
    "PerformanceData",
    "PerformanceMetrics",
    "RollingPeriodPerformance",
    "UnderwaterPoint",
    "calculate_cagr",
    "calculate_drawdown_duration",
    "calculate_irr",
    "calculate_max_drawdown",
    "calculate_performance_for_period",
    "calculate_recovery_time",
    "calculate_roi",
    "calculate_rolling_periods",
    "calculate_sharpe_ratio",
    "calculate_time_weighted_return",
    "calculate_volatility",
    "get_all_performance_data",
    "prepare_monthly_returns_heatmap",
    "prepare_performance_chart_data",
    "prepare_underwater_drawdown_data",
]
