"""Performance API tests."""

from __future__ import annotations

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from networth.api.routes.performance import router as performance_router


def _app() -> FastAPI:
    app = FastAPI()
    app.include_router(performance_router, prefix="/performance", tags=["performance"])
    return app


def _snapshots(values: list[float], year: int = 2025) -> list[dict]:
    return [
        {"year": year, "month": index + 1, "total_net_worth": value}
        for index, value in enumerate(values)
    ]


async def test_metrics_endpoint_reports_drawdown():
    payload = {
        "snapshots": _snapshots([100_000, 95_000, 105_000, 84_000, 100_000]),
        "period": "ALL",
        "risk_free_rate": 2.0,
    }

    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/performance/metrics", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["time_period"] == "ALL"
    assert round(body["max_drawdown"], 6) == -20.0
    assert body["max_drawdown_date"] == "04/25"
    assert body["drawdown_period"] == "03/25 - Presente"
    assert body["still_underwater"] is True
    assert body["number_of_months"] == 5


async def test_metrics_endpoint_flags_insufficient_data():
    payload = {"snapshots": _snapshots([100_000]), "period": "ALL"}

    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/performance/metrics", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["has_insufficient_data"] is True
    assert body["roi"] is None
    assert body["cagr"] is None


async def test_metrics_endpoint_applies_cash_flows():
    payload = {
        "snapshots": _snapshots([100_000, 130_000]),
        "cash_flows": [{"date": "2025-02-01", "income": 25_000, "expenses": 5_000}],
        "period": "CUSTOM",
        "custom_start": "2025-01-01",
        "custom_end": "2025-02-28",
    }

    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/performance/metrics", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["time_period"] == "CUSTOM"
    assert body["net_cash_flow"] == 20_000
    assert round(body["roi"], 6) == 10.0


async def test_metrics_endpoint_rejects_bad_payloads():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        bad_month = await client.post(
            "/performance/metrics",
            json={"snapshots": [{"year": 2025, "month": 13, "total_net_worth": 1}]},
        )
        bad_window = await client.post(
            "/performance/metrics",
            json={
                "snapshots": _snapshots([1, 2]),
                "period": "CUSTOM",
                "custom_start": "2025-03-01",
                "custom_end": "2025-01-01",
            },
        )
        bad_period = await client.post(
            "/performance/metrics",
            json={"snapshots": _snapshots([1, 2]), "period": "10Y"},
        )

    assert bad_month.status_code == 422
    assert bad_window.status_code == 422
    assert bad_period.status_code == 422


async def test_summary_endpoint_returns_all_windows():
    snapshots = [
        {"year": 2023 + index // 12, "month": index % 12 + 1, "total_net_worth": 100_000 + 1_000 * index}
        for index in range(30)
    ]
    payload = {"snapshots": snapshots, "today": "2025-06-15"}

    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/performance/summary", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["snapshot_count"] == 30
    assert body["ytd"]["number_of_months"] == 6
    assert body["one_year"]["number_of_months"] == 12
    assert body["five_year"]["number_of_months"] == 30
    assert len(body["rolling_12m"]) == 18
    assert body["rolling_36m"] == []
    assert len(body["chart"]) == 30
    assert [row["year"] for row in body["heatmap"]] == [2025, 2024, 2023]
    assert all(point["drawdown"] == 0 for point in body["underwater"])


async def test_yield_endpoint():
    payload = {
        "dividends": [{"asset_id": "etf", "payment_date": "2025-03-20", "gross_amount": 40, "tax_amount": 10}],
        "holdings": [{"asset_id": "etf", "ticker": "VWCE", "quantity": 10, "current_price": 100, "average_cost": 50}],
        "as_of": "2025-06-30",
    }

    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/performance/yield", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert round(body["current_yield"]["yield_gross"], 6) == 4.0
    assert round(body["current_yield"]["yield_net"], 6) == 3.0
    assert round(body["yield_on_cost"]["yield_gross"], 6) == 8.0


async def test_summary_endpoint_skips_dummy_snapshots():
    snapshots = _snapshots([100_000, 110_000, 120_000]) + [
        {"year": 2025, "month": 2, "total_net_worth": 1.0, "is_dummy": True},
        {"year": 2025, "month": 4, "total_net_worth": 5_000, "is_dummy": True},
    ]
    payload = {"snapshots": snapshots, "today": "2025-03-15"}

    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/performance/summary", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["snapshot_count"] == 3
    assert [point["net_worth"] for point in body["chart"]] == [100_000, 110_000, 120_000]
    assert all(point["drawdown"] == 0 for point in body["underwater"])
    months = {m["month"]: m["return_pct"] for m in body["heatmap"][0]["months"]}
    assert months[4] is None
