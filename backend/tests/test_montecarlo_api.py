"""Monte Carlo API tests."""

from __future__ import annotations

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from networth.api.routes.montecarlo import router as montecarlo_router


def _app() -> FastAPI:
    app = FastAPI()
    app.include_router(montecarlo_router, prefix="/montecarlo", tags=["montecarlo"])
    return app


def _request(**overrides) -> dict:
    payload = {
        "initial_portfolio": 500_000,
        "retirement_years": 25,
        "annual_withdrawal": 20_000,
        "allocation": {"equity": 60, "bonds": 40},
        "number_of_simulations": 200,
        "seed": 2024,
    }
    payload.update(overrides)
    return payload


async def test_montecarlo_run_percentile_bounds():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/montecarlo/run", json=_request())

    assert response.status_code == 200
    payload = response.json()

    assert 0 <= payload["success_rate"] <= 100
    assert payload["success_count"] + payload["failure_count"] == 200
    assert len(payload["percentiles"]) == 26
    for band in payload["percentiles"]:
        assert band["p10"] <= band["p25"] <= band["p50"] <= band["p75"] <= band["p90"]
    assert payload["percentiles"][0]["p50"] == 500_000
    assert sum(b["count"] for b in payload["distribution"]) == 200
    assert payload["simulations"] is None


async def test_montecarlo_run_is_reproducible_with_seed():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        first = await client.post("/montecarlo/run", json=_request(include_simulations=True))
        second = await client.post("/montecarlo/run", json=_request(include_simulations=True))

    assert first.status_code == second.status_code == 200
    first_sims = first.json()["simulations"]
    assert len(first_sims) == 200
    assert first_sims == second.json()["simulations"]


async def test_montecarlo_run_rejects_bad_allocation():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(
            "/montecarlo/run", json=_request(allocation={"equity": 70, "bonds": 20})
        )
        unknown_class = await client.post("/montecarlo/run", json=_request(allocation={"crypto": 100}))
        too_many = await client.post("/montecarlo/run", json=_request(number_of_simulations=1_000_000))

    assert response.status_code == 400
    assert "100" in response.json()["detail"]
    assert unknown_class.status_code == 422
    assert too_many.status_code == 400


async def test_montecarlo_run_reports_failures():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post(
            "/montecarlo/run",
            json=_request(annual_withdrawal=5_000_000, number_of_simulations=20),
        )

    assert response.status_code == 200
    payload = response.json()
    assert payload["success_rate"] == 0
    assert payload["median_final_value"] is None
    assert payload["failure_analysis"]["median_failure_year"] == 1


async def test_scenarios_endpoint_returns_three_runs():
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/montecarlo/scenarios", json=_request(number_of_simulations=100))

    assert response.status_code == 200
    payload = response.json()
    assert set(payload) == {"bear", "base", "bull"}
    for scenario in payload.values():
        assert scenario["success_count"] + scenario["failure_count"] == 100


async def test_calibrate_endpoint_caches_per_user():
    history = [
        {
            "year": 2022 + index // 12,
            "month": index % 12 + 1,
            "total_net_worth": 100_000 * 1.01**index,
            "by_asset_class": {"equity": 100_000 * 1.01**index},
        }
        for index in range(30)
    ]
    app = _app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        short = await client.post("/montecarlo/calibrate", json={"snapshots": history[:12]})
        full = await client.post("/montecarlo/calibrate", json={"snapshots": history, "user_id": "u1"})
        cached = await client.post("/montecarlo/calibrate", json={"snapshots": history[:12], "user_id": "u1"})
        invalidated = await client.delete("/montecarlo/calibrate/u1")

    assert short.status_code == 200
    assert short.json() is None
    assert full.status_code == 200
    body = full.json()
    assert body["available_months"] == 30
    assert body["equity"]["from_history"] is True
    assert body["bonds"]["from_history"] is False
    assert cached.json() == body
    assert invalidated.json() == {"invalidated": 1}
