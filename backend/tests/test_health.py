"""Application wiring tests."""

from __future__ import annotations

from httpx import ASGITransport, AsyncClient

from networth.main import app


async def test_health_reports_configuration():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["timezone"] == "Europe/Rome"
    assert payload["base_currency"] == "EUR"


def test_routes_are_registered():
    paths = {route.path for route in app.routes}
    assert {
        "/performance/metrics",
        "/performance/summary",
        "/performance/yield",
        "/montecarlo/run",
        "/montecarlo/scenarios",
        "/montecarlo/calibrate",
    } <= paths
