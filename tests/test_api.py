from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from gridchain_sim.api import dependencies
from gridchain_sim.api.app import create_app
from gridchain_sim.application import GridChainApplication


@pytest.fixture()
def client(application: GridChainApplication) -> TestClient:
    """Build a FastAPI test client bound to an offline application."""
    app = create_app()
    app.dependency_overrides[dependencies.get_application_service] = lambda: application
    return TestClient(app)


def test_state_and_ticks(client: TestClient) -> None:
    resp = client.get("/api/state")
    assert resp.status_code == 200
    state = resp.json()
    assert state["chain_length"] == 1
    assert state["secure"] is True

    resp = client.post("/api/ticks", json={"count": 3})
    assert resp.status_code == 200
    data = resp.json()
    assert data["chain_length"] == 4
    assert [t["time"] for t in data["ticks"]] == [12.25, 12.5, 12.75]
    assert data["ticks"][0]["record"]["index"] == 1

    resp = client.post("/api/ticks", json={"count": 0})
    assert resp.status_code == 422


def test_chain_listing_and_record_lookup(client: TestClient) -> None:
    client.post("/api/ticks", json={"count": 2})

    chain = client.get("/api/chain").json()
    assert [r["index"] for r in chain] == [0, 1, 2]
    assert chain[1]["prev_digest"] == chain[0]["digest"]

    resp = client.get("/api/chain/records/2")
    assert resp.status_code == 200
    assert resp.json()["kind"] == "snapshot"

    assert client.get("/api/chain/records/9").status_code == 404


def test_inject_tamper_and_validate(client: TestClient) -> None:
    client.post("/api/ticks", json={"count": 2})

    resp = client.post("/api/chain/records", json={"payload": {"solar_output": 500}})
    assert resp.status_code == 200
    assert resp.json()["index"] == 3
    assert client.post("/api/chain/validate").json()["valid"] is True

    resp = client.put("/api/chain/records/1", json={"payload": {"solar_output": 500}})
    assert resp.status_code == 200
    assert resp.json()["changed"] is True
    assert resp.json()["record"]["tampered"] is True

    audit = client.post("/api/chain/validate").json()
    assert audit == {
        "valid": False,
        "error_index": 1,
        "reason": "DATA_TAMPERED",
        "message": "Data Tampered: Hash mismatch",
    }
    assert client.get("/api/state").json()["secure"] is False


def test_tamper_errors(client: TestClient) -> None:
    assert client.put("/api/chain/records/5", json={"payload": {"x": 1}}).status_code == 404

    current = client.get("/api/chain/records/0").json()
    resp = client.put("/api/chain/records/0", json={"payload": current["payload"]})
    assert resp.status_code == 200
    assert resp.json()["changed"] is False


def test_inject_rejects_non_finite_numbers(client: TestClient, application: GridChainApplication) -> None:
    # the request body is valid JSON for the client but not for the ledger
    resp = client.post(
        "/api/chain/records",
        content='{"payload": {"x": NaN}}',
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 422
    assert len(application.ledger) == 1


def test_reset(client: TestClient) -> None:
    client.post("/api/ticks", json={"count": 5})
    client.put("/api/chain/records/2", json={"payload": {"x": 1}})

    resp = client.post("/api/reset")
    assert resp.status_code == 200
    state = resp.json()
    assert state["chain_length"] == 1
    assert state["secure"] is True
    assert state["time"] == 12.0


def test_config_read_and_update(client: TestClient) -> None:
    config = client.get("/api/config").json()
    assert config["battery_capacity"] == 13.5

    resp = client.put("/api/config", json={"solar_panel_area": 30.0})
    assert resp.status_code == 200
    assert resp.json()["solar_panel_area"] == 30.0
    assert resp.json()["latitude"] == 34.05

    resp = client.put("/api/config", json={"battery_capacity": 0})
    assert resp.status_code == 400
    assert "battery_capacity" in resp.json()["detail"]

    assert client.put("/api/config", json={"latitude": 120}).status_code == 422


def test_simulation_start_and_pause(client: TestClient) -> None:
    resp = client.post("/api/simulation/start")
    assert resp.status_code == 200
    assert resp.json()["running"] is True

    resp = client.post("/api/simulation/pause")
    assert resp.status_code == 200
    assert resp.json()["running"] is False


def test_invalid_settings_are_reported_as_bad_request(tmp_path) -> None:
    from gridchain_sim.config import Settings

    app = create_app()

    def broken_service() -> GridChainApplication:
        settings = Settings(weather_enabled=False, time_step_hours=0.0, results_dir=tmp_path)
        return GridChainApplication(settings=settings)

    app.dependency_overrides[dependencies.get_application_service] = broken_service
    resp = TestClient(app).get("/api/state")

    assert resp.status_code == 400
    assert "time_step" in resp.json()["detail"]
