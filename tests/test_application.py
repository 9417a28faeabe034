from __future__ import annotations

import pytest

from gridchain_sim.application import GridChainApplication
from gridchain_sim.config import Settings
from gridchain_sim.errors import ConfigurationError, RecordNotFoundError, SerializationError
from gridchain_sim.ledger import IntegrityReason, RawPayload


class _RecordingIrradiance:
    """Stand-in irradiance service that records refresh requests."""

    def __init__(self, value: float | None = None) -> None:
        self.value = value
        self.requests: list[tuple[float, float]] = []
        self.loading = False

    def irradiance_at(self, time: float) -> float | None:
        return self.value

    def request_update(self, latitude: float, longitude: float) -> None:
        self.requests.append((latitude, longitude))

    def cancel(self) -> None:
        pass


def test_application_seeds_genesis(application: GridChainApplication) -> None:
    state = application.state()

    assert state["chain_length"] == 1
    assert state["time"] == 12.0
    assert state["secure"] is True
    assert state["running"] is False
    assert state["solar_source"] == "model"
    assert state["peak_power_kw"] == 5.0
    assert state["snapshot"]["battery"] == {"soc": 50.0, "status": "IDLE"}


def test_tick_and_validate(application: GridChainApplication) -> None:
    outcomes = application.tick(4)

    assert len(outcomes) == 4
    assert len(application.ledger) == 5
    assert application.validate().valid
    assert application.state()["tick_count"] == 4

    with pytest.raises(ValueError):
        application.tick(0)


def test_same_seed_gives_same_snapshots(offline_settings: Settings, clock) -> None:
    first = GridChainApplication(settings=offline_settings, seed=3, clock=clock)
    second = GridChainApplication(settings=offline_settings, seed=3, clock=clock)

    loads_a = [o.snapshot.load_consumption for o in first.tick(10)]
    loads_b = [o.snapshot.load_consumption for o in second.tick(10)]

    assert loads_a == loads_b


def test_inject_then_tamper_marks_compromised(application: GridChainApplication) -> None:
    application.tick(2)
    injected = application.inject({"solar_output": 500, "load_consumption": 0})
    assert injected.index == 3
    assert injected.kind == "raw"
    assert application.validate().valid

    result = application.tamper(1, {"solar_output": 500})

    assert result.changed
    state = application.state()
    assert state["secure"] is False
    assert state["validation"]["error_index"] == 1

    audit = application.validate()
    assert audit.error_index == 1
    assert audit.reason is IntegrityReason.DATA_TAMPERED


def test_tamper_no_change_keeps_secure_status(application: GridChainApplication) -> None:
    application.tick(1)
    same = application.ledger.get(1).payload

    result = application.tamper(1, same)

    assert result.changed is False
    assert application.state()["secure"] is True


def test_tamper_and_inject_errors(application: GridChainApplication) -> None:
    with pytest.raises(RecordNotFoundError):
        application.tamper(10, {"x": 1})
    with pytest.raises(SerializationError):
        application.inject({"x": float("inf")})
    assert len(application.ledger) == 1


def test_inject_accepts_raw_payload(application: GridChainApplication) -> None:
    record = application.inject(RawPayload.from_json('["a", 1]'))
    assert record.payload.value == ["a", 1]


def test_reset_restores_secure_chain(application: GridChainApplication) -> None:
    application.tick(3)
    application.tamper(2, {"x": 1})
    application.validate()

    genesis = application.reset()

    assert genesis.index == 0
    assert len(application.ledger) == 1
    state = application.state()
    assert state["secure"] is True
    assert state["time"] == 12.0
    assert application.validate().valid


def test_update_config(application: GridChainApplication) -> None:
    updated = application.update_config(solar_panel_area=10.0, battery_capacity=20.0)

    assert updated.solar_panel_area == 10.0
    assert application.config.battery_capacity == 20.0

    with pytest.raises(ConfigurationError):
        application.update_config(battery_capacity=0.0)
    with pytest.raises(ConfigurationError):
        application.update_config(wind_turbines=2)
    assert application.config.battery_capacity == 20.0


def test_location_change_requests_irradiance(offline_settings: Settings, clock) -> None:
    irradiance = _RecordingIrradiance(value=800.0)
    app = GridChainApplication(settings=offline_settings, irradiance=irradiance, seed=1, clock=clock)

    app.update_config(solar_panel_tilt=10.0)
    assert irradiance.requests == []

    app.update_config(latitude=45.46, longitude=9.19)
    assert irradiance.requests == [(45.46, 9.19)]

    assert app.state()["solar_source"] == "weather"
    # 25 m2 * 800 W/m2 * 0.2 with a 35.46 degree tilt mismatch
    assert app.tick(1)[0].snapshot.solar_output == pytest.approx(3.72, abs=0.01)


def test_history_frame(application: GridChainApplication) -> None:
    application.tick(3)
    application.inject({"note": "manual"})

    frame = application.history_frame()

    assert list(frame["index"]) == [0, 1, 2, 3, 4]
    assert list(frame["kind"]) == ["snapshot"] * 4 + ["raw"]
    assert frame["solar_output"].iloc[1] > 0.0
    assert frame["solar_output"].isna().iloc[4]


def test_export_writes_reports(application: GridChainApplication, offline_settings: Settings) -> None:
    application.tick(4)

    run_dir = application.export("noon run")

    assert run_dir.parent == offline_settings.results_dir
    assert (run_dir / "chain.csv").exists()
    assert (run_dir / "summary.json").exists()
