from __future__ import annotations

import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gridchain_sim.application import GridChainApplication  # noqa: E402
from gridchain_sim.config import Settings  # noqa: E402
from gridchain_sim.ledger import Ledger  # noqa: E402
from gridchain_sim.simulation.models import BatteryState, BatteryStatus, Snapshot  # noqa: E402

START = datetime(2024, 6, 21, 12, 0, 0, tzinfo=timezone.utc)


class SteppingClock:
    """Deterministic clock: every call returns the previous instant plus one second."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start - step
        self.step = step

    def __call__(self) -> datetime:
        self.current = self.current + self.step
        return self.current


@pytest.fixture()
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture()
def ledger(clock: SteppingClock) -> Ledger:
    return Ledger(clock=clock)


@pytest.fixture()
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


def make_snapshot(
    solar: float = 1.0,
    load: float = 0.5,
    soc: float = 50.0,
    status: BatteryStatus = BatteryStatus.IDLE,
    grid: float = 0.0,
) -> Snapshot:
    return Snapshot(
        solar_output=solar,
        load_consumption=load,
        battery=BatteryState(soc=soc, status=status),
        grid_exchange=grid,
        produced_at=START,
    )


@pytest.fixture()
def populated_ledger(ledger: Ledger) -> Ledger:
    """Ledger with a genesis snapshot and four more records."""
    ledger.append(make_snapshot(solar=0.0, load=0.0))
    for i in range(1, 5):
        ledger.append(make_snapshot(solar=float(i), load=0.5 * i, soc=50.0 + i))
    return ledger


@pytest.fixture()
def offline_settings(tmp_path) -> Settings:
    """Settings with the weather lookup disabled and results under tmp_path."""
    return Settings(weather_enabled=False, tick_seconds=0.01, results_dir=tmp_path / "results")


@pytest.fixture()
def application(offline_settings: Settings, clock: SteppingClock):
    app = GridChainApplication(settings=offline_settings, seed=7, clock=clock)
    yield app
    app.close()


@pytest.fixture()
def snapshot_factory():
    return make_snapshot
