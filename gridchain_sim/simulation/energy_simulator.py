from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

import numpy as np

from ..errors import ConfigurationError
from ..ledger.chain import Clock, Ledger
from ..ledger.records import Record
from .battery import DEFAULT_TIME_STEP_HOURS, step_battery
from .load_profiles import compute_load
from .models import BatteryState, MicrogridConfig, Snapshot, empty_snapshot
from .solar import compute_solar

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24.0

IrradianceSource = Callable[[float], Optional[float]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_snapshot(
    time: float,
    config: MicrogridConfig,
    prior_battery: BatteryState,
    irradiance: float | None = None,
    *,
    rng: np.random.Generator | None = None,
    time_step: float = DEFAULT_TIME_STEP_HOURS,
    clock: Clock | None = None,
) -> Snapshot:
    """
    Compute the microgrid state for one time step.

    Args:
        time: Hour of the day (0-24, fractional).
        config: Site and hardware configuration.
        prior_battery: Battery state before the step.
        irradiance: Optional measured radiation (W/m2) for this hour.
        rng: Random generator for the load noise.
        time_step: Step length in hours.
        clock: Source of ``produced_at``.

    Returns:
        New immutable Snapshot.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    config.validate()

    solar = compute_solar(
        time,
        config.solar_panel_area,
        config.solar_efficiency,
        irradiance,
        config.latitude,
        config.solar_panel_tilt,
    )
    load = compute_load(time, rng=rng)
    transition = step_battery(prior_battery, solar, load, config.battery_capacity, time_step)

    return Snapshot(
        solar_output=solar,
        load_consumption=load,
        battery=transition.battery,
        grid_exchange=transition.grid_exchange,
        produced_at=(clock or _utc_now)(),
    )


@dataclass(frozen=True)
class TickOutcome:
    """
    Attributes:
        time: Simulated hour of day after the tick.
        snapshot: State computed for that hour.
        record: Appended ledger record, or None when this tick was not recorded.
    """
    time: float
    snapshot: Snapshot
    record: Record | None


class MicrogridSimulator:
    """
    Advances simulated time and seals each new state into a ledger.

    Each ``tick`` runs one complete compute-then-append cycle under a lock,
    so ticks never overlap, whether they come from a test, the CLI or the
    periodic ticker.

    Args:
        config: Microgrid configuration (validated on construction).
        ledger: Ledger receiving the snapshots.
        irradiance_source: Callable returning W/m2 for an hour of day, or None.
        rng: Random generator for the load noise.
        time_step: Simulated hours per tick.
        start_time: Hour of day the simulation starts (and resets) at.
        record_interval_hours: When set, only ticks landing on a multiple of
            this interval are appended (1.0 = one record per simulated hour).
        clock: Source of snapshot and record timestamps.

    Raises:
        ConfigurationError: On a non-positive time step or record interval.
    """

    def __init__(
        self,
        config: MicrogridConfig,
        ledger: Ledger,
        *,
        irradiance_source: IrradianceSource | None = None,
        rng: np.random.Generator | None = None,
        time_step: float = DEFAULT_TIME_STEP_HOURS,
        start_time: float = 12.0,
        record_interval_hours: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        if not time_step > 0:
            raise ConfigurationError(f"time_step must be > 0, got {time_step}")
        if record_interval_hours is not None and not record_interval_hours > 0:
            raise ConfigurationError(f"record_interval_hours must be > 0, got {record_interval_hours}")
        self.config = config.validate()
        self.ledger = ledger
        self.irradiance_source = irradiance_source
        self.rng = rng if rng is not None else np.random.default_rng()
        self.time_step = time_step
        self.start_time = start_time % HOURS_PER_DAY
        self.record_interval_hours = record_interval_hours
        self.clock = clock or _utc_now

        self.time = self.start_time
        self.state = empty_snapshot(config.initial_battery(), self.clock())
        self.tick_count = 0
        self._lock = threading.Lock()

    def seed_genesis(self) -> Record | None:
        """
        Append the current state as genesis when the ledger is empty.
        """
        with self._lock:
            if len(self.ledger) > 0:
                return None
            return self.ledger.append(self.state)

    def update_config(self, config: MicrogridConfig) -> None:
        """Swap the configuration used by the next tick."""
        config.validate()
        with self._lock:
            self.config = config

    def tick(self) -> TickOutcome:
        """
        Advance by one time step, compute the new state and record it.
        """
        with self._lock:
            new_time = round((self.time + self.time_step) % HOURS_PER_DAY, 6)
            irradiance = self.irradiance_source(new_time) if self.irradiance_source else None

            snapshot = compute_snapshot(
                new_time,
                self.config,
                self.state.battery,
                irradiance,
                rng=self.rng,
                time_step=self.time_step,
                clock=self.clock,
            )

            record = self.ledger.append(snapshot) if self._should_record(new_time) else None
            self.time = new_time
            self.state = snapshot
            self.tick_count += 1
            return TickOutcome(time=new_time, snapshot=snapshot, record=record)

    def run(self, n_ticks: int) -> List[TickOutcome]:
        return [self.tick() for _ in range(n_ticks)]

    def reset(self) -> Record:
        """
        Rewind the clock, discard the chain and re-seed genesis with the current state.
        """
        with self._lock:
            self.time = self.start_time
            self.tick_count = 0
            self.state = replace(self.state, produced_at=self.clock())
            self.ledger.reset()
            return self.ledger.append(self.state)

    def _should_record(self, time: float) -> bool:
        if self.record_interval_hours is None:
            return True
        ratio = time / self.record_interval_hours
        return abs(ratio - round(ratio)) < 1e-9


class PeriodicTicker:
    """
    Calls ``simulator.tick`` on a fixed wall-clock cadence from a daemon thread.

    Pausing stops issuing new ticks; a tick already running completes.

    Args:
        simulator: Simulator to drive.
        interval_s: Seconds between ticks.
    """

    def __init__(self, simulator: MicrogridSimulator, interval_s: float = 1.0) -> None:
        if not interval_s > 0:
            raise ConfigurationError(f"interval_s must be > 0, got {interval_s}")
        self.simulator = simulator
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="gridchain-ticker", daemon=True)
        self._thread.start()

    def pause(self, timeout: float | None = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self.simulator.tick()
            except Exception:
                logger.exception("Tick failed, stopping the periodic ticker")
                self._stop.set()
                return
