"""
Microgrid physics: solar output, household load, battery/grid transition and
the optional irradiance lookup.

The tick driver lives in :mod:`gridchain_sim.simulation.energy_simulator`; it is
not re-exported here because it depends on the ledger package.
"""

from __future__ import annotations

from .battery import DEFAULT_TIME_STEP_HOURS, BatteryTransition, step_battery
from .load_profiles import compute_load
from .models import BatteryState, BatteryStatus, MicrogridConfig, Snapshot, empty_snapshot
from .solar import compute_solar, tilt_factor
from .weather import IrradianceSeries, IrradianceService, fetch_irradiance_series

__all__ = [
    "DEFAULT_TIME_STEP_HOURS",
    "BatteryTransition",
    "step_battery",
    "compute_load",
    "BatteryState",
    "BatteryStatus",
    "MicrogridConfig",
    "Snapshot",
    "empty_snapshot",
    "compute_solar",
    "tilt_factor",
    "IrradianceSeries",
    "IrradianceService",
    "fetch_irradiance_series",
]
