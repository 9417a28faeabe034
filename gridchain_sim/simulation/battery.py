from __future__ import annotations

from dataclasses import dataclass

from ..errors import ConfigurationError
from .models import BatteryState, BatteryStatus

DEFAULT_TIME_STEP_HOURS = 0.25


@dataclass(frozen=True)
class BatteryTransition:
    """
    Result of one battery/grid step.

    Attributes:
        battery: Battery state after the step.
        grid_exchange: Grid power in kW (positive = import, negative = export).
    """
    battery: BatteryState
    grid_exchange: float


def step_battery(
    battery: BatteryState,
    solar: float,
    load: float,
    capacity: float,
    time_step: float = DEFAULT_TIME_STEP_HOURS,
) -> BatteryTransition:
    """
    Advance the battery by one time step and settle the balance with the grid.

    Surplus PV charges the battery; whatever the battery cannot absorb once
    full is exported. A deficit is served by the battery; once it is empty the
    shortfall is imported.

    Args:
        battery: Battery state before the step.
        solar: PV output in kW.
        load: Demand in kW.
        capacity: Battery capacity in kWh (> 0).
        time_step: Step length in hours (> 0).

    Returns:
        BatteryTransition with soc rounded to 1 decimal and grid to 2 decimals.

    Raises:
        ConfigurationError: If capacity or time_step is not positive.
    """
    if not capacity > 0:
        raise ConfigurationError(f"battery capacity must be > 0 kWh, got {capacity}")
    if not time_step > 0:
        raise ConfigurationError(f"time step must be > 0 h, got {time_step}")

    net_power = solar - load
    current_energy = battery.soc * capacity / 100.0
    grid = 0.0
    status = BatteryStatus.IDLE

    if net_power > 0:
        energy_to_add = net_power * time_step
        new_energy = min(capacity, current_energy + energy_to_add)
        if new_energy > current_energy:
            status = BatteryStatus.CHARGING
        if new_energy == capacity:
            # battery saturated: export what it could not take
            absorbed_kw = (new_energy - current_energy) / time_step
            grid = -(net_power - absorbed_kw)
        current_energy = new_energy
    else:
        energy_needed = abs(net_power) * time_step
        available = current_energy
        if energy_needed <= available:
            current_energy -= energy_needed
            status = BatteryStatus.DISCHARGING
        else:
            current_energy = 0.0
            grid = (energy_needed - available) / time_step

    # battery topping off a deficit while some PV is still producing
    if solar > 0 and solar < load and current_energy > 0:
        status = BatteryStatus.DISCHARGING

    soc = round(current_energy * 100.0 / capacity, 1)
    return BatteryTransition(
        battery=BatteryState(soc=min(100.0, max(0.0, soc)), status=status),
        grid_exchange=round(grid, 2) + 0.0,  # no -0.0
    )
