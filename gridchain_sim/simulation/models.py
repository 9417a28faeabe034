from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping

from ..errors import ConfigurationError


class BatteryStatus(str, Enum):
    """Operating mode of the battery during the last step."""

    CHARGING = "CHARGING"
    DISCHARGING = "DISCHARGING"
    IDLE = "IDLE"


@dataclass(frozen=True)
class BatteryState:
    """
    Battery state of charge and status.

    Attributes:
        soc: State of charge in percent (0-100).
        status: Operating mode reached in the last step.
    """
    soc: float
    status: BatteryStatus = BatteryStatus.IDLE

    def to_dict(self) -> Dict[str, Any]:
        return {"soc": self.soc, "status": self.status.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BatteryState":
        return cls(soc=float(data["soc"]), status=BatteryStatus(data.get("status", "IDLE")))


@dataclass(frozen=True)
class Snapshot:
    """
    One measurement of the microgrid.

    Attributes:
        solar_output: PV output in kW (>= 0).
        load_consumption: Household demand in kW (>= 0).
        battery: Battery state after the step.
        grid_exchange: Grid power in kW, positive = import, negative = export.
        produced_at: UTC instant the snapshot was computed.
    """
    solar_output: float
    load_consumption: float
    battery: BatteryState
    grid_exchange: float
    produced_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON tree used for serialization and fingerprinting.
        """
        return {
            "solar_output": self.solar_output,
            "load_consumption": self.load_consumption,
            "battery": self.battery.to_dict(),
            "grid_exchange": self.grid_exchange,
            "produced_at": self.produced_at.isoformat(timespec="milliseconds"),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        return cls(
            solar_output=float(data["solar_output"]),
            load_consumption=float(data["load_consumption"]),
            battery=BatteryState.from_dict(data["battery"]),
            grid_exchange=float(data["grid_exchange"]),
            produced_at=datetime.fromisoformat(data["produced_at"]),
        )


def empty_snapshot(battery: BatteryState, produced_at: datetime | None = None) -> Snapshot:
    """
    Zero-flow snapshot used as the genesis state before the first tick.
    """
    return Snapshot(
        solar_output=0.0,
        load_consumption=0.0,
        battery=battery,
        grid_exchange=0.0,
        produced_at=produced_at or datetime.now(timezone.utc),
    )


@dataclass(frozen=True)
class MicrogridConfig:
    """
    Site and hardware configuration of the simulated microgrid.

    Defaults reproduce a Los Angeles home with 25 m2 of 20% panels and a
    13.5 kWh battery.

    Attributes:
        latitude: Site latitude in degrees.
        longitude: Site longitude in degrees.
        solar_panel_area: Panel area in m2.
        solar_efficiency: Panel efficiency (0-1).
        solar_panel_tilt: Panel tilt in degrees.
        battery_capacity: Usable battery capacity in kWh (> 0).
        initial_battery_charge: Starting state of charge in percent.
    """
    latitude: float = 34.05
    longitude: float = -118.25
    solar_panel_area: float = 25.0
    solar_efficiency: float = 0.2
    solar_panel_tilt: float = 30.0
    battery_capacity: float = 13.5
    initial_battery_charge: float = 50.0

    def validate(self) -> "MicrogridConfig":
        """
        Check the invariants the physics model relies on.

        Returns:
            self, to allow chaining.

        Raises:
            ConfigurationError: On a non-positive capacity, an efficiency
                outside [0, 1] or an initial charge outside [0, 100].
        """
        if not self.battery_capacity > 0:
            raise ConfigurationError(
                f"battery_capacity must be > 0 kWh, got {self.battery_capacity}"
            )
        if not 0.0 <= self.solar_efficiency <= 1.0:
            raise ConfigurationError(
                f"solar_efficiency must be within [0, 1], got {self.solar_efficiency}"
            )
        if not 0.0 <= self.initial_battery_charge <= 100.0:
            raise ConfigurationError(
                f"initial_battery_charge must be within [0, 100], got {self.initial_battery_charge}"
            )
        return self

    @property
    def peak_power_kw(self) -> float:
        """Nameplate PV power at 1 kW/m2 irradiance."""
        return round(self.solar_panel_area * self.solar_efficiency, 2)

    def initial_battery(self) -> BatteryState:
        return BatteryState(soc=self.initial_battery_charge, status=BatteryStatus.IDLE)

    def with_changes(self, **changes: Any) -> "MicrogridConfig":
        """
        Return a validated copy with the given fields replaced.
        """
        return replace(self, **changes).validate()
