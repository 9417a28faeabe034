"""
Simulation schemas for API validation.

This module contains Pydantic models for the microgrid driver endpoints:
- Config: site and hardware configuration (read and partial update)
- Snapshot: one computed microgrid state
- State: driver status, current snapshot and chain status
- Tick: manual advance of simulated time
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .ledger import RecordResponse, ValidationResponse


class MicrogridConfigSchema(BaseModel):
    """
    Full microgrid configuration as returned by GET /api/config.
    """

    latitude: float = Field(..., ge=-90.0, le=90.0, description="Site latitude (degrees)")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Site longitude (degrees)")
    solar_panel_area: float = Field(..., ge=0.0, description="Panel area (m2)")
    solar_efficiency: float = Field(..., description="Panel efficiency (0-1)")
    solar_panel_tilt: float = Field(..., description="Panel tilt (degrees)")
    battery_capacity: float = Field(..., description="Battery capacity (kWh, > 0)")
    initial_battery_charge: float = Field(..., description="Initial state of charge (%)")


class MicrogridConfigUpdate(BaseModel):
    """
    Partial configuration update for PUT /api/config.

    Only the fields that are set are applied. Range checks on capacity,
    efficiency and initial charge are done by the domain model so that the
    same ConfigurationError message reaches API and CLI users.

    Example:
        ```python
        # PUT /api/config
        {"latitude": 45.46, "longitude": 9.19, "solar_panel_tilt": 35}
        ```
    """

    latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    solar_panel_area: Optional[float] = Field(default=None, ge=0.0)
    solar_efficiency: Optional[float] = None
    solar_panel_tilt: Optional[float] = None
    battery_capacity: Optional[float] = None
    initial_battery_charge: Optional[float] = None


class BatteryStateSchema(BaseModel):
    soc: float = Field(..., ge=0.0, le=100.0, description="State of charge (%)")
    status: str = Field(..., description="CHARGING, DISCHARGING or IDLE")


class SnapshotSchema(BaseModel):
    solar_output: float = Field(..., description="PV output (kW)")
    load_consumption: float = Field(..., description="Household load (kW)")
    battery: BatteryStateSchema
    grid_exchange: float = Field(..., description="Grid power (kW), + import / - export")
    produced_at: str = Field(..., description="ISO-8601 UTC instant")


class StateResponse(BaseModel):
    """
    Response schema for GET /api/state.

    Attributes:
        time: Simulated hour of day.
        tick_count: Ticks since start or last reset.
        running: Whether the periodic ticker is active.
        snapshot: Latest computed state.
        config: Active configuration.
        peak_power_kw: Panel area x efficiency.
        chain_length: Number of ledger records.
        secure: False after a detected or known tamper, until the next valid audit or reset.
        validation: Last audit outcome.
        solar_source: "weather" when measured irradiance feeds the model, else "model".
        weather_loading: True while an irradiance lookup is pending.
    """

    time: float
    tick_count: int
    running: bool
    snapshot: SnapshotSchema
    config: MicrogridConfigSchema
    peak_power_kw: float
    chain_length: int
    secure: bool
    validation: ValidationResponse
    solar_source: str
    weather_loading: bool


class TickRequest(BaseModel):
    count: int = Field(default=1, ge=1, le=10_000, description="Ticks to run")


class TickResult(BaseModel):
    time: float
    snapshot: SnapshotSchema
    record: Optional[RecordResponse] = None


class TickResponse(BaseModel):
    ticks: List[TickResult]
    chain_length: int
