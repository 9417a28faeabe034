"""
Microgrid driver API endpoints.

Endpoints:
- GET /state: Current time, snapshot, configuration and chain status
- POST /ticks: Advance simulated time synchronously
- POST /simulation/start, /simulation/pause: Periodic ticker control
- POST /reset: Discard the chain and re-seed genesis
- GET /config, PUT /config: Read or partially update the configuration
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from ...application import GridChainApplication
from ...errors import ConfigurationError
from .. import dependencies
from ..schemas import simulation as sim_schemas

router = APIRouter(prefix="/api", tags=["simulation"])


@router.get("/state", response_model=sim_schemas.StateResponse)
def get_state(
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.StateResponse:
    return sim_schemas.StateResponse(**app_service.state())


@router.post("/ticks", response_model=sim_schemas.TickResponse)
def run_ticks(
    payload: sim_schemas.TickRequest | None = None,
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.TickResponse:
    """
    Run one or more ticks immediately, independent of the periodic ticker.

    Each tick computes a new snapshot and appends it to the chain (or only
    on whole intervals when the application records at a coarser cadence).

    Raises:
        HTTPException 400: If the active configuration is invalid.
    """
    payload = payload or sim_schemas.TickRequest()
    try:
        outcomes = app_service.tick(payload.count)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    ticks = [
        sim_schemas.TickResult(
            time=o.time,
            snapshot=o.snapshot.to_dict(),
            record=o.record.to_dict() if o.record else None,
        )
        for o in outcomes
    ]
    return sim_schemas.TickResponse(ticks=ticks, chain_length=len(app_service.ledger))


@router.post("/simulation/start", response_model=sim_schemas.StateResponse)
def start_simulation(
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.StateResponse:
    app_service.start()
    return sim_schemas.StateResponse(**app_service.state())


@router.post("/simulation/pause", response_model=sim_schemas.StateResponse)
def pause_simulation(
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.StateResponse:
    app_service.pause()
    return sim_schemas.StateResponse(**app_service.state())


@router.post("/reset", response_model=sim_schemas.StateResponse)
def reset_simulation(
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.StateResponse:
    """
    Rewind simulated time, clear the chain and append a fresh genesis record.
    """
    app_service.reset()
    return sim_schemas.StateResponse(**app_service.state())


@router.get("/config", response_model=sim_schemas.MicrogridConfigSchema)
def get_config(
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.MicrogridConfigSchema:
    return sim_schemas.MicrogridConfigSchema(**asdict(app_service.config))


@router.put("/config", response_model=sim_schemas.MicrogridConfigSchema)
def update_config(
    payload: sim_schemas.MicrogridConfigUpdate,
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> sim_schemas.MicrogridConfigSchema:
    """
    Apply a partial configuration update; moving the site refreshes irradiance.

    Raises:
        HTTPException 400: If the resulting configuration is invalid
            (battery_capacity <= 0, efficiency outside [0, 1], ...).
    """
    changes = payload.model_dump(exclude_none=True)
    try:
        updated = app_service.update_config(**changes)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return sim_schemas.MicrogridConfigSchema(**asdict(updated))
