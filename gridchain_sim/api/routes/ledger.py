"""
Ledger API endpoints.

Endpoints:
- GET /chain: All records in chain order
- GET /chain/records/{index}: One record
- POST /chain/validate: Audit link and content integrity
- POST /chain/records: Inject a manual record
- PUT /chain/records/{index}: Overwrite a record's payload (simulated attack)

Serialization failures are reported as 422 "Malformed input" and never
alter the chain.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ...application import GridChainApplication
from ...errors import RecordNotFoundError, SerializationError
from .. import dependencies
from ..schemas import ledger as ledger_schemas

router = APIRouter(prefix="/api", tags=["ledger"])


@router.get("/chain", response_model=List[ledger_schemas.RecordResponse])
def list_records(
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> List[ledger_schemas.RecordResponse]:
    return [ledger_schemas.RecordResponse(**r.to_dict()) for r in app_service.ledger.records()]


@router.get("/chain/records/{index}", response_model=ledger_schemas.RecordResponse)
def get_record(
    index: int,
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> ledger_schemas.RecordResponse:
    try:
        record = app_service.ledger.get(index)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ledger_schemas.RecordResponse(**record.to_dict())


@router.post("/chain/validate", response_model=ledger_schemas.ValidationResponse)
def validate_chain(
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> ledger_schemas.ValidationResponse:
    """
    Audit the chain. An invalid chain is a normal 200 response with
    ``valid: false``, the first violating ``error_index`` and its ``reason``.
    """
    result = app_service.validate()
    return ledger_schemas.ValidationResponse(**result.to_dict())


@router.post("/chain/records", response_model=ledger_schemas.RecordResponse)
def inject_record(
    payload: ledger_schemas.InjectRequest,
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> ledger_schemas.RecordResponse:
    """
    Append a hand-written record, sealed like any other.

    Raises:
        HTTPException 422: If the payload cannot be serialized.
    """
    try:
        record = app_service.inject(payload.payload)
    except SerializationError as exc:
        raise HTTPException(status_code=422, detail=f"Malformed input: {exc}") from exc
    return ledger_schemas.RecordResponse(**record.to_dict())


@router.put("/chain/records/{index}", response_model=ledger_schemas.TamperResponse)
def tamper_record(
    index: int,
    payload: ledger_schemas.TamperRequest,
    app_service: GridChainApplication = Depends(dependencies.get_application_service),
) -> ledger_schemas.TamperResponse:
    """
    Replace a record's payload without resealing it.

    Returns ``changed: false`` when the new payload serializes identically.

    Raises:
        HTTPException 404: If no record has this index.
        HTTPException 422: If the payload cannot be serialized.
    """
    try:
        result = app_service.tamper(index, payload.payload)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SerializationError as exc:
        raise HTTPException(status_code=422, detail=f"Malformed input: {exc}") from exc
    return ledger_schemas.TamperResponse(
        changed=result.changed,
        record=ledger_schemas.RecordResponse(**result.record.to_dict()),
    )
