"""
Ledger schemas for API validation.

Records, audit results, manual injection and the tamper operation.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class RecordResponse(BaseModel):
    """
    One ledger record.

    Attributes:
        index: Position in the chain.
        timestamp: Creation time (ISO-8601 UTC).
        kind: "snapshot" for simulator records, "raw" for injected ones.
        payload: Payload JSON tree.
        prev_digest: Digest of the preceding record.
        digest: Digest sealed at creation time.
        tampered: True once the payload was overwritten.
    """

    index: int = Field(..., ge=0)
    timestamp: str
    kind: str
    payload: Any = None
    prev_digest: str
    digest: str
    tampered: bool = False


class ValidationResponse(BaseModel):
    """
    Audit outcome. ``reason`` is LINK_BROKEN or DATA_TAMPERED when invalid.
    """

    valid: bool
    error_index: Optional[int] = None
    reason: Optional[str] = None
    message: Optional[str] = None


class InjectRequest(BaseModel):
    """
    Manual record injection.

    Example:
        ```python
        # POST /api/chain/records
        {"payload": {"solar_output": 500, "load_consumption": 0,
                     "battery": {"soc": 100, "status": "IDLE"},
                     "grid_exchange": 500}}
        ```
    """

    payload: Any = Field(..., description="Any JSON value")


class TamperRequest(BaseModel):
    payload: Any = Field(..., description="Replacement payload (any JSON value)")


class TamperResponse(BaseModel):
    changed: bool = Field(..., description="False when the payload was identical")
    record: RecordResponse
