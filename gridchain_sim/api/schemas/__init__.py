"""
Pydantic schemas for API request/response validation.

Organized by domain:
- ledger: records, audit results, injection and tamper requests
- simulation: configuration, snapshots, driver state and ticks
"""

from __future__ import annotations

from .ledger import (
    InjectRequest,
    RecordResponse,
    TamperRequest,
    TamperResponse,
    ValidationResponse,
)
from .simulation import (
    BatteryStateSchema,
    MicrogridConfigSchema,
    MicrogridConfigUpdate,
    SnapshotSchema,
    StateResponse,
    TickRequest,
    TickResponse,
    TickResult,
)

__all__ = [
    "InjectRequest",
    "RecordResponse",
    "TamperRequest",
    "TamperResponse",
    "ValidationResponse",
    "BatteryStateSchema",
    "MicrogridConfigSchema",
    "MicrogridConfigUpdate",
    "SnapshotSchema",
    "StateResponse",
    "TickRequest",
    "TickResponse",
    "TickResult",
]
