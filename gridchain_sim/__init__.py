from .errors import ConfigurationError, GridChainError, RecordNotFoundError, SerializationError
from .ledger import (
    GENESIS_DIGEST,
    IntegrityReason,
    Ledger,
    RawPayload,
    Record,
    TamperResult,
    ValidationResult,
    fingerprint,
    validate_chain,
)
from .simulation import (
    BatteryState,
    BatteryStatus,
    BatteryTransition,
    IrradianceService,
    MicrogridConfig,
    Snapshot,
    compute_load,
    compute_solar,
    step_battery,
    tilt_factor,
)
from .simulation.energy_simulator import MicrogridSimulator, PeriodicTicker, TickOutcome, compute_snapshot
from .result_builder import ResultBuilder
from .application import GridChainApplication

__all__ = [
    "ConfigurationError",
    "GridChainError",
    "RecordNotFoundError",
    "SerializationError",
    "GENESIS_DIGEST",
    "IntegrityReason",
    "Ledger",
    "RawPayload",
    "Record",
    "TamperResult",
    "ValidationResult",
    "fingerprint",
    "validate_chain",
    "BatteryState",
    "BatteryStatus",
    "BatteryTransition",
    "IrradianceService",
    "MicrogridConfig",
    "Snapshot",
    "compute_load",
    "compute_solar",
    "step_battery",
    "tilt_factor",
    "MicrogridSimulator",
    "PeriodicTicker",
    "TickOutcome",
    "compute_snapshot",
    "ResultBuilder",
    "GridChainApplication",
]
