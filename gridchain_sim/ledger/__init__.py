"""
Hash-chained, append-only record store and its integrity audit.
"""

from __future__ import annotations

from .chain import Ledger, TamperResult, format_timestamp
from .fingerprint import GENESIS_DIGEST, fingerprint
from .records import Payload, RawPayload, Record, coerce_payload, payload_tree, serialize_payload
from .validator import IntegrityReason, ValidationResult, validate_chain

__all__ = [
    "Ledger",
    "TamperResult",
    "format_timestamp",
    "GENESIS_DIGEST",
    "fingerprint",
    "Payload",
    "RawPayload",
    "Record",
    "coerce_payload",
    "payload_tree",
    "serialize_payload",
    "IntegrityReason",
    "ValidationResult",
    "validate_chain",
]
