from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Sequence

from .fingerprint import fingerprint
from .records import Record, serialize_payload


class IntegrityReason(str, Enum):
    LINK_BROKEN = "LINK_BROKEN"
    DATA_TAMPERED = "DATA_TAMPERED"


_MESSAGES = {
    IntegrityReason.LINK_BROKEN: "Broken Link: Previous hash mismatch",
    IntegrityReason.DATA_TAMPERED: "Data Tampered: Hash mismatch",
}


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of a chain audit. An invalid result is a normal return value.

    Attributes:
        valid: True when no violation was found.
        error_index: Index of the first violating record.
        reason: Which check failed at ``error_index``.
    """
    valid: bool
    error_index: int | None = None
    reason: IntegrityReason | None = None

    @property
    def message(self) -> str | None:
        return _MESSAGES.get(self.reason) if self.reason else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "error_index": self.error_index,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }


def validate_chain(chain: Sequence[Record]) -> ValidationResult:
    """
    Audit link and content integrity in a single forward pass.

    Genesis has no link to check. A lone genesis record is trusted as is, so a
    single-record chain is always valid, even after its payload was replaced.
    Once a successor is anchored to it, genesis must still match its own
    digest, so the same tampered record is reported as DATA_TAMPERED at index
    0 as soon as the chain grows. From index 1 on, each record is first
    checked for a matching ``prev_digest`` and then for a digest that still
    matches its fields. The first failure stops the scan.

    Args:
        chain: Records in chain order, typically ``Ledger.records()``.

    Returns:
        ValidationResult; ``valid=True`` for empty and single-record chains.
    """
    if len(chain) < 2:
        return ValidationResult(True)

    if not _content_matches(chain[0]):
        return ValidationResult(False, 0, IntegrityReason.DATA_TAMPERED)

    for i in range(1, len(chain)):
        current = chain[i]
        previous = chain[i - 1]

        if current.prev_digest != previous.digest:
            return ValidationResult(False, i, IntegrityReason.LINK_BROKEN)

        if not _content_matches(current):
            return ValidationResult(False, i, IntegrityReason.DATA_TAMPERED)

    return ValidationResult(True)


def _content_matches(record: Record) -> bool:
    recomputed = fingerprint(
        record.index,
        record.prev_digest,
        record.timestamp,
        serialize_payload(record.payload),
    )
    return recomputed == record.digest
