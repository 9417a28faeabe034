"""
In-memory hash-chained ledger of microgrid records.

The Ledger is the only owner of the record sequence. Every mutation
(append, tamper, reset) goes through one re-entrant lock so index assignment
and digest linkage stay race-free when the tick loop, the API and the CLI
share an instance. Readers get copies taken under the same lock.
"""

from __future__ import annotations

import logging
import operator
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Tuple

from ..errors import RecordNotFoundError
from .fingerprint import GENESIS_DIGEST, fingerprint
from .records import Payload, Record, coerce_payload, serialize_payload
from .validator import ValidationResult, validate_chain

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """
    ISO-8601 UTC with millisecond precision and a ``Z`` suffix.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class TamperResult:
    """
    Attributes:
        record: Copy of the targeted record after the operation.
        changed: False when the new payload serialized identically (no-op).
    """
    record: Record
    changed: bool


class Ledger:
    """
    Append-only chain of fingerprinted records.

    Args:
        clock: Source of record timestamps (UTC). Tests inject a fixed clock.

    Example:
        ```python
        ledger = Ledger()
        genesis = ledger.append(snapshot)
        ledger.append({"note": "manual entry"})
        assert ledger.validate().valid
        ```
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or _utc_now
        self._records: list[Record] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records())

    @property
    def last(self) -> Record | None:
        with self._lock:
            return replace(self._records[-1]) if self._records else None

    def records(self) -> Tuple[Record, ...]:
        """
        Point-in-time copy of the chain; later mutations do not affect it.
        """
        with self._lock:
            return tuple(replace(record) for record in self._records)

    def get(self, index: int) -> Record:
        """
        Raises:
            RecordNotFoundError: If no record has this index.
        """
        with self._lock:
            return replace(self._locate(index))

    def append(self, payload: Payload | Any) -> Record:
        """
        Seal a payload into a new record at the end of the chain.

        Args:
            payload: Snapshot, RawPayload, or any JSON value (stored as RawPayload).

        Returns:
            Copy of the appended record.

        Raises:
            SerializationError: If the payload cannot be serialized. The chain
                is not modified.
        """
        payload = coerce_payload(payload)
        serialized = serialize_payload(payload)

        with self._lock:
            index = len(self._records)
            prev_digest = self._records[-1].digest if self._records else GENESIS_DIGEST
            timestamp = format_timestamp(self._clock())
            record = Record(
                index=index,
                timestamp=timestamp,
                payload=payload,
                prev_digest=prev_digest,
                digest=fingerprint(index, prev_digest, timestamp, serialized),
            )
            self._records.append(record)
            logger.debug("Appended record %d (%s)", index, record.digest[:12])
            return replace(record)

    def tamper(self, index: int, new_payload: Payload | Any) -> TamperResult:
        """
        Replace a record's payload without resealing it (simulated attack).

        Digest, prev_digest, index and timestamp are left as they were, so the
        validator reports the record as DATA_TAMPERED.

        Args:
            index: Target record index.
            new_payload: Replacement payload.

        Returns:
            TamperResult; ``changed`` is False when the serialized payload is
            identical, in which case nothing is modified.

        Raises:
            RecordNotFoundError: If ``index`` is outside the chain.
            SerializationError: If ``new_payload`` cannot be serialized.
        """
        new_payload = coerce_payload(new_payload)
        serialized = serialize_payload(new_payload)

        with self._lock:
            record = self._locate(index)
            if serialize_payload(record.payload) == serialized:
                return TamperResult(record=replace(record), changed=False)
            record.payload = new_payload
            record.tampered = True
            logger.warning("Record %d payload replaced without resealing", index)
            return TamperResult(record=replace(record), changed=True)

    def reset(self) -> None:
        """
        Discard every record. The caller appends a new genesis afterwards.
        """
        with self._lock:
            dropped = len(self._records)
            self._records.clear()
        logger.info("Ledger reset, %d records discarded", dropped)

    def validate(self) -> ValidationResult:
        """Audit a snapshot of the current chain."""
        return validate_chain(self.records())

    def _locate(self, index: int) -> Record:
        if isinstance(index, bool):
            raise RecordNotFoundError(index, len(self._records))
        try:
            position = operator.index(index)
        except TypeError as exc:
            raise RecordNotFoundError(index, len(self._records)) from exc
        if not 0 <= position < len(self._records):
            raise RecordNotFoundError(index, len(self._records))
        return self._records[position]
