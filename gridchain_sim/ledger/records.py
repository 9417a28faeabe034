from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Union

from ..errors import SerializationError
from ..simulation.models import Snapshot


def _normalize_numbers(tree: Any) -> Any:
    """
    Write whole-valued floats as ints so ``50.0`` and ``50`` serialize alike.
    """
    if isinstance(tree, float):
        if math.isfinite(tree) and tree.is_integer():
            return int(tree)
        return tree
    if isinstance(tree, dict):
        return {key: _normalize_numbers(value) for key, value in tree.items()}
    if isinstance(tree, (list, tuple)):
        return [_normalize_numbers(value) for value in tree]
    return tree


def _canonical_json(tree: Any) -> str:
    try:
        return json.dumps(
            _normalize_numbers(tree),
            sort_keys=True,
            separators=(",", ":"),
            allow_nan=False,
            ensure_ascii=False,
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise SerializationError(f"Payload is not representable as JSON: {exc}") from exc


@dataclass(frozen=True)
class RawPayload:
    """
    Arbitrary JSON value injected by hand (manual records, tamper content).

    Stores the canonical JSON text so the payload cannot change after it was
    accepted; ``value`` decodes a fresh copy on every access.
    """
    text: str

    @classmethod
    def from_value(cls, value: Any) -> "RawPayload":
        """
        Raises:
            SerializationError: If ``value`` is not a finite JSON tree.
        """
        return cls(text=_canonical_json(value))

    @classmethod
    def from_json(cls, text: str) -> "RawPayload":
        """
        Parse user-supplied JSON text (the "malformed input" path).

        Raises:
            SerializationError: If ``text`` is not valid JSON.
        """
        try:
            value = json.loads(text)
        except ValueError as exc:
            raise SerializationError(f"Invalid JSON: {exc}") from exc
        return cls.from_value(value)

    @property
    def value(self) -> Any:
        return json.loads(self.text)


Payload = Union[Snapshot, RawPayload]


def coerce_payload(payload: Any) -> Payload:
    """
    Wrap anything that is not already a Snapshot or RawPayload as RawPayload.
    """
    if isinstance(payload, (Snapshot, RawPayload)):
        return payload
    return RawPayload.from_value(payload)


def payload_tree(payload: Payload) -> Any:
    """JSON tree of a payload, whichever variant it is."""
    if isinstance(payload, Snapshot):
        return payload.to_dict()
    return payload.value


def serialize_payload(payload: Payload) -> str:
    """
    Canonical JSON text fed to the fingerprint.

    A Snapshot and a RawPayload holding the same tree serialize identically.
    """
    if isinstance(payload, RawPayload):
        return payload.text
    return _canonical_json(payload_tree(payload))


@dataclass
class Record:
    """
    One ledger entry.

    Attributes:
        index: Position in the chain.
        timestamp: Creation time (ISO-8601 UTC, millisecond precision).
        payload: Snapshot or injected raw JSON.
        prev_digest: Digest of the preceding record, GENESIS_DIGEST for index 0.
        digest: Fingerprint fixed at creation time.
        tampered: Set by Ledger.tamper only; validation never reads it.
    """
    index: int
    timestamp: str
    payload: Payload
    prev_digest: str
    digest: str
    tampered: bool = False

    @property
    def kind(self) -> str:
        return "snapshot" if isinstance(self.payload, Snapshot) else "raw"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "kind": self.kind,
            "payload": payload_tree(self.payload),
            "prev_digest": self.prev_digest,
            "digest": self.digest,
            "tampered": self.tampered,
        }
