from __future__ import annotations

import hashlib

DIGEST_HEX_LENGTH = 64

GENESIS_DIGEST = "0" * DIGEST_HEX_LENGTH
"""prev_digest of the record at index 0; no SHA-256 output is all zeros in practice."""


def fingerprint(index: int, prev_digest: str, timestamp: str, serialized_payload: str) -> str:
    """
    Integrity digest of a record's fields.

    SHA-256 over ``f"{index}{prev_digest}{timestamp}{serialized_payload}"``.
    The digest is an integrity indicator for the simulated ledger; nothing
    relies on it being collision resistant.

    Args:
        index: Record position in the chain.
        prev_digest: Digest of the preceding record (or GENESIS_DIGEST).
        timestamp: Record creation timestamp string.
        serialized_payload: Canonical JSON text of the payload.

    Returns:
        64 lowercase hex characters.
    """
    material = f"{index}{prev_digest}{timestamp}{serialized_payload}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
