"""
Exception hierarchy shared by the physics model, the ledger and the outer layers.

Integrity violations found by the chain validator are not exceptions: they are
returned as a :class:`~gridchain_sim.ledger.validator.ValidationResult`.
"""

from __future__ import annotations


class GridChainError(Exception):
    """Base class for all errors raised by gridchain_sim."""


class SerializationError(GridChainError):
    """
    A payload cannot be turned into canonical JSON.

    Raised by ``Ledger.append`` and ``Ledger.tamper`` before any state is
    touched, so the chain is left exactly as it was.
    """


class RecordNotFoundError(GridChainError, LookupError):
    """No record exists at the requested index."""

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"Record {index} not found (chain length {length})")
        self.index = index
        self.length = length


class ConfigurationError(GridChainError, ValueError):
    """
    Invalid microgrid configuration (for example a non-positive battery capacity).

    Treated as fatal by the physics step: it is propagated, never clamped.
    """
