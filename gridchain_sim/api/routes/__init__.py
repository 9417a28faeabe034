"""
API route modules for the microgrid ledger application.

- simulation: driver state, ticks, start/pause, reset and configuration
- ledger: chain listing, audit, manual injection and tamper

All routers are prefixed with /api.
"""

from __future__ import annotations

from .ledger import router as ledger_router
from .simulation import router as simulation_router

__all__ = [
    "ledger_router",
    "simulation_router",
]
