from __future__ import annotations

from functools import lru_cache

from ..application import GridChainApplication


@lru_cache()
def get_application_service() -> GridChainApplication:
    """
    Provide the process-wide GridChainApplication (one ledger per process).
    """
    return GridChainApplication.from_settings()
