"""
Ledger — Финансовое состояние, атомарность и lifecycle корпораций.
"""

from src.ledger.ledger import Ledger, LedgerConfig, system_clock_ms
from src.ledger.lifecycle import (
    CorporateLifecycle,
    FoundingStructure,
    FoundingTerms,
    LifecycleConfig,
)

__all__ = [
    "Ledger",
    "LedgerConfig",
    "system_clock_ms",
    "CorporateLifecycle",
    "FoundingStructure",
    "FoundingTerms",
    "LifecycleConfig",
]
