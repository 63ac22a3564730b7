"""Persistence adapters bound to a single session: entities, ledger, counters"""

from .entity_store import EntityStore
from .ledger import AuditLedger
from .counters import CounterProjection, CounterDrift

__all__ = ["EntityStore", "AuditLedger", "CounterProjection", "CounterDrift"]
