"""Persistence for the engagement core.

- EngagementStorage: the protocol (get / insert-if-absent / compare-and-set)
- InMemoryEngagementStorage: tests and local development
- SQLiteEngagementStorage: single-file durable storage
- KeyedLocks: per-key critical sections
"""

from .base import (
    CONTRACTS_TABLE,
    HIRE_REQUESTS_TABLE,
    PAIR_CLAIMS_TABLE,
    PROFILE_LOCKS_TABLE,
    SHORTLIST_TABLE,
    TRANSITIONS_TABLE,
    EngagementStorage,
    StoredRecord,
)
from .locks import KeyedLocks
from .memory import InMemoryEngagementStorage
from .sqlite import SQLiteEngagementStorage

__all__ = [
    "EngagementStorage",
    "StoredRecord",
    "InMemoryEngagementStorage",
    "SQLiteEngagementStorage",
    "KeyedLocks",
    "SHORTLIST_TABLE",
    "PROFILE_LOCKS_TABLE",
    "HIRE_REQUESTS_TABLE",
    "CONTRACTS_TABLE",
    "PAIR_CLAIMS_TABLE",
    "TRANSITIONS_TABLE",
]
