"""Shortlist subsystem.

Models:
- ShortlistEntry: A household's saved interest in a househelp profile
- ProfileLock: The exclusive, time-boxed lock on a profile
- UnlockStatus: Result of a status check
- LockSource: What granted a lock

Service:
- ShortlistLedger: add/remove entries, lock/release profiles, lazy expiry
"""

from homexpert.engagement.shortlist.ledger import ShortlistLedger
from homexpert.engagement.shortlist.models import (
    LockSource,
    ProfileLock,
    ShortlistEntry,
    UnlockStatus,
)

__all__ = [
    "ShortlistEntry",
    "ProfileLock",
    "UnlockStatus",
    "LockSource",
    "ShortlistLedger",
]
