"""Shortlist data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from homexpert.engagement.expiry import is_live
from homexpert.types import parse_datetime, require_id


class LockSource(str, Enum):
    """What granted a profile lock."""

    PURCHASE = "purchase"  # Billing confirmed an unlock
    HIRE_ACCEPTED = "hire_accepted"  # A hire request for the pair was accepted


@dataclass
class ProfileLock:
    """The single authoritative exclusivity record for a profile.

    Keyed by profile ID, so at most one exists per profile. Acquisition and
    hand-over happen only through storage compare-and-set.
    """

    profile_id: str
    household_id: str
    locked_at: datetime
    expires_at: datetime
    source: str = LockSource.PURCHASE.value

    def __post_init__(self):
        if isinstance(self.source, LockSource):
            self.source = self.source.value
        if self.source not in {s.value for s in LockSource}:
            raise ValueError(f"Invalid lock source: {self.source}")
        if self.expires_at <= self.locked_at:
            raise ValueError("Lock must expire after it is taken")

    def is_active(self, now: datetime) -> bool:
        return is_live(self.expires_at, now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "household_id": self.household_id,
            "locked_at": self.locked_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProfileLock":
        return cls(
            profile_id=data["profile_id"],
            household_id=data["household_id"],
            locked_at=parse_datetime(data["locked_at"]),
            expires_at=parse_datetime(data["expires_at"]),
            source=data.get("source", LockSource.PURCHASE.value),
        )


@dataclass
class ShortlistEntry:
    """A household's saved interest in a househelp profile.

    The lock fields mirror the profile's lock while this household holds it.
    ``is_locked`` is stored as last written; use ``lock_active(now)`` for the
    lazily expired view.
    """

    household_id: str
    profile_id: str
    created_at: datetime
    is_locked: bool = False
    lock_expires_at: Optional[datetime] = None
    locked_by_household_id: Optional[str] = None

    def __post_init__(self):
        require_id(self.household_id, "Household ID")
        require_id(self.profile_id, "Profile ID")

    def lock_active(self, now: datetime) -> bool:
        return self.is_locked and is_live(self.lock_expires_at, now)

    def with_lock_evaluated(self, now: datetime) -> "ShortlistEntry":
        """Copy with lock fields cleared if the lock has lapsed."""
        if self.lock_active(now):
            return self
        return ShortlistEntry(
            household_id=self.household_id,
            profile_id=self.profile_id,
            created_at=self.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "household_id": self.household_id,
            "profile_id": self.profile_id,
            "created_at": self.created_at.isoformat(),
            "is_locked": self.is_locked,
            "lock_expires_at": self.lock_expires_at.isoformat() if self.lock_expires_at else None,
            "locked_by_household_id": self.locked_by_household_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShortlistEntry":
        return cls(
            household_id=data["household_id"],
            profile_id=data["profile_id"],
            created_at=parse_datetime(data["created_at"]),
            is_locked=bool(data.get("is_locked", False)),
            lock_expires_at=parse_datetime(data.get("lock_expires_at")),
            locked_by_household_id=data.get("locked_by_household_id"),
        )


@dataclass(frozen=True)
class UnlockStatus:
    """Answer to "can I see this profile's contact details?"."""

    unlocked: bool
    unlocked_by_me: bool
    expires_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unlocked": self.unlocked,
            "unlocked_by_me": self.unlocked_by_me,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
