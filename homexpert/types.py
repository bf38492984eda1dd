"""
Shared types for homexpert.

The vocabulary every engagement component speaks: who is acting, what time
it is, and how storage reports a lost compare-and-set.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

NowFn = Callable[[], datetime]


# === Shared Utility Functions ===


def utc_now() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(s: Optional[str]) -> Optional[datetime]:
    """Parse an ISO datetime string, assuming UTC when no offset is given."""
    if not s:
        return None
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def require_id(value: object, label: str) -> str:
    """Validate a record ID: a non-blank string."""
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string")
    if not value.strip():
        raise ValueError(f"{label} cannot be empty")
    return value


# === Actors ===


class ActorRole(str, Enum):
    """Which side of the marketplace an actor is on."""

    HOUSEHOLD = "household"
    HOUSEHELP = "househelp"

    @property
    def other(self) -> "ActorRole":
        if self is ActorRole.HOUSEHOLD:
            return ActorRole.HOUSEHELP
        return ActorRole.HOUSEHOLD


@dataclass(frozen=True)
class Actor:
    """Identity supplied by the auth collaborator for every call.

    The core trusts this value; it never authenticates on its own.
    """

    actor_id: str
    role: ActorRole

    def __post_init__(self):
        if not self.actor_id or not str(self.actor_id).strip():
            raise ValueError("Actor ID cannot be empty")
        if not isinstance(self.role, ActorRole):
            object.__setattr__(self, "role", ActorRole(self.role))

    @classmethod
    def household(cls, actor_id: str) -> "Actor":
        return cls(actor_id, ActorRole.HOUSEHOLD)

    @classmethod
    def househelp(cls, actor_id: str) -> "Actor":
        return cls(actor_id, ActorRole.HOUSEHELP)

    @property
    def is_household(self) -> bool:
        return self.role is ActorRole.HOUSEHOLD


# === Errors ===


class VersionConflictError(Exception):
    """Raised when a record's version doesn't match the expected version.

    This indicates a concurrent modification - another writer updated the
    record between when we read it and when we tried to save our changes.
    """

    def __init__(self, table: str, key: str, expected_version: int, actual_version: int):
        self.table = table
        self.key = key
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict on {table}/{key}: "
            f"expected version {expected_version}, found {actual_version}"
        )
