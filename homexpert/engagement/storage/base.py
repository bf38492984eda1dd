"""Persistence contract for the engagement core.

The core needs exactly three write primitives from a backend, and every
invariant is built on them:

- ``insert_if_absent`` is the unique constraint (one lock per profile, one
  open request and one active contract per household/househelp pair).
- ``put_if_version_matches`` is compare-and-set; writers always re-read
  inside their critical section and write against the version they read.
- ``delete_if_version_matches`` releases a claim only if nobody replaced it.

Records are plain JSON-safe dicts; models own their (de)serialization.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

# Table names
SHORTLIST_TABLE = "shortlist_entries"
PROFILE_LOCKS_TABLE = "profile_locks"
HIRE_REQUESTS_TABLE = "hire_requests"
CONTRACTS_TABLE = "hire_contracts"
PAIR_CLAIMS_TABLE = "pair_claims"
TRANSITIONS_TABLE = "state_transitions"

ALL_TABLES = (
    SHORTLIST_TABLE,
    PROFILE_LOCKS_TABLE,
    HIRE_REQUESTS_TABLE,
    CONTRACTS_TABLE,
    PAIR_CLAIMS_TABLE,
    TRANSITIONS_TABLE,
)


@dataclass
class StoredRecord:
    """A record as persisted: payload plus its optimistic-concurrency version."""

    key: str
    data: Dict[str, Any] = field(default_factory=dict)
    version: int = 1


class EngagementStorage(Protocol):
    """Protocol for engagement persistence backends."""

    def get(self, table: str, key: str) -> Optional[StoredRecord]:
        """Get a record by key."""
        ...

    def insert_if_absent(self, table: str, key: str, data: Dict[str, Any]) -> bool:
        """Insert a record at version 1. Returns False if the key exists."""
        ...

    def put_if_version_matches(
        self, table: str, key: str, data: Dict[str, Any], expected_version: int
    ) -> int:
        """Replace a record if its version matches. Returns the new version.

        Raises VersionConflictError on mismatch (actual version -1 if missing).
        """
        ...

    def delete_if_version_matches(self, table: str, key: str, expected_version: int) -> bool:
        """Delete a record if its version matches. Returns True if deleted."""
        ...

    def find(self, table: str, **equals: Any) -> List[StoredRecord]:
        """Records whose payload fields equal the given values."""
        ...


def shortlist_key(household_id: str, profile_id: str) -> str:
    return f"{household_id}:{profile_id}"


def request_claim_key(household_id: str, househelp_id: str) -> str:
    """Claim held by the pair's open hire request, or its accepted one until the contract exists."""
    return f"request:{household_id}:{househelp_id}"


def contract_claim_key(household_id: str, househelp_id: str) -> str:
    """Claim held by the single active contract for a pair."""
    return f"contract:{household_id}:{househelp_id}"


def contract_for_request_key(hire_request_id: str) -> str:
    """Claim that ties a hire request to the one contract made from it."""
    return f"source:{hire_request_id}"


def pair_lock_key(household_id: str, househelp_id: str) -> str:
    return f"pair:{household_id}:{househelp_id}"


def profile_lock_key(profile_id: str) -> str:
    return f"profile:{profile_id}"
