"""Uniqueness claims keyed by household/househelp pair.

A claim row exists while its holder (an open hire request, an active
contract) is live. Acquiring one is ``insert_if_absent``; a claim whose
holder has since become terminal or expired is stale and is reclaimed with
a version-checked delete, so two racing claimants cannot both win.

The claim is written before its holder's record. A claim whose holder
record is missing belongs to a writer still in flight, and only counts as
stale once it is older than ``ORPHANED_CLAIM_AGE``.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from homexpert.types import parse_datetime, utc_now

from .storage.base import PAIR_CLAIMS_TABLE, EngagementStorage

logger = logging.getLogger(__name__)

MAX_CLAIM_ATTEMPTS = 3
ORPHANED_CLAIM_AGE = timedelta(minutes=5)

# Returns True/False for a known holder, None when the holder record is missing
StaleCheck = Callable[[str], Optional[bool]]


def _is_orphaned(data: Dict[str, Any], now: datetime) -> bool:
    claimed_at = parse_datetime(data.get("claimed_at"))
    if claimed_at is None:
        return True
    return now - claimed_at >= ORPHANED_CLAIM_AGE


def acquire_claim(
    storage: EngagementStorage,
    key: str,
    holder_id: str,
    is_stale: StaleCheck,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Try to claim ``key`` for ``holder_id``.

    Returns None when the claim is held by ``holder_id`` afterwards, or the ID
    of the live holder that blocks it. ``now`` stamps the claim and ages
    orphaned ones (default: wall clock).
    """
    now = now or utc_now()
    holder: Optional[str] = None
    for _ in range(MAX_CLAIM_ATTEMPTS):
        data = {"holder_id": holder_id, "claimed_at": now.isoformat()}
        if storage.insert_if_absent(PAIR_CLAIMS_TABLE, key, data):
            return None

        current = storage.get(PAIR_CLAIMS_TABLE, key)
        if current is None:
            continue
        holder = current.data["holder_id"]
        if holder == holder_id:
            return None
        stale = is_stale(holder)
        if stale is None:
            stale = _is_orphaned(current.data, now)
        if not stale:
            return holder
        if storage.delete_if_version_matches(PAIR_CLAIMS_TABLE, key, current.version):
            logger.debug(f"Reclaimed stale claim {key} from {holder}")

    logger.warning(f"Gave up acquiring claim {key} after {MAX_CLAIM_ATTEMPTS} attempts")
    return holder


def release_claim(storage: EngagementStorage, key: str, holder_id: str) -> bool:
    """Drop the claim if ``holder_id`` still holds it."""
    current = storage.get(PAIR_CLAIMS_TABLE, key)
    if current is None or current.data.get("holder_id") != holder_id:
        return False
    return storage.delete_if_version_matches(PAIR_CLAIMS_TABLE, key, current.version)


def claim_holder(storage: EngagementStorage, key: str) -> Optional[str]:
    current = storage.get(PAIR_CLAIMS_TABLE, key)
    return current.data.get("holder_id") if current else None
