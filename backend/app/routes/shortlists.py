"""Shortlist routes.

Households save househelp profiles and unlock their contact details.
"""

from datetime import datetime, timedelta

from fastapi import APIRouter, Query, Request, Response, status
from pydantic import BaseModel, Field

from homexpert.engagement import ProfileLock, ShortlistEntry

from ..auth import CurrentHousehold
from ..database import Engagement
from ..logging_config import get_logger
from ..rate_limit import limiter

logger = get_logger("homexpert.api.shortlists")
router = APIRouter(prefix="/api/v1/shortlists", tags=["shortlists"])


# =============================================================================
# Request/Response Models
# =============================================================================


class ShortlistCreate(BaseModel):
    """Request to shortlist a profile."""

    profile_id: str = Field(..., min_length=1, max_length=100)


class ShortlistEntryResponse(BaseModel):
    """A shortlisted profile with its lock state."""

    household_id: str
    profile_id: str
    created_at: datetime
    is_locked: bool
    lock_expires_at: datetime | None = None
    locked_by_household_id: str | None = None


class ShortlistListResponse(BaseModel):
    entries: list[ShortlistEntryResponse]
    limit: int
    offset: int


class ExistsResponse(BaseModel):
    exists: bool


class UnlockStatusResponse(BaseModel):
    unlocked: bool
    unlocked_by_me: bool
    expires_at: datetime | None = None


class UnlockRequest(BaseModel):
    """Unlock a profile once billing has confirmed the purchase."""

    profile_id: str = Field(..., min_length=1, max_length=100)
    duration_days: float | None = Field(None, gt=0, le=365)


class ProfileLockResponse(BaseModel):
    profile_id: str
    household_id: str
    locked_at: datetime
    expires_at: datetime
    source: str


def to_entry_response(entry: ShortlistEntry) -> ShortlistEntryResponse:
    return ShortlistEntryResponse(**entry.to_dict())


def to_lock_response(lock: ProfileLock) -> ProfileLockResponse:
    return ProfileLockResponse(**lock.to_dict())


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=ShortlistEntryResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def add_to_shortlist(
    request: Request,
    body: ShortlistCreate,
    household: CurrentHousehold,
    engagement: Engagement,
):
    """Shortlist a profile. Fails with 409 if another household has it locked."""
    logger.info(f"POST /shortlists | household={household.actor_id} | profile={body.profile_id}")
    entry = engagement.ledger.add_entry(household.actor_id, body.profile_id)
    return to_entry_response(entry)


@router.get("/mine", response_model=ShortlistListResponse)
@limiter.limit("60/minute")
def list_my_shortlist(
    request: Request,
    household: CurrentHousehold,
    engagement: Engagement,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """The household's shortlist, newest first."""
    logger.info(f"GET /shortlists/mine | household={household.actor_id}")
    entries = engagement.ledger.list_entries(household.actor_id, offset=offset, limit=limit)
    return ShortlistListResponse(
        entries=[to_entry_response(e) for e in entries],
        limit=limit,
        offset=offset,
    )


@router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def remove_from_shortlist(
    request: Request,
    profile_id: str,
    household: CurrentHousehold,
    engagement: Engagement,
):
    """Remove a profile from the shortlist, releasing any lock on it."""
    logger.info(f"DELETE /shortlists/{profile_id} | household={household.actor_id}")
    engagement.ledger.remove_entry(household.actor_id, profile_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/exists/{profile_id}", response_model=ExistsResponse)
@limiter.limit("60/minute")
def shortlist_exists(
    request: Request,
    profile_id: str,
    household: CurrentHousehold,
    engagement: Engagement,
):
    return ExistsResponse(exists=engagement.ledger.exists(household.actor_id, profile_id))


@router.get("/unlock-status/{profile_id}", response_model=UnlockStatusResponse)
@limiter.limit("60/minute")
def unlock_status(
    request: Request,
    profile_id: str,
    household: CurrentHousehold,
    engagement: Engagement,
):
    """Whether the profile is unlocked, and whether by the caller."""
    result = engagement.check_status(profile_id, household.actor_id)
    return UnlockStatusResponse(**result.to_dict())


@router.post("/unlock", response_model=ProfileLockResponse)
@limiter.limit("10/minute")
def unlock_profile(
    request: Request,
    body: UnlockRequest,
    household: CurrentHousehold,
    engagement: Engagement,
):
    """
    Lock a profile to the household after a confirmed unlock purchase.

    Payment is handled by the billing service before this is called.
    Unlocking again while holding the lock extends it.
    """
    logger.info(
        f"POST /shortlists/unlock | household={household.actor_id} | profile={body.profile_id}"
    )
    duration = timedelta(days=body.duration_days) if body.duration_days else None
    lock = engagement.ledger.lock(household.actor_id, body.profile_id, duration)
    return to_lock_response(lock)
