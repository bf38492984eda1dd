"""Hire request routes.

Households send offers to househelps; both sides counter-offer in turn
until one of them accepts or declines.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field

from homexpert.engagement import HireRequest

from ..auth import CurrentActor, CurrentHousehold
from ..database import Engagement
from ..logging_config import get_logger
from ..rate_limit import limiter
from .hire_contracts import ContractResponse, to_contract_response

logger = get_logger("homexpert.api.hire_requests")
router = APIRouter(prefix="/api/v1/hire-requests", tags=["hire-requests"])


# =============================================================================
# Request/Response Models
# =============================================================================

HireRequestStatus = Literal["pending", "negotiating", "accepted", "declined", "withdrawn", "expired"]
Schedule = dict[str, dict[str, bool]]


class HireRequestCreate(BaseModel):
    """Request to send a hire request to a househelp."""

    househelp_id: str = Field(..., min_length=1, max_length=100)
    job_type: str
    salary_offered: Decimal
    salary_frequency: str = "monthly"
    work_schedule: Schedule | None = None
    start_date: date | None = None
    special_requirements: str | None = None
    terms_accepted: bool = False


class NegotiateRequest(BaseModel):
    """A counter-offer. Omitted fields keep the terms on the table."""

    salary_offered: Decimal
    salary_frequency: str | None = None
    work_schedule: Schedule | None = None
    message: str | None = None


class DeclineRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class FinalizeRequest(BaseModel):
    """Turn an accepted request into a contract."""

    notes: str | None = None
    contract_start_date: date | None = None


class NegotiationResponse(BaseModel):
    id: str
    proposed_by: str
    actor_id: str
    salary_offered: Decimal
    salary_frequency: str | None = None
    work_schedule: Schedule | None = None
    message: str | None = None
    created_at: datetime


class TermsResponse(BaseModel):
    """Terms currently on the table."""

    salary_offered: Decimal
    salary_frequency: str
    work_schedule: Schedule
    proposed_by: str


class HireRequestResponse(BaseModel):
    """Hire request details."""

    id: str
    household_id: str
    househelp_id: str
    job_type: str
    salary_offered: Decimal
    salary_frequency: str
    work_schedule: Schedule
    terms_accepted: bool
    start_date: date | None = None
    special_requirements: str | None = None
    status: HireRequestStatus
    negotiations: list[NegotiationResponse]
    current_terms: TermsResponse
    awaiting_response_from: str | None = None
    decline_reason: str | None = None
    closed_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    expires_at: datetime | None = None
    accepted_at: datetime | None = None
    closed_at: datetime | None = None


class HireRequestListResponse(BaseModel):
    hire_requests: list[HireRequestResponse]
    total: int


class EligibilityResponse(BaseModel):
    can_hire: bool
    can_shortlist: bool
    reason: str | None = None
    existing_id: str | None = None


def to_request_response(hire_request: HireRequest) -> HireRequestResponse:
    data: dict[str, Any] = hire_request.to_dict()
    terms = hire_request.effective_terms()
    awaiting = hire_request.awaiting_response_from
    data["current_terms"] = TermsResponse(
        salary_offered=terms.salary_offered,
        salary_frequency=terms.salary_frequency,
        work_schedule=terms.work_schedule.to_dict(),
        proposed_by=terms.proposed_by,
    )
    data["awaiting_response_from"] = awaiting.value if awaiting else None
    return HireRequestResponse(**data)


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=HireRequestResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def create_hire_request(
    request: Request,
    body: HireRequestCreate,
    household: CurrentHousehold,
    engagement: Engagement,
):
    """
    Send a hire request.

    Fails with 409 ``duplicate_request`` while the pair already has an open
    request or an active contract; ``existing_id`` points at it.
    """
    logger.info(
        f"POST /hire-requests | household={household.actor_id} | househelp={body.househelp_id}"
    )
    created = engagement.engine.create(
        household,
        househelp_id=body.househelp_id,
        job_type=body.job_type,
        salary_offered=body.salary_offered,
        salary_frequency=body.salary_frequency,
        work_schedule=body.work_schedule,
        start_date=body.start_date,
        special_requirements=body.special_requirements,
        terms_accepted=body.terms_accepted,
    )
    logger.info(f"Hire request created | id={created.id} | household={household.actor_id}")
    return to_request_response(created)


@router.get("", response_model=HireRequestListResponse)
@limiter.limit("60/minute")
def list_hire_requests(
    request: Request,
    actor: CurrentActor,
    engagement: Engagement,
    status_filter: HireRequestStatus | None = Query(None, alias="status"),
):
    """Requests the caller sent (household) or received (househelp)."""
    logger.info(f"GET /hire-requests | actor={actor.actor_id} | status={status_filter}")
    requests = engagement.engine.list_for_actor(actor, status=status_filter)
    return HireRequestListResponse(
        hire_requests=[to_request_response(r) for r in requests],
        total=len(requests),
    )


@router.get("/eligibility/{househelp_id}", response_model=EligibilityResponse)
@limiter.limit("60/minute")
def hire_eligibility(
    request: Request,
    househelp_id: str,
    household: CurrentHousehold,
    engagement: Engagement,
):
    """Whether the household can send a request to / shortlist this househelp."""
    result = engagement.eligibility(household.actor_id, househelp_id)
    return EligibilityResponse(**result.to_dict())


@router.get("/{request_id}", response_model=HireRequestResponse)
@limiter.limit("60/minute")
def get_hire_request(
    request: Request,
    request_id: str,
    actor: CurrentActor,
    engagement: Engagement,
):
    return to_request_response(engagement.engine.get(request_id, actor))


@router.get("/{request_id}/negotiations", response_model=list[NegotiationResponse])
@limiter.limit("60/minute")
def list_negotiations(
    request: Request,
    request_id: str,
    actor: CurrentActor,
    engagement: Engagement,
):
    """The counter-offer log, oldest first."""
    return [
        NegotiationResponse(**n.to_dict())
        for n in engagement.engine.negotiations(request_id, actor)
    ]


@router.post("/{request_id}/accept", response_model=HireRequestResponse)
@limiter.limit("10/minute")
def accept_hire_request(
    request: Request,
    request_id: str,
    actor: CurrentActor,
    engagement: Engagement,
):
    """Accept the offer on the table. Only the party it was made to can accept."""
    logger.info(f"POST /hire-requests/{request_id}/accept | actor={actor.actor_id}")
    return to_request_response(engagement.engine.accept(request_id, actor))


@router.post("/{request_id}/decline", response_model=HireRequestResponse)
@limiter.limit("10/minute")
def decline_hire_request(
    request: Request,
    request_id: str,
    body: DeclineRequest,
    actor: CurrentActor,
    engagement: Engagement,
):
    logger.info(f"POST /hire-requests/{request_id}/decline | actor={actor.actor_id}")
    return to_request_response(engagement.engine.decline(request_id, actor, body.reason))


@router.post("/{request_id}/withdraw", response_model=HireRequestResponse)
@limiter.limit("10/minute")
def withdraw_hire_request(
    request: Request,
    request_id: str,
    actor: CurrentActor,
    engagement: Engagement,
):
    logger.info(f"POST /hire-requests/{request_id}/withdraw | actor={actor.actor_id}")
    return to_request_response(engagement.engine.withdraw(request_id, actor))


@router.post("/{request_id}/negotiate", response_model=HireRequestResponse)
@limiter.limit("20/minute")
def negotiate_hire_request(
    request: Request,
    request_id: str,
    body: NegotiateRequest,
    actor: CurrentActor,
    engagement: Engagement,
):
    """Counter-offer. Fails with 409 ``not_your_turn`` if the latest offer is yours."""
    logger.info(
        f"POST /hire-requests/{request_id}/negotiate | actor={actor.actor_id} "
        f"| salary={body.salary_offered}"
    )
    terms = body.model_dump()
    return to_request_response(engagement.engine.counter_offer(request_id, actor, terms))


@router.post(
    "/{request_id}/finalize",
    response_model=ContractResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("10/minute")
def finalize_hire_request(
    request: Request,
    request_id: str,
    body: FinalizeRequest,
    actor: CurrentActor,
    engagement: Engagement,
):
    """Create the contract for an accepted request."""
    logger.info(f"POST /hire-requests/{request_id}/finalize | actor={actor.actor_id}")
    contract = engagement.contracts.create_from_request(
        request_id,
        actor,
        notes=body.notes,
        contract_start_date=body.contract_start_date,
    )
    logger.info(f"Contract created | id={contract.id} | request={request_id}")
    return to_contract_response(contract)
