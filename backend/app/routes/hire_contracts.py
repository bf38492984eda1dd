"""Hire contract routes."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel, Field

from homexpert.engagement import HireContract

from ..auth import CurrentActor
from ..database import Engagement
from ..logging_config import get_logger
from ..rate_limit import limiter

logger = get_logger("homexpert.api.hire_contracts")
router = APIRouter(prefix="/api/v1/hire-contracts", tags=["hire-contracts"])


# =============================================================================
# Request/Response Models
# =============================================================================

ContractStatus = Literal["active", "completed", "terminated"]


class TerminateRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class ContractResponse(BaseModel):
    """Contract details."""

    id: str
    hire_request_id: str
    household_id: str
    househelp_id: str
    actual_salary: Decimal
    salary_frequency: str
    job_type: str
    work_schedule: dict[str, dict[str, bool]]
    contract_start_date: date
    contract_end_date: date | None = None
    status: ContractStatus
    termination_reason: str | None = None
    terminated_by: str | None = None
    completed_by: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    terminated_at: datetime | None = None


class ContractListResponse(BaseModel):
    contracts: list[ContractResponse]
    total: int


def to_contract_response(contract: HireContract) -> ContractResponse:
    return ContractResponse(**contract.to_dict())


# =============================================================================
# Endpoints
# =============================================================================


@router.get("", response_model=ContractListResponse)
@limiter.limit("60/minute")
def list_contracts(
    request: Request,
    actor: CurrentActor,
    engagement: Engagement,
    status_filter: ContractStatus | None = Query(None, alias="status"),
):
    logger.info(f"GET /hire-contracts | actor={actor.actor_id} | status={status_filter}")
    contracts = engagement.contracts.list_for_actor(actor, status=status_filter)
    return ContractListResponse(
        contracts=[to_contract_response(c) for c in contracts],
        total=len(contracts),
    )


@router.get("/{contract_id}", response_model=ContractResponse)
@limiter.limit("60/minute")
def get_contract(
    request: Request,
    contract_id: str,
    actor: CurrentActor,
    engagement: Engagement,
):
    return to_contract_response(engagement.contracts.get(contract_id, actor))


@router.post("/{contract_id}/complete", response_model=ContractResponse)
@limiter.limit("10/minute")
def complete_contract(
    request: Request,
    contract_id: str,
    actor: CurrentActor,
    engagement: Engagement,
):
    """Mark the contract as completed. Either party may complete it."""
    logger.info(f"POST /hire-contracts/{contract_id}/complete | actor={actor.actor_id}")
    return to_contract_response(engagement.contracts.complete(contract_id, actor))


@router.post("/{contract_id}/terminate", response_model=ContractResponse)
@limiter.limit("10/minute")
def terminate_contract(
    request: Request,
    contract_id: str,
    body: TerminateRequest,
    actor: CurrentActor,
    engagement: Engagement,
):
    """
    End the contract early.

    The household's lock on the househelp's profile is released.
    """
    logger.info(f"POST /hire-contracts/{contract_id}/terminate | actor={actor.actor_id}")
    return to_contract_response(engagement.contracts.terminate(contract_id, actor, body.reason))
