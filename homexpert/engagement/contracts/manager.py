"""
Contract manager.

Turns an accepted hire request into an active contract and runs the
contract to completion or termination.

At most one active contract exists per household/househelp pair: the
active contract holds the pair's contract claim. A request is tied to the
single contract made from it by a second claim, so finalizing the same
request twice fails even after the first contract has ended.
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Tuple

from homexpert.engagement.audit import StateTransition, list_transitions, record_transition
from homexpert.engagement.claims import acquire_claim, claim_holder, release_claim
from homexpert.engagement.config import EngagementConfig
from homexpert.engagement.errors import (
    DuplicateActiveContractError,
    EngagementError,
    InvalidSourceStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from homexpert.engagement.events import DomainEvent, EventSink, EventType
from homexpert.engagement.hiring.engine import HireRequestEngine
from homexpert.engagement.hiring.models import HireRequestStatus
from homexpert.engagement.pii import redact_contact_details
from homexpert.engagement.storage.base import (
    CONTRACTS_TABLE,
    PAIR_CLAIMS_TABLE,
    EngagementStorage,
    contract_claim_key,
    contract_for_request_key,
    pair_lock_key,
    request_claim_key,
)
from homexpert.engagement.storage.locks import KeyedLocks
from homexpert.types import Actor, NowFn, VersionConflictError, utc_now

from .models import ContractStatus, HireContract

logger = logging.getLogger(__name__)

ENTITY_TYPE = "contract"


class ContractManager:
    """Contract lifecycle: active -> completed | terminated."""

    def __init__(
        self,
        storage: EngagementStorage,
        engine: HireRequestEngine,
        ledger=None,
        config: Optional[EngagementConfig] = None,
        locks: Optional[KeyedLocks] = None,
        events: Optional[EventSink] = None,
        now_fn: Optional[NowFn] = None,
    ):
        self.storage = storage
        self.engine = engine
        self.ledger = ledger
        self.config = config or EngagementConfig()
        self.locks = locks or engine.locks
        self.events = events
        self._now = now_fn or utc_now

    # === Creation ===

    def create_from_request(
        self,
        hire_request_id: str,
        actor: Optional[Actor] = None,
        notes: Optional[str] = None,
        contract_start_date: Optional[date] = None,
    ) -> HireContract:
        """Create the active contract for an accepted hire request.

        The contract copies the terms on the table when the request was
        accepted. ``actor`` is None when finalizing automatically.

        Raises:
            NotFoundError: Unknown request, or actor is not a participant
            InvalidSourceStateError: Request is not accepted, or its contract
                has already ended
            DuplicateActiveContractError: The pair already has an active
                contract (``existing_id`` points at it)
        """
        notes = self._clean_text(notes, "Notes")
        source = self.engine.get(hire_request_id, actor)

        with self.locks.hold(pair_lock_key(source.household_id, source.househelp_id)):
            request = self.engine.get(hire_request_id, actor)
            if request.status != HireRequestStatus.ACCEPTED.value:
                raise InvalidSourceStateError(
                    f"Only accepted hire requests can become contracts (this one is {request.status})"
                )

            existing_id = claim_holder(self.storage, contract_for_request_key(request.id))
            if existing_id:
                existing = self.storage.get(CONTRACTS_TABLE, existing_id)
                if existing is None or existing.data.get("status") == ContractStatus.ACTIVE.value:
                    raise DuplicateActiveContractError(
                        "A contract already exists for this hire request",
                        existing_id=existing_id,
                    )
                raise InvalidSourceStateError(
                    "The contract for this hire request has already ended",
                    existing_id=existing_id,
                )

            now = self._now()
            start = contract_start_date or request.start_date or now.date()
            try:
                contract = HireContract.from_request(request, start, now, notes=notes)
            except ValueError as e:
                raise ValidationError(str(e)) from e

            pair_key = contract_claim_key(request.household_id, request.househelp_id)
            blocking = acquire_claim(
                self.storage, pair_key, contract.id, is_stale=self._claim_is_stale, now=now
            )
            if blocking:
                raise DuplicateActiveContractError(
                    "You already have an active contract with this househelp",
                    existing_id=blocking,
                )
            source_data = {"holder_id": contract.id, "claimed_at": now.isoformat()}
            if not self.storage.insert_if_absent(
                PAIR_CLAIMS_TABLE, contract_for_request_key(request.id), source_data
            ):
                release_claim(self.storage, pair_key, contract.id)
                raise DuplicateActiveContractError(
                    "A contract already exists for this hire request",
                    existing_id=claim_holder(self.storage, contract_for_request_key(request.id)),
                )

            self.storage.insert_if_absent(CONTRACTS_TABLE, contract.id, contract.to_dict())
            # The accepted request held the pair until now
            release_claim(
                self.storage,
                request_claim_key(request.household_id, request.househelp_id),
                request.id,
            )
            record_transition(
                self.storage,
                ENTITY_TYPE,
                contract.id,
                None,
                contract.status,
                actor_id=actor.actor_id if actor else None,
                actor_role=actor.role.value if actor else None,
                metadata={"hire_request_id": request.id},
                created_at=now,
            )

        logger.info(
            f"Contract created | id={contract.id} | request={request.id} "
            f"| household={contract.household_id} | househelp={contract.househelp_id}"
        )
        self._emit(
            EventType.CONTRACT_CREATED,
            contract,
            actor,
            {
                "hire_request_id": request.id,
                "actual_salary": str(contract.actual_salary),
                "salary_frequency": contract.salary_frequency,
                "contract_start_date": contract.contract_start_date.isoformat(),
            },
        )
        return contract

    # === Transitions ===

    def complete(self, contract_id: str, actor: Actor) -> HireContract:
        """Mark an active contract as completed. Either party may complete."""

        def _complete(contract: HireContract) -> Dict[str, Any]:
            contract.completed_by = actor.role.value
            contract.completed_at = contract.updated_at
            return {}

        return self._finish(
            contract_id, actor, ContractStatus.COMPLETED, _complete, EventType.CONTRACT_COMPLETED
        )

    def terminate(self, contract_id: str, actor: Actor, reason: str) -> HireContract:
        """End an active contract early. Either party may terminate; a reason is required.

        The profile lock held for the pair is released so the househelp
        becomes available again.
        """
        reason = self._clean_text(reason, "Reason")
        if not reason:
            raise ValidationError("A reason is required to terminate a contract")

        def _terminate(contract: HireContract) -> Dict[str, Any]:
            contract.termination_reason = reason
            contract.terminated_by = actor.role.value
            contract.terminated_at = contract.updated_at
            return {"reason": reason, "terminated_by": actor.role.value}

        return self._finish(
            contract_id, actor, ContractStatus.TERMINATED, _terminate, EventType.CONTRACT_TERMINATED
        )

    def _finish(
        self,
        contract_id: str,
        actor: Actor,
        target: ContractStatus,
        change: Callable[[HireContract], Dict[str, Any]],
        event_type: EventType,
    ) -> HireContract:
        """Move an active contract to ``target`` and free the pair."""
        contract, _ = self._load(contract_id, actor)
        with self.locks.hold(pair_lock_key(contract.household_id, contract.househelp_id)):
            contract, version = self._load(contract_id, actor)
            if not contract.can_transition_to(target):
                raise InvalidTransitionError(f"This contract is already {contract.status}")

            previous = contract.status
            now = self._now()
            contract.updated_at = now
            contract.contract_end_date = max(now.date(), contract.contract_start_date)
            payload = change(contract)
            contract.status = target.value
            try:
                self.storage.put_if_version_matches(
                    CONTRACTS_TABLE, contract.id, contract.to_dict(), version
                )
            except VersionConflictError as e:
                logger.warning(f"Concurrent update on contract {contract.id}: {e}")
                raise InvalidTransitionError(
                    "This contract was updated by someone else. Refresh and try again."
                ) from e
            release_claim(
                self.storage,
                contract_claim_key(contract.household_id, contract.househelp_id),
                contract.id,
            )
            record_transition(
                self.storage,
                ENTITY_TYPE,
                contract.id,
                previous,
                contract.status,
                actor_id=actor.actor_id,
                actor_role=actor.role.value,
                metadata=payload,
                created_at=now,
            )

        logger.info(
            f"Contract {contract.status} | id={contract.id} | actor={actor.actor_id} "
            f"| role={actor.role.value}"
        )
        self._release_profile_lock(contract)
        self._emit(event_type, contract, actor, payload)
        return contract

    def _release_profile_lock(self, contract: HireContract) -> None:
        """Free the househelp's profile. The contract has already ended."""
        if self.ledger is None:
            return
        try:
            self.ledger.release(
                contract.household_id, contract.househelp_id, reason=f"contract_{contract.status}"
            )
        except EngagementError as e:
            logger.warning(
                f"Contract {contract.id} {contract.status} but could not release profile "
                f"{contract.househelp_id}: {e}"
            )

    # === Reads ===

    def get(self, contract_id: str, actor: Optional[Actor] = None) -> HireContract:
        """Get a contract. Non-participants get NotFoundError."""
        contract, _ = self._load(contract_id, actor)
        return contract

    def list_for_actor(self, actor: Actor, status: Optional[str] = None) -> List[HireContract]:
        """Contracts the actor is party to, newest first."""
        if status is not None:
            try:
                status = ContractStatus(status).value
            except ValueError as e:
                raise ValidationError(f"Invalid status filter: {status}") from e

        field_name = "household_id" if actor.is_household else "househelp_id"
        equals = {field_name: actor.actor_id}
        if status is not None:
            equals["status"] = status
        contracts = [
            HireContract.from_dict(r.data) for r in self.storage.find(CONTRACTS_TABLE, **equals)
        ]
        contracts.sort(key=lambda c: c.created_at or utc_now(), reverse=True)
        return contracts

    def active_contract_for(self, household_id: str, househelp_id: str) -> Optional[HireContract]:
        holder = claim_holder(self.storage, contract_claim_key(household_id, househelp_id))
        if holder is None:
            return None
        record = self.storage.get(CONTRACTS_TABLE, holder)
        if record is None:
            return None
        contract = HireContract.from_dict(record.data)
        return contract if contract.is_active else None

    def transitions(self, contract_id: str) -> List[StateTransition]:
        return list_transitions(self.storage, contract_id)

    # === Auto-finalize ===

    def on_request_accepted(self, event: DomainEvent) -> None:
        """Event handler creating the contract as soon as a request is accepted."""
        try:
            self.create_from_request(event.subject_id)
        except (DuplicateActiveContractError, InvalidSourceStateError) as e:
            logger.warning(f"Auto-finalize skipped for request {event.subject_id}: {e}")

    # === Internals ===

    def _load(self, contract_id: str, actor: Optional[Actor]) -> Tuple[HireContract, int]:
        record = self.storage.get(CONTRACTS_TABLE, contract_id) if contract_id else None
        if record is None:
            raise NotFoundError("Contract not found")
        contract = HireContract.from_dict(record.data)
        if actor is not None and not self._is_party(contract, actor):
            raise NotFoundError("Contract not found")
        return contract, record.version

    @staticmethod
    def _is_party(contract: HireContract, actor: Actor) -> bool:
        if actor.is_household:
            return contract.household_id == actor.actor_id
        return contract.househelp_id == actor.actor_id

    def _claim_is_stale(self, holder_id: str) -> Optional[bool]:
        record = self.storage.get(CONTRACTS_TABLE, holder_id)
        if record is None:
            return None
        return record.data.get("status") != ContractStatus.ACTIVE.value

    def _clean_text(self, text: Optional[str], label: str) -> Optional[str]:
        if text is None:
            return None
        text = text.strip()
        if not text:
            return None
        if len(text) > self.config.max_reason_length:
            raise ValidationError(
                f"{label} too long (max {self.config.max_reason_length} characters)"
            )
        if self.config.redact_contact_details:
            text = redact_contact_details(text)
        return text

    def _emit(
        self,
        event_type: EventType,
        contract: HireContract,
        actor: Optional[Actor],
        payload: Dict[str, Any],
    ) -> None:
        if self.events is None:
            return
        self.events.publish(
            DomainEvent(
                type=event_type,
                subject_id=contract.id,
                actor_id=actor.actor_id if actor else None,
                payload={
                    "household_id": contract.household_id,
                    "househelp_id": contract.househelp_id,
                    "hire_request_id": contract.hire_request_id,
                    "status": contract.status,
                    **payload,
                },
                occurred_at=self._now(),
            )
        )


