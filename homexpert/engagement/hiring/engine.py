"""
Hire request engine.

Offer, counter-offer and acceptance between one household and one househelp.

Invariants enforced here:
- At most one open (pending/negotiating) request per pair. The open request
  holds the pair's request claim; a second ``create`` finds the claim held
  by a live request and fails with DuplicateRequestError.
- An accepted request keeps the claim until its contract is created, so no
  sibling can be created or accepted in between.
- No new request while the pair has an active contract.
- Counter-offers alternate: nobody answers their own offer.
- Terminal requests never change again.
- Expiry is evaluated lazily on every read and mutation.

All mutations for a pair run inside the pair's critical section and write
with compare-and-set against the version read inside it. Events are
published after the critical section is left.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from homexpert.engagement.audit import StateTransition, list_transitions, record_transition
from homexpert.engagement.claims import acquire_claim, claim_holder, release_claim
from homexpert.engagement.config import EngagementConfig
from homexpert.engagement.errors import (
    AlreadyLockedError,
    DuplicateRequestError,
    EngagementError,
    InvalidTransitionError,
    NotFoundError,
    NotYourTurnError,
    UnauthorizedError,
    ValidationError,
)
from homexpert.engagement.events import DomainEvent, EventSink, EventType
from homexpert.engagement.expiry import earliest, end_of_day, is_expired
from homexpert.engagement.pii import redact_contact_details
from homexpert.engagement.shortlist.models import LockSource
from homexpert.engagement.storage.base import (
    CONTRACTS_TABLE,
    HIRE_REQUESTS_TABLE,
    EngagementStorage,
    contract_claim_key,
    contract_for_request_key,
    pair_lock_key,
    request_claim_key,
)
from homexpert.engagement.storage.locks import KeyedLocks
from homexpert.types import Actor, ActorRole, NowFn, VersionConflictError, utc_now

from .models import (
    HireRequest,
    HireRequestStatus,
    Negotiation,
    NegotiationTerms,
    WorkSchedule,
)

logger = logging.getLogger(__name__)

ENTITY_TYPE = "hire_request"

Outbox = List[DomainEvent]


class HireRequestEngine:
    """Hire request state machine."""

    def __init__(
        self,
        storage: EngagementStorage,
        config: Optional[EngagementConfig] = None,
        locks: Optional[KeyedLocks] = None,
        events: Optional[EventSink] = None,
        now_fn: Optional[NowFn] = None,
        ledger=None,
    ):
        self.storage = storage
        self.config = config or EngagementConfig()
        self.locks = locks or KeyedLocks(timeout=self.config.lock_wait_timeout)
        self.events = events
        self._now = now_fn or utc_now
        # ShortlistLedger; locks the profile for the household on acceptance
        self.ledger = ledger

    # === Creation ===

    def create(
        self,
        actor: Actor,
        househelp_id: str,
        job_type: str,
        salary_offered: Any,
        salary_frequency: str = "monthly",
        work_schedule: Optional[Dict[str, Any]] = None,
        start_date: Optional[date] = None,
        special_requirements: Optional[str] = None,
        terms_accepted: bool = False,
    ) -> HireRequest:
        """Send a hire request from the acting household to a househelp.

        Raises:
            UnauthorizedError: Actor is not a household
            ValidationError: Bad terms, past start date, or terms not accepted
            DuplicateRequestError: An open request or active contract exists
                for the pair (``existing_id`` points at it)
        """
        if not actor.is_household:
            raise UnauthorizedError("Only households can send hire requests")

        now = self._now()
        request = self._build_request(
            actor,
            househelp_id,
            job_type,
            salary_offered,
            salary_frequency,
            work_schedule,
            start_date,
            special_requirements,
            terms_accepted,
            now,
        )
        household_id, househelp_id = request.household_id, request.househelp_id
        outbox: Outbox = []

        try:
            with self.locks.hold(pair_lock_key(household_id, househelp_id)):
                contract_id = self._active_contract_id(household_id, househelp_id)
                if contract_id:
                    raise DuplicateRequestError(
                        "You already have an active contract with this househelp",
                        existing_id=contract_id,
                    )

                blocking = acquire_claim(
                    self.storage,
                    request_claim_key(household_id, househelp_id),
                    request.id,
                    is_stale=lambda holder_id: self._claim_is_stale(holder_id, outbox),
                    now=now,
                )
                if blocking:
                    raise DuplicateRequestError(
                        "You already have an open or accepted hire request with this househelp",
                        existing_id=blocking,
                    )

                self.storage.insert_if_absent(HIRE_REQUESTS_TABLE, request.id, request.to_dict())
                record_transition(
                    self.storage,
                    ENTITY_TYPE,
                    request.id,
                    None,
                    request.status,
                    actor_id=actor.actor_id,
                    actor_role=actor.role.value,
                    created_at=now,
                )
                outbox.append(
                    self._event(
                        EventType.HIRE_REQUEST_CREATED,
                        request,
                        actor.actor_id,
                        {
                            "salary_offered": str(request.salary_offered),
                            "salary_frequency": request.salary_frequency,
                            "job_type": request.job_type,
                        },
                    )
                )
        finally:
            self._flush(outbox)

        logger.info(
            f"Hire request created | id={request.id} | household={household_id} "
            f"| househelp={househelp_id}"
        )
        return request

    def _build_request(
        self,
        actor: Actor,
        househelp_id: str,
        job_type: str,
        salary_offered: Any,
        salary_frequency: str,
        work_schedule: Optional[Dict[str, Any]],
        start_date: Optional[date],
        special_requirements: Optional[str],
        terms_accepted: bool,
        now: datetime,
    ) -> HireRequest:
        if terms_accepted is not True:
            raise ValidationError("You must accept the terms and conditions")
        if start_date is not None and start_date < now.date():
            raise ValidationError("Start date cannot be in the past")
        special_requirements = self._clean_text(
            special_requirements,
            self.config.max_special_requirements_length,
            "Special requirements",
        )

        try:
            request = HireRequest(
                id=str(uuid.uuid4()),
                household_id=actor.actor_id,
                househelp_id=househelp_id,
                job_type=job_type,
                salary_offered=salary_offered,
                salary_frequency=salary_frequency,
                work_schedule=(
                    WorkSchedule.from_dict(work_schedule)
                    if work_schedule is not None
                    else WorkSchedule.default()
                ),
                terms_accepted=True,
                start_date=start_date,
                special_requirements=special_requirements,
                created_at=now,
                updated_at=now,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        request.expires_at = earliest(
            now + self.config.request_ttl,
            end_of_day(start_date) if start_date else None,
        )
        return request

    # === Transitions ===

    def accept(self, request_id: str, actor: Actor) -> HireRequest:
        """Accept the offer currently on the table.

        Only the party the offer was made to can accept it. Acceptance also
        locks the profile for the household when the profile is free.

        Raises:
            NotFoundError: Unknown request or actor is not a participant
            InvalidTransitionError: Request is terminal or expired, or another
                request for the pair holds the open slot
            NotYourTurnError: Actor made the offer on the table
        """

        def _accept(request: HireRequest, now: datetime) -> Dict[str, Any]:
            if actor.role == request.last_proposer:
                raise NotYourTurnError(
                    "You made the latest offer. Wait for the other party to respond."
                )
            holder = claim_holder(
                self.storage, request_claim_key(request.household_id, request.househelp_id)
            )
            if holder != request.id:
                raise InvalidTransitionError(
                    "Another hire request between you is already being handled",
                    existing_id=holder,
                )
            request.accepted_at = now
            request.closed_by = actor.role.value
            terms = request.effective_terms()
            return {
                "salary_offered": str(terms.salary_offered),
                "salary_frequency": terms.salary_frequency,
                "job_type": request.job_type,
            }

        request = self._mutate(
            request_id, actor, HireRequestStatus.ACCEPTED, _accept, EventType.HIRE_REQUEST_ACCEPTED
        )
        self._lock_profile_on_acceptance(request)
        return request

    def decline(self, request_id: str, actor: Actor, reason: str) -> HireRequest:
        """Turn the request down. Either participant may decline; a reason is required."""
        reason = self._clean_text(reason, self.config.max_reason_length, "Reason")
        if not reason:
            raise ValidationError("A reason is required to decline a hire request")

        def _decline(request: HireRequest, now: datetime) -> Dict[str, Any]:
            request.decline_reason = reason
            request.closed_by = actor.role.value
            return {"reason": reason, "declined_by": actor.role.value}

        return self._mutate(
            request_id, actor, HireRequestStatus.DECLINED, _decline, EventType.HIRE_REQUEST_DECLINED
        )

    def withdraw(self, request_id: str, actor: Actor) -> HireRequest:
        """The requesting household takes its request back."""

        def _withdraw(request: HireRequest, now: datetime) -> Dict[str, Any]:
            if not actor.is_household:
                raise UnauthorizedError("Only the household that sent a request can withdraw it")
            request.closed_by = actor.role.value
            return {}

        return self._mutate(
            request_id,
            actor,
            HireRequestStatus.WITHDRAWN,
            _withdraw,
            EventType.HIRE_REQUEST_WITHDRAWN,
        )

    def counter_offer(self, request_id: str, actor: Actor, terms: Any) -> HireRequest:
        """Append a counter-offer and move the request to negotiating.

        ``terms`` is a NegotiationTerms or a mapping with the same fields.

        Raises:
            ValidationError: Bad terms
            NotYourTurnError: The latest offer is the actor's own
            InvalidTransitionError: Request is terminal or expired
        """
        terms = self._coerce_terms(terms)

        def _counter(request: HireRequest, now: datetime) -> Dict[str, Any]:
            if actor.role == request.last_proposer:
                raise NotYourTurnError(
                    "You made the latest offer. Wait for the other party to respond."
                )
            entry = Negotiation.from_terms(terms, actor.role, actor.actor_id, now)
            request.negotiations.append(entry)
            return {
                "negotiation_id": entry.id,
                "proposed_by": entry.proposed_by,
                "salary_offered": str(entry.salary_offered),
                "salary_frequency": entry.salary_frequency or request.salary_frequency,
            }

        return self._mutate(
            request_id,
            actor,
            HireRequestStatus.NEGOTIATING,
            _counter,
            EventType.HIRE_REQUEST_NEGOTIATED,
        )

    def _coerce_terms(self, terms: Any) -> NegotiationTerms:
        try:
            if not isinstance(terms, NegotiationTerms):
                terms = NegotiationTerms(**dict(terms))
            else:
                terms = NegotiationTerms(
                    salary_offered=terms.salary_offered,
                    salary_frequency=terms.salary_frequency,
                    work_schedule=terms.work_schedule,
                    message=terms.message,
                )
        except (TypeError, ValueError) as e:
            raise ValidationError(str(e)) from e
        terms.message = self._clean_text(terms.message, self.config.max_reason_length, "Message")
        return terms

    def _mutate(
        self,
        request_id: str,
        actor: Actor,
        target: HireRequestStatus,
        change: Callable[[HireRequest, datetime], Dict[str, Any]],
        event_type: EventType,
    ) -> HireRequest:
        """Move a request to ``target`` as read-modify-write inside the pair's critical section.

        ``change`` runs its own checks, fills in the transition's fields and
        returns the event payload.
        """
        outbox: Outbox = []
        try:
            with self._pair_section(request_id) as (request, version):
                self._require_participant(request, actor)
                now = self._now()
                if request.is_open and is_expired(request.expires_at, now):
                    self._expire(request, version, now, outbox)
                    raise InvalidTransitionError("This hire request has expired")
                if not request.can_transition_to(target):
                    raise InvalidTransitionError(f"This hire request is already {request.status}")

                previous = request.status
                payload = change(request, now)
                request.status = target.value
                request.updated_at = now
                if request.is_terminal:
                    request.closed_at = now
                self._save(request, version)
                # An accepted request holds the pair until its contract exists
                if request.is_terminal and target != HireRequestStatus.ACCEPTED:
                    release_claim(
                        self.storage,
                        request_claim_key(request.household_id, request.househelp_id),
                        request.id,
                    )
                record_transition(
                    self.storage,
                    ENTITY_TYPE,
                    request.id,
                    previous,
                    request.status,
                    actor_id=actor.actor_id,
                    actor_role=actor.role.value,
                    metadata=payload,
                    created_at=now,
                )
                outbox.append(self._event(event_type, request, actor.actor_id, payload))
        finally:
            self._flush(outbox)

        logger.info(
            f"Hire request {request.status} | id={request.id} | actor={actor.actor_id} "
            f"| role={actor.role.value}"
        )
        return request

    # === Reads ===

    def get(self, request_id: str, actor: Optional[Actor] = None) -> HireRequest:
        """Get a request, evaluating expiry. Non-participants get NotFoundError."""
        request, version = self._load(request_id)
        if actor is not None:
            self._require_participant(request, actor)
        return self._evaluate(request, version)

    def negotiations(self, request_id: str, actor: Actor) -> List[Negotiation]:
        return list(self.get(request_id, actor).negotiations)

    def transitions(self, request_id: str) -> List[StateTransition]:
        return list_transitions(self.storage, request_id)

    def list_for_actor(
        self, actor: Actor, status: Optional[str] = None
    ) -> List[HireRequest]:
        """Requests the actor sent (household) or received (househelp), newest first."""
        if status is not None:
            try:
                status = HireRequestStatus(status).value
            except ValueError as e:
                raise ValidationError(f"Invalid status filter: {status}") from e

        field_name = "household_id" if actor.is_household else "househelp_id"
        requests = [
            self._evaluate(HireRequest.from_dict(r.data), r.version)
            for r in self.storage.find(HIRE_REQUESTS_TABLE, **{field_name: actor.actor_id})
        ]
        if status is not None:
            requests = [r for r in requests if r.status == status]
        requests.sort(key=lambda r: r.created_at or utc_now(), reverse=True)
        return requests

    def open_request_id(self, household_id: str, househelp_id: str) -> Optional[str]:
        """ID of the request blocking a new one for the pair, if any.

        That is the live open request, or an accepted request whose contract
        has not been created yet.
        """
        holder = claim_holder(self.storage, request_claim_key(household_id, househelp_id))
        if holder is None:
            return None
        record = self.storage.get(HIRE_REQUESTS_TABLE, holder)
        if record is None:
            return None
        request = self._evaluate(HireRequest.from_dict(record.data), record.version)
        return request.id if self._holds_pair(request) else None

    def sweep_expired(self) -> List[HireRequest]:
        """Expire every overdue open request. Not needed for correctness."""
        now = self._now()
        expired: List[HireRequest] = []
        for status in (HireRequestStatus.PENDING.value, HireRequestStatus.NEGOTIATING.value):
            for record in self.storage.find(HIRE_REQUESTS_TABLE, status=status):
                request = HireRequest.from_dict(record.data)
                if not is_expired(request.expires_at, now):
                    continue
                evaluated = self._evaluate(request, record.version)
                if evaluated.status == HireRequestStatus.EXPIRED.value:
                    expired.append(evaluated)
        if expired:
            logger.debug(f"Swept {len(expired)} expired hire request(s)")
        return expired

    # === Internals ===

    def _load(self, request_id: str) -> Tuple[HireRequest, int]:
        record = self.storage.get(HIRE_REQUESTS_TABLE, request_id) if request_id else None
        if record is None:
            raise NotFoundError("Hire request not found")
        return HireRequest.from_dict(record.data), record.version

    @contextmanager
    def _pair_section(self, request_id: str) -> Iterator[Tuple[HireRequest, int]]:
        """Enter the request's pair critical section and re-read the request there."""
        request, _ = self._load(request_id)
        with self.locks.hold(pair_lock_key(request.household_id, request.househelp_id)):
            yield self._load(request_id)

    def _evaluate(self, request: HireRequest, version: int) -> HireRequest:
        """Lazily expire an overdue open request. Idempotent."""
        if not (request.is_open and is_expired(request.expires_at, self._now())):
            return request
        outbox: Outbox = []
        try:
            with self._pair_section(request.id) as (current, current_version):
                if current.is_open and is_expired(current.expires_at, self._now()):
                    return self._expire(current, current_version, self._now(), outbox)
                return current
        finally:
            self._flush(outbox)

    def _expire(
        self, request: HireRequest, version: int, now: datetime, outbox: Outbox
    ) -> HireRequest:
        """Persist the expired status. Caller holds the pair's critical section."""
        previous = request.status
        request.status = HireRequestStatus.EXPIRED.value
        request.updated_at = now
        request.closed_at = now
        self._save(request, version)
        release_claim(
            self.storage,
            request_claim_key(request.household_id, request.househelp_id),
            request.id,
        )
        record_transition(
            self.storage, ENTITY_TYPE, request.id, previous, request.status, created_at=now
        )
        outbox.append(self._event(EventType.HIRE_REQUEST_EXPIRED, request, None, {}))
        logger.debug(f"Hire request expired | id={request.id}")
        return request

    def _save(self, request: HireRequest, version: int) -> None:
        try:
            self.storage.put_if_version_matches(
                HIRE_REQUESTS_TABLE, request.id, request.to_dict(), version
            )
        except VersionConflictError as e:
            logger.warning(f"Concurrent update on hire request {request.id}: {e}")
            raise InvalidTransitionError(
                "This hire request was updated by someone else. Refresh and try again."
            ) from e

    def _claim_is_stale(self, holder_id: str, outbox: Outbox) -> Optional[bool]:
        """A request claim is stale once its holder no longer holds the pair."""
        record = self.storage.get(HIRE_REQUESTS_TABLE, holder_id)
        if record is None:
            return None
        holder = HireRequest.from_dict(record.data)
        if holder.is_open and is_expired(holder.expires_at, self._now()):
            # The pair's critical section is already held by create()
            self._expire(holder, record.version, self._now(), outbox)
            return True
        return not self._holds_pair(holder)

    def _holds_pair(self, request: HireRequest) -> bool:
        """Open, or accepted with no contract made from it yet."""
        if request.is_open:
            return True
        if request.status != HireRequestStatus.ACCEPTED.value:
            return False
        return claim_holder(self.storage, contract_for_request_key(request.id)) is None

    def _active_contract_id(self, household_id: str, househelp_id: str) -> Optional[str]:
        holder = claim_holder(self.storage, contract_claim_key(household_id, househelp_id))
        if holder is None:
            return None
        record = self.storage.get(CONTRACTS_TABLE, holder)
        if record is None or record.data.get("status") != "active":
            return None
        return holder

    @staticmethod
    def _require_participant(request: HireRequest, actor: Actor) -> None:
        if request.participant_role(actor.actor_id) != actor.role:
            raise NotFoundError("Hire request not found")

    def _clean_text(self, text: Optional[str], max_length: int, label: str) -> Optional[str]:
        if text is None:
            return None
        text = text.strip()
        if not text:
            return None
        if len(text) > max_length:
            raise ValidationError(f"{label} too long (max {max_length} characters)")
        if self.config.redact_contact_details:
            text = redact_contact_details(text)
        return text

    def _lock_profile_on_acceptance(self, request: HireRequest) -> None:
        """Lock the profile for the household. The acceptance is already stored."""
        if self.ledger is None:
            return
        try:
            self.ledger.lock(
                request.household_id,
                request.househelp_id,
                self.config.acceptance_lock_duration,
                source=LockSource.HIRE_ACCEPTED,
            )
        except AlreadyLockedError:
            logger.warning(
                f"Accepted request {request.id} but profile {request.househelp_id} "
                f"is locked by another household"
            )
        except EngagementError as e:
            logger.warning(
                f"Accepted request {request.id} but could not lock profile "
                f"{request.househelp_id}: {e}"
            )

    def _event(
        self,
        event_type: EventType,
        request: HireRequest,
        actor_id: Optional[str],
        payload: Dict[str, Any],
    ) -> DomainEvent:
        return DomainEvent(
            type=event_type,
            subject_id=request.id,
            actor_id=actor_id,
            payload={
                "household_id": request.household_id,
                "househelp_id": request.househelp_id,
                "status": request.status,
                **payload,
            },
            occurred_at=self._now(),
        )

    def _flush(self, outbox: Outbox) -> None:
        if self.events is None:
            outbox.clear()
            return
        while outbox:
            self.events.publish(outbox.pop(0))
