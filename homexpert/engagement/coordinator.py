"""
Engagement coordinator.

Read-through facade over the shortlist ledger, hire request engine and
contract manager. Its checks are advisory: they tell a caller whether an
action is likely to succeed so the UI can explain why not, but the
mutating calls re-validate inside their own critical sections and can
still fail if state changed in between.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from homexpert.engagement.config import EngagementConfig
from homexpert.engagement.contracts import ContractManager
from homexpert.engagement.events import EventBus, EventSink, EventType
from homexpert.engagement.hiring import HireRequestEngine
from homexpert.engagement.shortlist import ShortlistLedger, UnlockStatus
from homexpert.engagement.storage import EngagementStorage, InMemoryEngagementStorage, KeyedLocks
from homexpert.types import NowFn

logger = logging.getLogger(__name__)

# Reasons returned by eligibility()
REASON_ACTIVE_CONTRACT = "active_contract"
REASON_OPEN_REQUEST = "open_request"
REASON_PROFILE_LOCKED = "profile_locked"


@dataclass(frozen=True)
class Eligibility:
    """What a household can currently do with a househelp, and why not."""

    can_hire: bool
    can_shortlist: bool
    reason: Optional[str] = None
    existing_id: Optional[str] = None  # Blocking request or contract

    def to_dict(self) -> Dict[str, Any]:
        return {
            "can_hire": self.can_hire,
            "can_shortlist": self.can_shortlist,
            "reason": self.reason,
            "existing_id": self.existing_id,
        }


class EngagementCoordinator:
    """Entry point bundling the three engagement components."""

    def __init__(
        self,
        ledger: ShortlistLedger,
        engine: HireRequestEngine,
        contracts: ContractManager,
        events: Optional[EventBus] = None,
        config: Optional[EngagementConfig] = None,
    ):
        self.ledger = ledger
        self.engine = engine
        self.contracts = contracts
        self.events = events
        self.config = config or engine.config

    def can_create_hire_request(self, household_id: str, househelp_id: str) -> bool:
        """False while the pair has an active contract, or a request that is open
        or accepted but not yet turned into a contract.
        """
        if self.contracts.active_contract_for(household_id, househelp_id) is not None:
            return False
        return self.engine.open_request_id(household_id, househelp_id) is None

    def can_shortlist(self, household_id: str, profile_id: str) -> bool:
        """False while another household holds a valid lock on the profile."""
        return not self.ledger.is_locked_by_other(profile_id, household_id)

    def check_status(self, profile_id: str, household_id: str) -> UnlockStatus:
        return self.ledger.check_status(profile_id, household_id)

    def eligibility(self, household_id: str, househelp_id: str) -> Eligibility:
        """Both checks at once, with the first blocking reason."""
        can_shortlist = self.can_shortlist(household_id, househelp_id)

        contract = self.contracts.active_contract_for(household_id, househelp_id)
        if contract is not None:
            return Eligibility(False, can_shortlist, REASON_ACTIVE_CONTRACT, contract.id)

        request_id = self.engine.open_request_id(household_id, househelp_id)
        if request_id is not None:
            return Eligibility(False, can_shortlist, REASON_OPEN_REQUEST, request_id)

        if not can_shortlist:
            return Eligibility(True, False, REASON_PROFILE_LOCKED)
        return Eligibility(True, True)

    def sweep_expired(self) -> Dict[str, int]:
        """Run both expiry sweeps and report how much was reclaimed."""
        locks = self.ledger.sweep_expired()
        requests = self.engine.sweep_expired()
        logger.info(f"Sweep finished | locks={len(locks)} | requests={len(requests)}")
        return {"locks": len(locks), "requests": len(requests)}


def build_engagement(
    config: Optional[EngagementConfig] = None,
    storage: Optional[EngagementStorage] = None,
    event_sink: Optional[EventSink] = None,
    now_fn: Optional[NowFn] = None,
) -> EngagementCoordinator:
    """Wire the components over one storage, one set of locks and one event bus.

    Args:
        config: Tunables (default: EngagementConfig())
        storage: Persistence backend (default: a fresh in-memory store)
        event_sink: Receives every published event, e.g. a notification
            outbox or a RecordingEventSink in tests
        now_fn: Clock, injectable for expiry tests
    """
    config = config or EngagementConfig()
    storage = storage if storage is not None else InMemoryEngagementStorage()
    locks = KeyedLocks(timeout=config.lock_wait_timeout)
    bus = EventBus()
    if event_sink is not None:
        bus.subscribe(event_sink.publish)

    ledger = ShortlistLedger(storage, config=config, locks=locks, events=bus, now_fn=now_fn)
    engine = HireRequestEngine(
        storage, config=config, locks=locks, events=bus, now_fn=now_fn, ledger=ledger
    )
    contracts = ContractManager(
        storage,
        engine,
        ledger=ledger,
        config=config,
        locks=locks,
        events=bus,
        now_fn=now_fn,
    )
    if config.auto_finalize_on_accept:
        bus.subscribe(contracts.on_request_accepted, EventType.HIRE_REQUEST_ACCEPTED)

    return EngagementCoordinator(ledger, engine, contracts, events=bus, config=config)
