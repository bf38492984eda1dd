"""
Engagement lifecycle between households and househelps.

This package covers:
- Shortlists with time-boxed profile locks (paid unlocks)
- Hire requests with alternating counter-offers
- Contracts created from accepted requests
- Cross-component checks (EngagementCoordinator)

Use ``build_engagement()`` to get a wired coordinator.
"""

from homexpert.engagement.config import EngagementConfig
from homexpert.engagement.contracts import ContractManager, ContractStatus, HireContract
from homexpert.engagement.coordinator import (
    Eligibility,
    EngagementCoordinator,
    build_engagement,
)
from homexpert.engagement.errors import (
    AlreadyLockedError,
    ConcurrencyTimeoutError,
    DuplicateActiveContractError,
    DuplicateRequestError,
    EngagementError,
    InvalidSourceStateError,
    InvalidTransitionError,
    NotFoundError,
    NotYourTurnError,
    ProfileLockedError,
    UnauthorizedError,
    ValidationError,
)
from homexpert.engagement.events import (
    DomainEvent,
    EventBus,
    EventType,
    RecordingEventSink,
)
from homexpert.engagement.hiring import (
    HireRequest,
    HireRequestEngine,
    HireRequestStatus,
    Negotiation,
    NegotiationTerms,
    WorkSchedule,
)
from homexpert.engagement.shortlist import (
    LockSource,
    ProfileLock,
    ShortlistEntry,
    ShortlistLedger,
    UnlockStatus,
)

__all__ = [
    # Wiring
    "EngagementConfig",
    "EngagementCoordinator",
    "Eligibility",
    "build_engagement",
    # Shortlist
    "ShortlistLedger",
    "ShortlistEntry",
    "ProfileLock",
    "LockSource",
    "UnlockStatus",
    # Hiring
    "HireRequestEngine",
    "HireRequest",
    "HireRequestStatus",
    "Negotiation",
    "NegotiationTerms",
    "WorkSchedule",
    # Contracts
    "ContractManager",
    "HireContract",
    "ContractStatus",
    # Events
    "DomainEvent",
    "EventBus",
    "EventType",
    "RecordingEventSink",
    # Errors
    "EngagementError",
    "ValidationError",
    "InvalidTransitionError",
    "InvalidSourceStateError",
    "DuplicateRequestError",
    "DuplicateActiveContractError",
    "AlreadyLockedError",
    "ProfileLockedError",
    "NotYourTurnError",
    "NotFoundError",
    "UnauthorizedError",
    "ConcurrencyTimeoutError",
]
