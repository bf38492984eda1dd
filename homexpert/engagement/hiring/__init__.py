"""Hire request subsystem.

Models:
- HireRequest: An offer from a household to a househelp
- Negotiation: One counter-offer in a request's log
- NegotiationTerms: Terms proposed by a counter-offer
- EffectiveTerms: Terms on the table after folding the log
- WorkSchedule: Weekly day/slot availability grid

Service:
- HireRequestEngine: create, counter-offer, accept, decline, withdraw, expire
"""

from homexpert.engagement.hiring.engine import HireRequestEngine
from homexpert.engagement.hiring.models import (
    OPEN_REQUEST_STATUSES,
    TERMINAL_REQUEST_STATUSES,
    VALID_REQUEST_TRANSITIONS,
    EffectiveTerms,
    HireRequest,
    HireRequestStatus,
    JobType,
    Negotiation,
    NegotiationTerms,
    SalaryFrequency,
    WorkSchedule,
)

__all__ = [
    "HireRequest",
    "HireRequestStatus",
    "JobType",
    "SalaryFrequency",
    "WorkSchedule",
    "Negotiation",
    "NegotiationTerms",
    "EffectiveTerms",
    "VALID_REQUEST_TRANSITIONS",
    "OPEN_REQUEST_STATUSES",
    "TERMINAL_REQUEST_STATUSES",
    "HireRequestEngine",
]
