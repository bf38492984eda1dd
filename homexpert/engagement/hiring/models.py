"""Hire request data models.

Lifecycle:
    pending → negotiating ⇄ negotiating → {accepted, declined, withdrawn, expired}

Terminal states accept no further transitions.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from homexpert.types import ActorRole, parse_datetime, require_id


class JobType(str, Enum):
    LIVE_IN = "live-in"
    DAY_WORKER = "day-worker"
    PART_TIME = "part-time"
    FULL_TIME = "full-time"


class SalaryFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class HireRequestStatus(str, Enum):
    """Hire request lifecycle status."""

    PENDING = "pending"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"
    EXPIRED = "expired"


_CLOSING = {
    HireRequestStatus.ACCEPTED,
    HireRequestStatus.DECLINED,
    HireRequestStatus.WITHDRAWN,
    HireRequestStatus.EXPIRED,
}

VALID_REQUEST_TRANSITIONS: Dict[HireRequestStatus, set] = {
    HireRequestStatus.PENDING: {HireRequestStatus.NEGOTIATING} | _CLOSING,
    HireRequestStatus.NEGOTIATING: {HireRequestStatus.NEGOTIATING} | _CLOSING,
    HireRequestStatus.ACCEPTED: set(),
    HireRequestStatus.DECLINED: set(),
    HireRequestStatus.WITHDRAWN: set(),
    HireRequestStatus.EXPIRED: set(),
}

OPEN_REQUEST_STATUSES = frozenset({HireRequestStatus.PENDING.value, HireRequestStatus.NEGOTIATING.value})
TERMINAL_REQUEST_STATUSES = frozenset(s.value for s in _CLOSING)

DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
TIME_SLOTS = ("morning", "afternoon", "evening")


def _to_decimal(value: Any, label: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{label} must be a number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{label} must be a number")
    if not amount.is_finite():
        raise ValueError(f"{label} must be a number")
    return amount


def _enum_value(value: Any, enum_cls, label: str) -> str:
    if isinstance(value, enum_cls):
        return value.value
    valid = {e.value for e in enum_cls}
    if value not in valid:
        raise ValueError(f"Invalid {label}: {value}. Must be one of {sorted(valid)}")
    return value


@dataclass
class WorkSchedule:
    """Seven days by three time slots of availability."""

    slots: Dict[str, Dict[str, bool]] = field(default_factory=dict)

    def __post_init__(self):
        self.slots = self._normalize(self.slots, partial=False)

    @staticmethod
    def _normalize(data: Dict[str, Any], partial: bool) -> Dict[str, Dict[str, bool]]:
        if not isinstance(data, dict):
            raise ValueError("Work schedule must be a mapping of day to time slots")
        unknown_days = set(data) - set(DAYS)
        if unknown_days:
            raise ValueError(f"Unknown schedule day(s): {sorted(unknown_days)}")

        result: Dict[str, Dict[str, bool]] = {}
        for day in DAYS:
            if day not in data:
                if not partial:
                    result[day] = {slot: False for slot in TIME_SLOTS}
                continue
            day_slots = data[day] or {}
            if not isinstance(day_slots, dict):
                raise ValueError(f"Time slots for {day} must be a mapping")
            unknown_slots = set(day_slots) - set(TIME_SLOTS)
            if unknown_slots:
                raise ValueError(f"Unknown time slot(s) for {day}: {sorted(unknown_slots)}")
            if partial:
                result[day] = {slot: bool(v) for slot, v in day_slots.items()}
            else:
                result[day] = {slot: bool(day_slots.get(slot, False)) for slot in TIME_SLOTS}
        return result

    @classmethod
    def default(cls) -> "WorkSchedule":
        """Weekday mornings and afternoons."""
        weekday = {"morning": True, "afternoon": True, "evening": False}
        return cls({day: dict(weekday) for day in DAYS[:5]})

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "WorkSchedule":
        return cls(dict(data or {}))

    @staticmethod
    def validate_delta(delta: Dict[str, Any]) -> Dict[str, Dict[str, bool]]:
        """Validate a partial schedule used by a counter-offer."""
        return WorkSchedule._normalize(delta, partial=True)

    def apply(self, delta: Optional[Dict[str, Any]]) -> "WorkSchedule":
        """New schedule with the delta's days/slots overridden."""
        if not delta:
            return WorkSchedule(self.to_dict())
        changes = self.validate_delta(delta)
        merged = self.to_dict()
        for day, day_slots in changes.items():
            merged[day].update(day_slots)
        return WorkSchedule(merged)

    def is_working(self, day: str, slot: str) -> bool:
        return self.slots[day][slot]

    @property
    def slot_count(self) -> int:
        return sum(1 for day in DAYS for slot in TIME_SLOTS if self.slots[day][slot])

    def to_dict(self) -> Dict[str, Dict[str, bool]]:
        return {day: dict(self.slots[day]) for day in DAYS}


@dataclass
class NegotiationTerms:
    """Terms proposed in a counter-offer."""

    salary_offered: Decimal
    salary_frequency: Optional[str] = None  # None keeps the current frequency
    work_schedule: Optional[Dict[str, Any]] = None  # Partial schedule delta
    message: Optional[str] = None

    def __post_init__(self):
        self.salary_offered = _to_decimal(self.salary_offered, "Salary offered")
        if self.salary_offered <= 0:
            raise ValueError("Salary offered must be greater than zero")
        if self.salary_frequency is not None:
            self.salary_frequency = _enum_value(
                self.salary_frequency, SalaryFrequency, "salary frequency"
            )
        if self.work_schedule is not None:
            self.work_schedule = WorkSchedule.validate_delta(self.work_schedule)


@dataclass
class Negotiation:
    """One entry in a hire request's append-only counter-offer log."""

    id: str
    proposed_by: str  # ActorRole value
    actor_id: str
    salary_offered: Decimal
    created_at: datetime
    salary_frequency: Optional[str] = None
    work_schedule: Optional[Dict[str, Dict[str, bool]]] = None
    message: Optional[str] = None

    def __post_init__(self):
        self.proposed_by = _enum_value(self.proposed_by, ActorRole, "proposer")
        self.salary_offered = _to_decimal(self.salary_offered, "Salary offered")

    @classmethod
    def from_terms(
        cls, terms: NegotiationTerms, role: ActorRole, actor_id: str, now: datetime
    ) -> "Negotiation":
        return cls(
            id=str(uuid.uuid4()),
            proposed_by=role,
            actor_id=actor_id,
            salary_offered=terms.salary_offered,
            salary_frequency=terms.salary_frequency,
            work_schedule=terms.work_schedule,
            message=terms.message,
            created_at=now,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "proposed_by": self.proposed_by,
            "actor_id": self.actor_id,
            "salary_offered": str(self.salary_offered),
            "salary_frequency": self.salary_frequency,
            "work_schedule": self.work_schedule,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Negotiation":
        return cls(
            id=data["id"],
            proposed_by=data["proposed_by"],
            actor_id=data["actor_id"],
            salary_offered=data["salary_offered"],
            salary_frequency=data.get("salary_frequency"),
            work_schedule=data.get("work_schedule"),
            message=data.get("message"),
            created_at=parse_datetime(data["created_at"]),
        )


@dataclass(frozen=True)
class EffectiveTerms:
    """The terms currently on the table after folding the negotiation log."""

    salary_offered: Decimal
    salary_frequency: str
    work_schedule: WorkSchedule
    proposed_by: str


@dataclass
class HireRequest:
    """An offer from a household to a househelp."""

    id: str
    household_id: str
    househelp_id: str
    job_type: str
    salary_offered: Decimal
    salary_frequency: str = SalaryFrequency.MONTHLY.value
    work_schedule: WorkSchedule = field(default_factory=WorkSchedule.default)
    terms_accepted: bool = False
    start_date: Optional[date] = None
    special_requirements: Optional[str] = None
    status: str = HireRequestStatus.PENDING.value
    negotiations: List[Negotiation] = field(default_factory=list)

    decline_reason: Optional[str] = None
    closed_by: Optional[str] = None  # Role that accepted/declined/withdrew

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    def __post_init__(self):
        require_id(self.household_id, "Household ID")
        require_id(self.househelp_id, "Househelp ID")
        self.job_type = _enum_value(self.job_type, JobType, "job type")
        self.salary_frequency = _enum_value(
            self.salary_frequency, SalaryFrequency, "salary frequency"
        )
        self.status = _enum_value(self.status, HireRequestStatus, "status")
        self.salary_offered = _to_decimal(self.salary_offered, "Salary offered")
        if self.salary_offered <= 0:
            raise ValueError("Salary offered must be greater than zero")
        if not isinstance(self.work_schedule, WorkSchedule):
            self.work_schedule = WorkSchedule.from_dict(self.work_schedule)

    # === Lifecycle ===

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_REQUEST_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_REQUEST_STATUSES

    def can_transition_to(self, target: HireRequestStatus) -> bool:
        return target in VALID_REQUEST_TRANSITIONS[HireRequestStatus(self.status)]

    @property
    def last_proposer(self) -> ActorRole:
        """Who made the offer currently on the table. The household opens."""
        if self.negotiations:
            return ActorRole(self.negotiations[-1].proposed_by)
        return ActorRole.HOUSEHOLD

    @property
    def awaiting_response_from(self) -> Optional[ActorRole]:
        return self.last_proposer.other if self.is_open else None

    def participant_role(self, actor_id: str) -> Optional[ActorRole]:
        if actor_id == self.household_id:
            return ActorRole.HOUSEHOLD
        if actor_id == self.househelp_id:
            return ActorRole.HOUSEHELP
        return None

    def effective_terms(self) -> EffectiveTerms:
        salary = self.salary_offered
        frequency = self.salary_frequency
        schedule = self.work_schedule
        for entry in self.negotiations:
            salary = entry.salary_offered
            frequency = entry.salary_frequency or frequency
            schedule = schedule.apply(entry.work_schedule)
        return EffectiveTerms(
            salary_offered=salary,
            salary_frequency=frequency,
            work_schedule=schedule,
            proposed_by=self.last_proposer.value,
        )

    # === Serialization ===

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "household_id": self.household_id,
            "househelp_id": self.househelp_id,
            "job_type": self.job_type,
            "salary_offered": str(self.salary_offered),
            "salary_frequency": self.salary_frequency,
            "work_schedule": self.work_schedule.to_dict(),
            "terms_accepted": self.terms_accepted,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "special_requirements": self.special_requirements,
            "status": self.status,
            "negotiations": [n.to_dict() for n in self.negotiations],
            "decline_reason": self.decline_reason,
            "closed_by": self.closed_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HireRequest":
        start = data.get("start_date")
        return cls(
            id=data["id"],
            household_id=data["household_id"],
            househelp_id=data["househelp_id"],
            job_type=data["job_type"],
            salary_offered=data["salary_offered"],
            salary_frequency=data.get("salary_frequency", SalaryFrequency.MONTHLY.value),
            work_schedule=WorkSchedule.from_dict(data.get("work_schedule")),
            terms_accepted=bool(data.get("terms_accepted", False)),
            start_date=date.fromisoformat(start) if start else None,
            special_requirements=data.get("special_requirements"),
            status=data.get("status", HireRequestStatus.PENDING.value),
            negotiations=[Negotiation.from_dict(n) for n in data.get("negotiations") or []],
            decline_reason=data.get("decline_reason"),
            closed_by=data.get("closed_by"),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            expires_at=parse_datetime(data.get("expires_at")),
            accepted_at=parse_datetime(data.get("accepted_at")),
            closed_at=parse_datetime(data.get("closed_at")),
        )
