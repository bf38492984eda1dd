"""Contract data models."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from homexpert.engagement.hiring.models import (
    HireRequest,
    JobType,
    SalaryFrequency,
    WorkSchedule,
    _enum_value,
    _to_decimal,
)
from homexpert.types import parse_datetime


class ContractStatus(str, Enum):
    """Contract lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"


VALID_CONTRACT_TRANSITIONS = {
    ContractStatus.ACTIVE: {ContractStatus.COMPLETED, ContractStatus.TERMINATED},
    ContractStatus.COMPLETED: set(),
    ContractStatus.TERMINATED: set(),
}


@dataclass
class HireContract:
    """The employment relationship created from an accepted hire request."""

    id: str
    hire_request_id: str
    household_id: str
    househelp_id: str
    actual_salary: Decimal
    job_type: str
    contract_start_date: date
    salary_frequency: str = SalaryFrequency.MONTHLY.value
    work_schedule: WorkSchedule = field(default_factory=WorkSchedule.default)
    contract_end_date: Optional[date] = None
    status: str = ContractStatus.ACTIVE.value

    termination_reason: Optional[str] = None
    terminated_by: Optional[str] = None  # Role that terminated
    completed_by: Optional[str] = None  # Role that completed
    notes: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    terminated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.hire_request_id:
            raise ValueError("Hire request ID cannot be empty")
        self.job_type = _enum_value(self.job_type, JobType, "job type")
        self.salary_frequency = _enum_value(
            self.salary_frequency, SalaryFrequency, "salary frequency"
        )
        self.status = _enum_value(self.status, ContractStatus, "status")
        self.actual_salary = _to_decimal(self.actual_salary, "Actual salary")
        if self.actual_salary <= 0:
            raise ValueError("Actual salary must be greater than zero")
        if not isinstance(self.work_schedule, WorkSchedule):
            self.work_schedule = WorkSchedule.from_dict(self.work_schedule)
        if self.contract_end_date and self.contract_end_date < self.contract_start_date:
            raise ValueError("Contract cannot end before it starts")

    @classmethod
    def from_request(
        cls,
        request: HireRequest,
        start_date: date,
        now: datetime,
        notes: Optional[str] = None,
    ) -> "HireContract":
        """Build an active contract from the terms agreed on a request."""
        terms = request.effective_terms()
        return cls(
            id=str(uuid.uuid4()),
            hire_request_id=request.id,
            household_id=request.household_id,
            househelp_id=request.househelp_id,
            actual_salary=terms.salary_offered,
            salary_frequency=terms.salary_frequency,
            job_type=request.job_type,
            work_schedule=terms.work_schedule,
            contract_start_date=start_date,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_active(self) -> bool:
        return self.status == ContractStatus.ACTIVE.value

    @property
    def is_terminal(self) -> bool:
        return not VALID_CONTRACT_TRANSITIONS[ContractStatus(self.status)]

    def can_transition_to(self, target: ContractStatus) -> bool:
        return target in VALID_CONTRACT_TRANSITIONS[ContractStatus(self.status)]

    def is_participant(self, actor_id: str) -> bool:
        return actor_id in (self.household_id, self.househelp_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hire_request_id": self.hire_request_id,
            "household_id": self.household_id,
            "househelp_id": self.househelp_id,
            "actual_salary": str(self.actual_salary),
            "salary_frequency": self.salary_frequency,
            "job_type": self.job_type,
            "work_schedule": self.work_schedule.to_dict(),
            "contract_start_date": self.contract_start_date.isoformat(),
            "contract_end_date": (
                self.contract_end_date.isoformat() if self.contract_end_date else None
            ),
            "status": self.status,
            "termination_reason": self.termination_reason,
            "terminated_by": self.terminated_by,
            "completed_by": self.completed_by,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "terminated_at": self.terminated_at.isoformat() if self.terminated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HireContract":
        end = data.get("contract_end_date")
        return cls(
            id=data["id"],
            hire_request_id=data["hire_request_id"],
            household_id=data["household_id"],
            househelp_id=data["househelp_id"],
            actual_salary=data["actual_salary"],
            salary_frequency=data.get("salary_frequency", SalaryFrequency.MONTHLY.value),
            job_type=data["job_type"],
            work_schedule=WorkSchedule.from_dict(data.get("work_schedule")),
            contract_start_date=date.fromisoformat(data["contract_start_date"]),
            contract_end_date=date.fromisoformat(end) if end else None,
            status=data.get("status", ContractStatus.ACTIVE.value),
            termination_reason=data.get("termination_reason"),
            terminated_by=data.get("terminated_by"),
            completed_by=data.get("completed_by"),
            notes=data.get("notes"),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            completed_at=parse_datetime(data.get("completed_at")),
            terminated_at=parse_datetime(data.get("terminated_at")),
        )
