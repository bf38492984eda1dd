"""State transition audit log.

Every committed status change on a hire request or contract is recorded
with the actor that caused it. Time-driven changes (expiry) have no actor.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from homexpert.types import parse_datetime, utc_now

from .storage.base import TRANSITIONS_TABLE, EngagementStorage

logger = logging.getLogger(__name__)


@dataclass
class StateTransition:
    """Audit log entry for a status change."""

    id: str
    entity_type: str  # "hire_request" or "contract"
    entity_id: str
    to_status: str
    from_status: Optional[str] = None  # None for creation
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateTransition":
        return cls(
            id=data["id"],
            entity_type=data["entity_type"],
            entity_id=data["entity_id"],
            from_status=data.get("from_status"),
            to_status=data["to_status"],
            actor_id=data.get("actor_id"),
            actor_role=data.get("actor_role"),
            metadata=data.get("metadata") or {},
            created_at=parse_datetime(data.get("created_at")),
        )


def record_transition(
    storage: EngagementStorage,
    entity_type: str,
    entity_id: str,
    from_status: Optional[str],
    to_status: str,
    actor_id: Optional[str] = None,
    actor_role: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    created_at: Optional[datetime] = None,
) -> StateTransition:
    transition = StateTransition(
        id=str(uuid.uuid4()),
        entity_type=entity_type,
        entity_id=entity_id,
        from_status=from_status,
        to_status=to_status,
        actor_id=actor_id,
        actor_role=actor_role,
        metadata=metadata or {},
        created_at=created_at or utc_now(),
    )
    storage.insert_if_absent(TRANSITIONS_TABLE, transition.id, transition.to_dict())
    return transition


def list_transitions(storage: EngagementStorage, entity_id: str) -> List[StateTransition]:
    """All transitions for an entity, oldest first."""
    transitions = [
        StateTransition.from_dict(r.data)
        for r in storage.find(TRANSITIONS_TABLE, entity_id=entity_id)
    ]
    transitions.sort(key=lambda t: t.created_at or utc_now())
    return transitions
