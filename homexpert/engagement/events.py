"""Domain events for the notification collaborator.

The core publishes an event after each committed state change. Delivery
(chat, inbox, push) happens elsewhere; a failing subscriber is logged and
never affects the operation that produced the event.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

from homexpert.types import utc_now

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event names as seen by subscribers."""

    HIRE_REQUEST_CREATED = "hire_request.created"
    HIRE_REQUEST_NEGOTIATED = "hire_request.negotiated"
    HIRE_REQUEST_ACCEPTED = "hire_request.accepted"
    HIRE_REQUEST_DECLINED = "hire_request.declined"
    HIRE_REQUEST_WITHDRAWN = "hire_request.withdrawn"
    HIRE_REQUEST_EXPIRED = "hire_request.expired"
    CONTRACT_CREATED = "contract.created"
    CONTRACT_COMPLETED = "contract.completed"
    CONTRACT_TERMINATED = "contract.terminated"
    SHORTLIST_LOCKED = "shortlist.locked"
    SHORTLIST_UNLOCKED = "shortlist.unlocked"


@dataclass
class DomainEvent:
    """Something that happened to an engagement entity."""

    type: EventType
    subject_id: str  # request, contract or profile ID
    actor_id: Optional[str] = None  # None for time-driven events
    payload: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "subject_id": self.subject_id,
            "actor_id": self.actor_id,
            "payload": dict(self.payload),
            "occurred_at": self.occurred_at.isoformat(),
        }


EventHandler = Callable[[DomainEvent], None]


class EventSink(Protocol):
    """Anything that accepts published events."""

    def publish(self, event: DomainEvent) -> None:
        ...


class EventBus:
    """Synchronous fan-out to subscribers.

    Subscribers registered for a specific type run before wildcard
    subscribers. Handler exceptions are logged and swallowed so
    notification problems cannot undo committed state.
    """

    def __init__(self):
        self._handlers: Dict[Optional[EventType], List[EventHandler]] = {}
        self._guard = threading.Lock()

    def subscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> None:
        """Register a handler for one event type, or all when None."""
        with self._guard:
            self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, handler: EventHandler, event_type: Optional[EventType] = None) -> None:
        with self._guard:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        with self._guard:
            handlers = list(self._handlers.get(event.type, [])) + list(
                self._handlers.get(None, [])
            )
        logger.debug(f"Publishing {event.type.value} | subject={event.subject_id}")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.warning(
                    f"Event handler failed for {event.type.value} "
                    f"(subject={event.subject_id}): {e}"
                )


class RecordingEventSink:
    """Keeps every published event in order. Useful as an outbox or in tests."""

    def __init__(self):
        self.events: List[DomainEvent] = []
        self._guard = threading.Lock()

    def publish(self, event: DomainEvent) -> None:
        with self._guard:
            self.events.append(event)

    def of_type(self, event_type: EventType) -> List[DomainEvent]:
        with self._guard:
            return [e for e in self.events if e.type == event_type]

    def types(self) -> List[str]:
        with self._guard:
            return [e.type.value for e in self.events]

    def clear(self) -> None:
        with self._guard:
            self.events.clear()
