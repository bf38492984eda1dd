"""Errors surfaced at the engagement component boundary.

Each error carries a stable ``kind`` so outer layers (HTTP, CLI, UI) can map
it without string matching, plus a ``refresh_required`` hint: transition,
duplicate and turn conflicts mean the caller's view is stale and should be
re-fetched rather than retried.
"""

from typing import Optional


class EngagementError(Exception):
    """Base class for engagement errors."""

    kind = "engagement_error"
    refresh_required = False

    def __init__(self, message: str, existing_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        # Points at the entity the caller should be redirected to, if any
        self.existing_id = existing_id


class ValidationError(EngagementError):
    """Malformed input: fix and retry."""

    kind = "validation_error"


class InvalidTransitionError(EngagementError):
    """Operation not allowed from the entity's current state."""

    kind = "invalid_transition"
    refresh_required = True


class InvalidSourceStateError(EngagementError):
    """Contract requested from a hire request that is not accepted."""

    kind = "invalid_source_state"
    refresh_required = True


class DuplicateRequestError(EngagementError):
    """An open hire request or active contract already exists for the pair."""

    kind = "duplicate_request"
    refresh_required = True


class DuplicateActiveContractError(EngagementError):
    """An active contract already exists for the pair."""

    kind = "duplicate_active_contract"
    refresh_required = True


class AlreadyLockedError(EngagementError):
    """Lost the race for a profile lock."""

    kind = "already_locked"


class ProfileLockedError(EngagementError):
    """Profile is locked to a different household."""

    kind = "profile_locked"


class NotYourTurnError(EngagementError):
    """Negotiation alternation violated."""

    kind = "not_your_turn"
    refresh_required = True


class NotFoundError(EngagementError):
    """Entity does not exist or is not visible to the caller."""

    kind = "not_found"


class UnauthorizedError(EngagementError):
    """Participant attempted an action reserved for the other side."""

    kind = "unauthorized"


class ConcurrencyTimeoutError(EngagementError):
    """Critical section could not be entered in time."""

    kind = "concurrency_timeout"
