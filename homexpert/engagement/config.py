"""Configuration for the engagement subsystem.

Defaults match the marketplace's product rules; every value can be
overridden from the environment with a ``HOMEXPERT_`` prefixed variable.
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

ENV_PREFIX = "HOMEXPERT_"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class EngagementConfig:
    """Tunables for shortlist locks, hire requests and contracts."""

    # Paid unlock when the billing collaborator does not send a duration
    default_lock_duration: timedelta = timedelta(days=7)
    # Lock the household receives once a hire request is accepted
    acceptance_lock_duration: timedelta = timedelta(days=30)
    # Open hire requests expire after this long
    request_ttl: timedelta = timedelta(days=14)
    # Upper bound on waiting for a per-key critical section (seconds)
    lock_wait_timeout: float = 5.0

    max_special_requirements_length: int = 2000
    max_reason_length: int = 1000

    redact_contact_details: bool = True
    auto_finalize_on_accept: bool = False

    def __post_init__(self):
        for name in ("default_lock_duration", "acceptance_lock_duration", "request_ttl"):
            value = getattr(self, name)
            if not isinstance(value, timedelta) or value <= timedelta(0):
                raise ValueError(f"{name} must be a positive duration")
        if self.lock_wait_timeout <= 0:
            raise ValueError("lock_wait_timeout must be positive")
        if self.max_special_requirements_length < 1 or self.max_reason_length < 1:
            raise ValueError("Text length limits must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngagementConfig":
        """Build a config from HOMEXPERT_* environment variables.

        Durations are given in days (fractions allowed), e.g.
        ``HOMEXPERT_REQUEST_TTL_DAYS=10``.
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        def _days(var: str, field_name: str) -> None:
            raw = env.get(ENV_PREFIX + var)
            if raw:
                kwargs[field_name] = timedelta(days=float(raw))

        _days("LOCK_DURATION_DAYS", "default_lock_duration")
        _days("ACCEPTANCE_LOCK_DAYS", "acceptance_lock_duration")
        _days("REQUEST_TTL_DAYS", "request_ttl")

        raw = env.get(ENV_PREFIX + "LOCK_WAIT_TIMEOUT")
        if raw:
            kwargs["lock_wait_timeout"] = float(raw)
        for var, field_name in (
            ("MAX_SPECIAL_REQUIREMENTS_LENGTH", "max_special_requirements_length"),
            ("MAX_REASON_LENGTH", "max_reason_length"),
        ):
            raw = env.get(ENV_PREFIX + var)
            if raw:
                kwargs[field_name] = int(raw)
        for var, field_name in (
            ("REDACT_CONTACT_DETAILS", "redact_contact_details"),
            ("AUTO_FINALIZE_ON_ACCEPT", "auto_finalize_on_accept"),
        ):
            raw = env.get(ENV_PREFIX + var)
            if raw is not None and raw != "":
                kwargs[field_name] = raw.strip().lower() in _TRUTHY

        return cls(**kwargs)
