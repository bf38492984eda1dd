"""
HomeXpert - household and househelp engagement core.

Shortlisting, profile locks, hire-request negotiation and employment contracts.
"""

from .engagement import EngagementCoordinator, build_engagement
from .types import Actor, ActorRole

try:
    from importlib.metadata import version

    __version__ = version("homexpert")
except Exception:
    __version__ = "0.0.0"

__all__ = ["Actor", "ActorRole", "EngagementCoordinator", "build_engagement"]
