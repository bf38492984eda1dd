"""Rate limiting for the HomeXpert backend.

Calls carrying a valid bearer token are limited per actor, so households
sharing one network (a compound, an office NAT) keep separate budgets and a
househelp cannot dodge a limit by switching networks. Anonymous calls, and
calls whose token does not verify, are limited per client IP. The
X-Forwarded-For header is only honoured when the direct peer is one of the
configured proxies.
"""

import ipaddress
from functools import lru_cache

from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from .config import Settings, get_settings
from .logging_config import get_logger

logger = get_logger("homexpert.rate_limit")


@lru_cache
def proxy_networks(cidrs: tuple[str, ...]) -> tuple:
    networks = []
    for cidr in cidrs:
        try:
            networks.append(ipaddress.ip_network(cidr, strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid trusted proxy CIDR: {cidr}")
    return tuple(networks)


def client_ip(request: Request, settings: Settings) -> str:
    """The caller's IP; the forwarded one only behind a trusted proxy."""
    peer = get_remote_address(request)
    try:
        addr = ipaddress.ip_address(peer)
    except ValueError:
        return peer
    if any(addr in net for net in proxy_networks(tuple(settings.trusted_proxy_cidrs))):
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
        if forwarded:
            return forwarded
    return peer


def actor_key(request: Request, settings: Settings) -> str | None:
    """``role:actor_id`` from a bearer token that verifies, else None."""
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    actor_id, role = payload.get("sub"), payload.get("role")
    if not actor_id or not role:
        return None
    return f"{role}:{actor_id}"


def rate_limit_key(request: Request) -> str:
    settings = get_settings()
    return actor_key(request, settings) or f"ip:{client_ip(request, settings)}"


limiter = Limiter(key_func=rate_limit_key, enabled=get_settings().rate_limit_enabled)
