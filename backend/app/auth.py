"""Authentication utilities for the HomeXpert backend.

Identity comes from a bearer JWT issued by the auth service. The token's
``sub`` claim is the actor ID and ``role`` is ``household`` or
``househelp``. This service verifies tokens but never logs anyone in.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from homexpert.types import Actor, ActorRole

from .config import Settings, get_settings

# Bearer token scheme
security = HTTPBearer(auto_error=False)


def create_access_token(
    actor_id: str,
    role: ActorRole | str,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token for an actor (used by tests and tooling)."""
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)

    to_encode = {
        "sub": actor_id,
        "role": ActorRole(role).value,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access",
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Actor:
    """Get the acting household or househelp from the bearer token."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated - provide an Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials, settings)
    actor_id = payload.get("sub")
    role = payload.get("role")
    if not actor_id or role not in {r.value for r in ActorRole}:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Actor(actor_id, ActorRole(role))


def require_household(actor: Actor) -> Actor:
    """Reject househelps from household-only endpoints."""
    if not actor.is_household:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only households can use this endpoint",
        )
    return actor


async def get_current_household(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    return require_household(actor)


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
CurrentHousehold = Annotated[Actor, Depends(get_current_household)]
