"""Engagement store wiring for the API."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from homexpert.engagement import EngagementCoordinator, build_engagement
from homexpert.engagement.storage import InMemoryEngagementStorage, SQLiteEngagementStorage

from .config import get_settings
from .logging_config import get_logger

logger = get_logger("homexpert.database")


@lru_cache
def get_engagement() -> EngagementCoordinator:
    """Get the process-wide engagement coordinator."""
    settings = get_settings()
    if settings.database_path:
        logger.info(f"Using SQLite engagement store at {settings.database_path}")
        storage = SQLiteEngagementStorage(settings.database_path)
    else:
        logger.warning("DATABASE_PATH unset; engagement state is in memory only")
        storage = InMemoryEngagementStorage()
    return build_engagement(settings.to_engagement_config(), storage=storage)


# Type alias for dependency injection
Engagement = Annotated[EngagementCoordinator, Depends(get_engagement)]
