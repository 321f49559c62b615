"""
Request rate limiting.

The limiter lives in its own module so routers can decorate endpoints with
``@limiter.limit(...)`` without importing the application.
"""

import logging
from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address

from sendeasy.core.config import settings

logger = logging.getLogger(__name__)


def get_limiter_storage() -> Optional[str]:
    """
    Storage URI for the counters.

    A valid ``REDIS_URL`` shares counters between workers; anything else keeps
    them in process memory, which is enough for a single node.
    """
    redis_url = settings.redis_url
    if not redis_url:
        return None
    if not redis_url.startswith(("redis://", "rediss://")):
        logger.warning("Ignoring REDIS_URL with unsupported scheme; rate limits stay in memory")
        return None
    return redis_url


def create_limiter() -> Limiter:
    storage_uri = get_limiter_storage()
    logger.info("Rate limit counters stored in %s", "redis" if storage_uri else "memory")
    # Limits are applied per endpoint group, never globally
    if storage_uri:
        return Limiter(key_func=get_remote_address, storage_uri=storage_uri, default_limits=[])
    return Limiter(key_func=get_remote_address, default_limits=[])


limiter = create_limiter()
