from typing import Optional

import redis

from .config import Settings


def make_redis_client(settings: Settings) -> Optional[redis.Redis]:
    if not settings.redis_configured:
        return None
    return redis.from_url(settings.REDIS_URL, decode_responses=True)
