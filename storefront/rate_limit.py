"""
Fixed-window rate limiting on top of ``limits``.

Each endpoint gets its own namespaced limiter behind the small
``RateLimiter`` protocol. ``MemoryStorage`` only bounds abuse against a
single process; use a ``RedisStorage`` when several instances serve the
same site.
"""

import logging
from typing import Optional, Protocol

import redis
from limits import RateLimitItemPerSecond
from limits.errors import StorageError as LimiterStorageError
from limits.storage import MemoryStorage, RedisStorage, Storage
from limits.strategies import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW = 5 * 60  # seconds


class RateLimiter(Protocol):
    def check(self, key: str) -> bool:
        """Count one request for ``key``; True while it is within the limit."""


class WindowRateLimiter:
    """``max_requests`` per ``window_seconds`` for each key, in its own namespace."""

    def __init__(
        self,
        storage: Storage,
        namespace: str,
        max_requests: int,
        window_seconds: int = RATE_LIMIT_WINDOW,
    ):
        self.storage = storage
        self.namespace = namespace
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)
        self.strategy = FixedWindowRateLimiter(storage)

    def check(self, key: str) -> bool:
        try:
            return self.strategy.hit(self.item, self.namespace, key)
        except (LimiterStorageError, redis.RedisError):
            # fail open
            logger.exception("Rate limiter unavailable for %s/%s", self.namespace, key)
            return True


class AllowAll:
    def check(self, key: str) -> bool:
        return True


def make_limiter_storage(
    redis_client: Optional[redis.Redis] = None,
    redis_url: str = "redis://localhost:6379",
) -> Storage:
    """Redis storage sharing ``redis_client``'s connection pool, else process memory."""
    if redis_client is None:
        return MemoryStorage()
    return RedisStorage(
        redis_url,
        connection_pool=redis_client.connection_pool,
        wrap_exceptions=True,
    )


def make_rate_limiter(
    namespace: str,
    max_requests: int,
    storage: Optional[Storage] = None,
    enabled: bool = True,
) -> RateLimiter:
    if not enabled:
        return AllowAll()
    return WindowRateLimiter(storage or MemoryStorage(), namespace, max_requests)
