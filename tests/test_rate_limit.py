import time

import pytest
from limits.errors import StorageError as LimiterStorageError
from limits.storage import MemoryStorage, RedisStorage

from storefront.rate_limit import (
    AllowAll,
    WindowRateLimiter,
    make_limiter_storage,
    make_rate_limiter,
)


def test_limit_per_key():
    limiter = WindowRateLimiter(MemoryStorage(), "validate", max_requests=3)

    assert [limiter.check("1.2.3.4") for _ in range(4)] == [True, True, True, False]
    assert limiter.check("5.6.7.8")


def test_namespaces_are_independent():
    storage = MemoryStorage()
    validate = WindowRateLimiter(storage, "validate", max_requests=1)
    download = WindowRateLimiter(storage, "download", max_requests=1)

    assert validate.check("ip")
    assert download.check("ip")
    assert not validate.check("ip")


def test_window_resets():
    limiter = WindowRateLimiter(MemoryStorage(), "validate", max_requests=1, window_seconds=1)

    assert limiter.check("ip")
    assert not limiter.check("ip")
    time.sleep(1.2)
    assert limiter.check("ip")


def test_redis_buckets_always_expire(redis_client):
    storage = make_limiter_storage(redis_client)
    limiter = WindowRateLimiter(storage, "validate", max_requests=3, window_seconds=300)

    results = [limiter.check("ip") for _ in range(5)]

    assert results == [True, True, True, False, False]
    buckets = [key for key in redis_client.keys("*") if "validate" in key]
    assert buckets
    for bucket in buckets:
        assert 0 < redis_client.ttl(bucket) <= 300


def test_storage_failure_fails_open(monkeypatch):
    limiter = WindowRateLimiter(MemoryStorage(), "validate", max_requests=1)

    def broken(*args, **kwargs):
        raise LimiterStorageError(ConnectionError("redis down"))

    monkeypatch.setattr(limiter.strategy, "hit", broken)

    assert limiter.check("ip")
    assert limiter.check("ip")


def test_factory(redis_client):
    assert isinstance(make_rate_limiter("x", 3, enabled=False), AllowAll)
    assert isinstance(make_rate_limiter("x", 3), WindowRateLimiter)
    assert isinstance(make_limiter_storage(), MemoryStorage)
    assert isinstance(make_limiter_storage(redis_client), RedisStorage)


@pytest.mark.parametrize("backend", ["memory", "redis"])
def test_services_use_configured_backend(settings, redis_client, backend):
    from storefront.dependencies import build_services

    configured = settings.model_copy(update={"RATE_LIMIT_BACKEND": backend})
    services = build_services(configured, redis_client=redis_client)

    expected = RedisStorage if backend == "redis" else MemoryStorage
    assert isinstance(services.downloads.validate_limiter.storage, expected)
