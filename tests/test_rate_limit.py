from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from redis.exceptions import ConnectionError as RedisConnectionError

from resumerank.services.rate_limit import (
    RATE_LIMITS,
    InMemoryRateLimiter,
    RedisRateLimiter,
    enforce_rate_limit,
)

pytestmark = pytest.mark.unit


def test_bucket_limits():
    assert RATE_LIMITS == {"api": 10, "upload": 5, "ai": 3}


async def test_in_memory_limiter_blocks_after_limit():
    limiter = InMemoryRateLimiter()

    results = [await limiter.check("ai", "user-1") for _ in range(4)]

    assert [r.success for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].headers()["Retry-After"]
    assert "Retry-After" not in results[0].headers()


async def test_identifiers_and_buckets_are_independent():
    limiter = InMemoryRateLimiter(limits={"ai": 1, "api": 1})

    assert (await limiter.check("ai", "user-1")).success
    assert (await limiter.check("ai", "user-2")).success
    assert (await limiter.check("api", "user-1")).success
    assert not (await limiter.check("ai", "user-1")).success


async def test_window_slides(monkeypatch):
    limiter = InMemoryRateLimiter(limits={"ai": 1}, window_seconds=60)
    clock = [1000.0]
    monkeypatch.setattr("resumerank.services.rate_limit.time.time", lambda: clock[0])

    assert (await limiter.check("ai", "u")).success
    clock[0] += 30
    assert not (await limiter.check("ai", "u")).success
    clock[0] += 31
    assert (await limiter.check("ai", "u")).success


async def test_reset_clears_window():
    limiter = InMemoryRateLimiter(limits={"ai": 1})
    await limiter.check("ai", "u")

    await limiter.reset("ai", "u")

    assert (await limiter.check("ai", "u")).success


async def test_enforce_raises_429_with_headers():
    limiter = InMemoryRateLimiter(limits={"upload": 1})
    await enforce_rate_limit("upload", "1.2.3.4", limiter)

    with pytest.raises(HTTPException) as exc:
        await enforce_rate_limit("upload", "1.2.3.4", limiter)

    assert exc.value.status_code == 429
    assert exc.value.headers["X-RateLimit-Limit"] == "1"
    assert "Retry-After" in exc.value.headers


def redis_with_pipeline(results=None, error=None):
    pipe = MagicMock()
    if error is not None:
        pipe.execute = AsyncMock(side_effect=error)
    else:
        pipe.execute = AsyncMock(return_value=results)
    client = MagicMock()
    client.pipeline.return_value = pipe
    client.zrem = AsyncMock()
    client.zrange = AsyncMock(return_value=[("member", 1000.0)])
    return client, pipe


async def test_redis_limiter_allows_under_limit():
    client, pipe = redis_with_pipeline(results=[0, 1, 1, True])
    limiter = RedisRateLimiter(client)

    result = await limiter.check("ai", "user-1")

    assert result.success
    assert result.remaining == 1
    pipe.zadd.assert_called_once()
    client.zrem.assert_not_called()


async def test_redis_limiter_rejects_and_drops_its_entry():
    client, _ = redis_with_pipeline(results=[0, 3, 1, True])
    limiter = RedisRateLimiter(client)

    result = await limiter.check("ai", "user-1")

    assert not result.success
    assert result.reset == 1060
    client.zrem.assert_awaited_once()


async def test_redis_limiter_fails_open():
    client, _ = redis_with_pipeline(error=RedisConnectionError("connection refused"))
    limiter = RedisRateLimiter(client)

    result = await limiter.check("api", "1.2.3.4")

    assert result.success
    assert result.remaining == 10
