"""
Sliding-window rate limiting.

The Redis limiter keeps one sorted set of request timestamps per key. The
in-memory limiter is for development and tests only: its window lives in one
process and is not shared between workers.
"""
import logging
import math
import time
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

import redis.asyncio as redis
from fastapi import Depends, HTTPException, Request
from redis.exceptions import RedisError

from resumerank.core.config import settings
from resumerank.services.activity_log import client_ip

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

# Requests per minute
RATE_LIMITS: Dict[str, int] = {
    "api": 10,
    "upload": 5,
    "ai": 3,
}


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int

    @property
    def retry_after(self) -> int:
        return max(1, self.reset - int(time.time()))

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if not self.success:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class InMemoryRateLimiter:
    def __init__(self, limits: Optional[Dict[str, int]] = None, window_seconds: int = WINDOW_SECONDS):
        self.limits = dict(limits or RATE_LIMITS)
        self.window_seconds = window_seconds
        self.requests: Dict[str, List[float]] = {}

    async def check(self, bucket: str, identifier: str) -> RateLimitResult:
        limit = self.limits[bucket]
        now = time.time()
        key = f"{bucket}:{identifier}"
        window = [ts for ts in self.requests.get(key, []) if ts > now - self.window_seconds]

        if len(window) >= limit:
            self.requests[key] = window
            reset = math.ceil(window[0] + self.window_seconds)
            return RateLimitResult(success=False, limit=limit, remaining=0, reset=reset)

        window.append(now)
        self.requests[key] = window
        reset = math.ceil(window[0] + self.window_seconds)
        return RateLimitResult(success=True, limit=limit, remaining=limit - len(window), reset=reset)

    async def reset(self, bucket: str, identifier: str) -> None:
        self.requests.pop(f"{bucket}:{identifier}", None)


class RedisRateLimiter:
    def __init__(self, redis_client: redis.Redis, limits: Optional[Dict[str, int]] = None,
                 window_seconds: int = WINDOW_SECONDS):
        self.redis = redis_client
        self.limits = dict(limits or RATE_LIMITS)
        self.window_seconds = window_seconds

    async def check(self, bucket: str, identifier: str) -> RateLimitResult:
        limit = self.limits[bucket]
        now = time.time()
        key = f"ratelimit:{bucket}:{identifier}"
        member = f"{now}:{uuid.uuid4().hex[:8]}"

        try:
            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, now - self.window_seconds)
            pipe.zcard(key)
            pipe.zadd(key, {member: now})
            pipe.expire(key, self.window_seconds + 60)
            results = await pipe.execute()
            current = results[1]

            if current >= limit:
                await self.redis.zrem(key, member)
                oldest = await self.redis.zrange(key, 0, 0, withscores=True)
                start = oldest[0][1] if oldest else now
                return RateLimitResult(success=False, limit=limit, remaining=0,
                                       reset=math.ceil(start + self.window_seconds))

            return RateLimitResult(success=True, limit=limit, remaining=limit - current - 1,
                                   reset=math.ceil(now + self.window_seconds))
        except RedisError as e:
            # Fail open when Redis is unavailable
            logger.error(f"Redis error in rate limiter: {e}")
            return RateLimitResult(success=True, limit=limit, remaining=limit,
                                   reset=math.ceil(now + self.window_seconds))

    async def reset(self, bucket: str, identifier: str) -> None:
        await self.redis.delete(f"ratelimit:{bucket}:{identifier}")


_limiter = None


def get_rate_limiter():
    global _limiter
    if _limiter is None:
        if settings.REDIS_URL:
            _limiter = RedisRateLimiter(redis.from_url(settings.REDIS_URL, decode_responses=True))
        else:
            logger.warning("REDIS_URL not set, using the in-memory rate limiter")
            _limiter = InMemoryRateLimiter()
    return _limiter


def raise_rate_limited(result: RateLimitResult) -> None:
    raise HTTPException(
        status_code=429,
        detail="Too many requests. Please try again later.",
        headers=result.headers(),
    )


async def enforce_rate_limit(bucket: str, identifier: str, limiter=None) -> RateLimitResult:
    limiter = limiter or get_rate_limiter()
    result = await limiter.check(bucket, identifier)
    if not result.success:
        logger.warning(f"Rate limit hit: {bucket} for {identifier}")
        raise_rate_limited(result)
    return result


def rate_limit(bucket: str):
    """FastAPI dependency limiting the route per client IP."""
    async def dependency(request: Request, limiter=Depends(get_rate_limiter)) -> RateLimitResult:
        return await enforce_rate_limit(bucket, client_ip(request) or "anonymous", limiter)
    return dependency
