"""Rate limiting utilities."""

from datetime import datetime

import redis

from haskify.db.context import SessionContext
from haskify.db.repositories import RetryAfter


def make_rate_limit_key(ctx: SessionContext, bucket: str) -> str:
    """Create rate limit key from context and bucket.

    Args:
        ctx: Session context
        bucket: Bucket name (e.g., "run_code")

    Returns:
        Rate limit key
    """
    return f"{ctx.session_id}:{bucket}"


class RedisRateLimiter:
    """Redis-based fixed-window rate limiter using INCR + EXPIRE."""

    def __init__(self, redis_client: redis.Redis, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            redis_client: Redis client
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Count a request against ``key`` and report whether it is over quota.

        Returns:
            RetryAfter if over quota, None if allowed
        """
        window_start = int(now.timestamp() / self._window_seconds) * self._window_seconds
        redis_key = f"ratelimit:{key}:{window_start}"

        count = self._redis.incr(redis_key)
        if count == 1:
            self._redis.expire(redis_key, self._window_seconds)

        if count > self._max_requests:
            ttl = self._redis.ttl(redis_key)
            return RetryAfter(seconds=max(1, ttl))

        return None
