"""Tests for rate limiting."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

from haskify.db.context import SessionContext
from haskify.db.inmemory import InMemoryRateLimiter
from haskify.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from haskify.ratelimit import RedisRateLimiter, make_rate_limit_key


def test_rate_limiter_allows_under_quota() -> None:
    limiter = InMemoryRateLimiter(max_requests=5, window_seconds=60)
    now = datetime(2026, 1, 1, 12, 0)

    for i in range(5):
        assert limiter.check_quota("s1:run_code", now + timedelta(seconds=i)) is None


def test_rate_limiter_blocks_over_quota() -> None:
    limiter = InMemoryRateLimiter(max_requests=3, window_seconds=60)
    now = datetime(2026, 1, 1, 12, 0)

    for _ in range(3):
        assert limiter.check_quota("s1:run_code", now) is None

    retry_after = limiter.check_quota("s1:run_code", now + timedelta(seconds=10))
    assert retry_after is not None
    assert retry_after.seconds == 50


def test_rate_limiter_resets_after_window() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60)
    now = datetime(2026, 1, 1, 12, 0)

    assert limiter.check_quota("k", now) is None
    assert limiter.check_quota("k", now) is not None
    assert limiter.check_quota("k", now + timedelta(seconds=61)) is None


def test_rate_limit_key_is_per_session() -> None:
    assert make_rate_limit_key(SessionContext("abc"), "run_code") == "abc:run_code"


def test_middleware_limits_only_mapped_paths() -> None:
    middleware = RateLimitMiddleware(InMemoryRateLimiter(max_requests=1), create_default_bucket_map())
    ctx = SessionContext("s1")
    now = datetime(2026, 1, 1, 12, 0)

    assert middleware.check_rate_limit("/run-python", ctx, now) == (True, 0)
    allowed, retry_after = middleware.check_rate_limit("/run-python", ctx, now)
    assert not allowed
    assert retry_after > 0

    # Unmapped paths and other sessions are unaffected
    assert middleware.check_rate_limit("/ai/ask", ctx, now) == (True, 0)
    assert middleware.check_rate_limit("/run-python", SessionContext("s2"), now) == (True, 0)


def test_redis_rate_limiter_counts_per_window() -> None:
    redis_client = MagicMock()
    redis_client.incr.side_effect = [1, 2, 3]
    redis_client.ttl.return_value = 42
    limiter = RedisRateLimiter(redis_client, max_requests=2, window_seconds=900)
    now = datetime(2026, 1, 1, 12, 0)

    assert limiter.check_quota("s1:run_code", now) is None
    assert limiter.check_quota("s1:run_code", now) is None
    retry_after = limiter.check_quota("s1:run_code", now)

    assert retry_after is not None
    assert retry_after.seconds == 42
    redis_client.expire.assert_called_once()
    key = redis_client.incr.call_args.args[0]
    assert key.startswith("ratelimit:s1:run_code:")
