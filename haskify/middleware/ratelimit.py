"""Path-based rate limit checks."""

from datetime import datetime

from haskify.db.context import SessionContext
from haskify.db.repositories import RateLimiter
from haskify.ratelimit import make_rate_limit_key


class RateLimitMiddleware:
    """Maps request paths to buckets and enforces per-session quotas."""

    def __init__(self, limiter: RateLimiter, bucket_map: dict[str, str]) -> None:
        """Initialize rate limit middleware.

        Args:
            limiter: Rate limiter implementation
            bucket_map: Mapping from path prefixes to bucket names
        """
        self._limiter = limiter
        self._bucket_map = bucket_map

    def check_rate_limit(
        self, path: str, ctx: SessionContext, now: datetime | None = None
    ) -> tuple[bool, int]:
        """Check if request is allowed under rate limit.

        Args:
            path: Request path
            ctx: Session context
            now: Current time (for testing)

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        if now is None:
            now = datetime.utcnow()

        bucket = self._get_bucket(path)
        if bucket is None:
            return (True, 0)

        retry_after = self._limiter.check_quota(make_rate_limit_key(ctx, bucket), now)
        if retry_after is None:
            return (True, 0)

        return (False, retry_after.seconds)

    def _get_bucket(self, path: str) -> str | None:
        for prefix, bucket in self._bucket_map.items():
            if path.startswith(prefix):
                return bucket
        return None


def create_default_bucket_map() -> dict[str, str]:
    """Paths that are rate limited, by bucket."""
    return {"/run-python": "run_code"}
