import redis
from typing import Optional
from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)

# Redis connection pool
pool = redis.ConnectionPool(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    password=settings.REDIS_PASSWORD or None,
    decode_responses=True,
    max_connections=20
)

redis_client = redis.Redis(connection_pool=pool)


class RedisService:
    """Redis service for rate limiting."""

    RATE_LIMIT_PREFIX = "ratelimit:check:"

    @staticmethod
    def check_rate_limit(
        ip: str,
        limit: Optional[int] = None,
        window_ms: Optional[int] = None
    ) -> tuple[bool, int]:
        """
        Check and increment the fixed-window counter for an IP.
        Returns (is_allowed, remaining_requests).
        """
        if limit is None:
            limit = settings.RATE_LIMIT_MAX
        if window_ms is None:
            window_ms = settings.RATE_LIMIT_WINDOW_MS

        key = f"{RedisService.RATE_LIMIT_PREFIX}{ip}"

        try:
            pipe = redis_client.pipeline()
            pipe.incr(key)
            pipe.pttl(key)
            current, ttl_ms = pipe.execute()
            current = int(current)

            # A counter without a TTL is a fresh window; the key expiring closes it
            if ttl_ms is None or int(ttl_ms) < 0:
                redis_client.pexpire(key, window_ms)

            if current > limit:
                return False, 0

            return True, limit - current

        except (redis.RedisError, ValueError) as e:
            # If Redis fails, allow the request
            logger.warning(f"Rate limit check failed for {ip}, allowing request: {e}")
            return True, limit

    @staticmethod
    def retry_after(ip: str) -> int:
        """Seconds until the current window for an IP closes."""
        try:
            ttl_ms = redis_client.pttl(f"{RedisService.RATE_LIMIT_PREFIX}{ip}")
        except redis.RedisError:
            ttl_ms = -1
        if ttl_ms is None or ttl_ms < 0:
            return max(settings.RATE_LIMIT_WINDOW_MS // 1000, 1)
        return max((ttl_ms + 999) // 1000, 1)
