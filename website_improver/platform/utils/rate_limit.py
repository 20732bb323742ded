import time
from threading import Lock
from typing import Dict, Tuple

from fastapi import Request

from website_improver.platform.cache.redis import get_redis
from website_improver.platform.config import settings
from website_improver.platform.exceptions import RateLimitedError
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Fixed-window admission control keyed by identity or IP.

    Counters live in Redis so every API instance shares the same window.
    FORCE_IN_MEMORY_RATE_LIMITER switches to a per-process store for tests.
    """

    def __init__(self, prefix: str, limit: int, window_seconds: int, message: str):
        self.prefix = prefix
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self._memory_store: Dict[str, Tuple[int, float]] = {}
        self._lock = Lock()

    def _key(self, identity: str) -> str:
        return f"rl:{self.prefix}:{identity}"

    async def hit(self, identity: str) -> Tuple[bool, int]:
        """Count one request. Returns (allowed, retry_after_seconds)."""
        if settings.FORCE_IN_MEMORY_RATE_LIMITER:
            return self._hit_memory(identity)
        return await self._hit_redis(identity)

    def _hit_memory(self, identity: str) -> Tuple[bool, int]:
        key = self._key(identity)
        now = time.time()
        with self._lock:
            count, expiry = self._memory_store.get(key, (0, now + self.window_seconds))
            if now > expiry:
                count = 0
                expiry = now + self.window_seconds

            if count >= self.limit:
                return False, max(1, int(expiry - now))

            self._memory_store[key] = (count + 1, expiry)
            return True, 0

    async def _hit_redis(self, identity: str) -> Tuple[bool, int]:
        redis = get_redis()
        key = self._key(identity)

        async with redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, self.window_seconds, nx=True)
            current_count, _ = await pipe.execute()

        if int(current_count) > self.limit:
            ttl = await redis.ttl(key)
            return False, max(1, int(ttl))
        return True, 0

    async def check(self, identity: str) -> None:
        allowed, retry_after = await self.hit(identity)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {self.prefix}:{identity}")
            raise RateLimitedError(self.message, retry_after=retry_after)

    def reset(self) -> None:
        with self._lock:
            self._memory_store.clear()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


analysis_rate_limiter = RateLimiter(
    prefix="analysis",
    limit=settings.ANALYSIS_RATE_LIMIT,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    message="Too many analysis requests. Please try again later.",
)

url_check_rate_limiter = RateLimiter(
    prefix="url-check",
    limit=settings.URL_CHECK_RATE_LIMIT,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    message="Too many requests. Please try again later.",
)
