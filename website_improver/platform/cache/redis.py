from typing import Optional

from redis.asyncio import Redis

from website_improver.platform.config import settings

_redis: Optional[Redis] = None


def get_redis() -> Redis:
    """Lazily create the shared Redis client."""
    global _redis
    if _redis is None:
        _redis = Redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis
