# apps/api/cache.py
import redis
from config import settings

KEY_PREFIX = "clipwave"

redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=True)


def cache_key(*parts: str) -> str:
    return ":".join((KEY_PREFIX,) + tuple(str(p) for p in parts))


def hit_rate_limit(bucket: str, subject: str, limit: int, window_seconds: int) -> bool:
    """Count one hit in a fixed window; True once the window is over its limit."""
    k = cache_key("rl", bucket, subject)
    count = redis_client.incr(k)
    if count == 1:
        redis_client.expire(k, window_seconds)
    return count > limit


def healthcheck() -> bool:
    return bool(redis_client.ping())
