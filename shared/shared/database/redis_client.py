from typing import Any

import redis.asyncio as redis

RedisClient = redis.Redis

# OTP checks sit on the request path; fail fast instead of hanging on a dead Redis
_DEFAULTS: dict[str, Any] = {
    "socket_connect_timeout": 2.0,
    "socket_timeout": 2.0,
    "health_check_interval": 30,
}


def get_redis_client(redis_url: str, **kwargs: Any) -> RedisClient:
    """Text-mode async client; keyword arguments override the timeouts above."""
    options = {**_DEFAULTS, **kwargs}
    return redis.from_url(redis_url, decode_responses=True, **options)
