"""FastAPI dependencies for the marketplace's external collaborators."""
from __future__ import annotations

import redis.asyncio as aioredis
from fastapi import Depends

from shared.database.redis_client import get_redis_client

from app.auth.otp import OtpStore, RedisOtpStore
from app.config import Settings, get_settings
from app.storage.blob import BlobStore, S3BlobStore

_redis: aioredis.Redis | None = None


def get_redis(settings: Settings = Depends(get_settings)) -> aioredis.Redis:
    """Return (and lazily create) the process-wide async Redis client."""
    global _redis
    if _redis is None:
        _redis = get_redis_client(settings.redis_url)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_otp_store(redis: aioredis.Redis = Depends(get_redis)) -> OtpStore:
    return RedisOtpStore(redis)


def get_blob_store(settings: Settings = Depends(get_settings)) -> BlobStore:
    return S3BlobStore(settings)
