"""
One-time code store.

Keyed by e-mail address with TTL semantics. Only a SHA-256 digest of the
code is kept; a fresh ``issue`` for the same key overwrites the previous code
and resets its attempt counter. Codes are single-use.
"""
from __future__ import annotations

import enum
import hashlib
import secrets
from typing import Protocol

import redis.asyncio as aioredis

_OTP_PREFIX = "otp:email:"
_OTP_TRIES_PREFIX = "otp:email:tries:"


class OtpCheck(str, enum.Enum):
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


def digest(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


class OtpStore(Protocol):
    async def issue(self, key: str, code: str, ttl_seconds: int) -> None: ...

    async def check(self, key: str, code: str, max_attempts: int) -> OtpCheck: ...


class RedisOtpStore:
    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def issue(self, key: str, code: str, ttl_seconds: int) -> None:
        pipe = self._redis.pipeline()
        pipe.set(f"{_OTP_PREFIX}{key}", digest(code), ex=ttl_seconds)
        pipe.set(f"{_OTP_TRIES_PREFIX}{key}", "0", ex=ttl_seconds)
        await pipe.execute()

    async def check(self, key: str, code: str, max_attempts: int) -> OtpCheck:
        stored = await self._redis.get(f"{_OTP_PREFIX}{key}")
        if stored is None:
            return OtpCheck.EXPIRED

        tries = int(await self._redis.get(f"{_OTP_TRIES_PREFIX}{key}") or 0)
        if tries >= max_attempts:
            return OtpCheck.EXHAUSTED

        if not secrets.compare_digest(stored, digest(code)):
            tries = await self._redis.incr(f"{_OTP_TRIES_PREFIX}{key}")
            return OtpCheck.EXHAUSTED if tries >= max_attempts else OtpCheck.INVALID

        await self._redis.delete(f"{_OTP_PREFIX}{key}", f"{_OTP_TRIES_PREFIX}{key}")
        return OtpCheck.VALID
