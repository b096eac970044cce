"""Redis-backed key store.

Key format: ``{prefix}:{key}``. Values are the raw cache entry bytes, set
with a millisecond expiry (``SET key value PX ttl``).
"""

from __future__ import annotations

from datetime import timedelta

from redis.asyncio import Redis


class RedisKeyStore:
    """Key store over a ``redis.asyncio`` client."""

    def __init__(self, redis: Redis, key_prefix: str = "idem") -> None:
        """
        Args:
            redis: Redis client instance
            key_prefix: Prefix for Redis keys
        """
        self._redis = redis
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "idem") -> RedisKeyStore:
        return cls(Redis.from_url(url), key_prefix=key_prefix)

    @property
    def name(self) -> str:
        return "redis"

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    async def get(self, key: str) -> bytes | None:
        value = await self._redis.get(self._make_key(key))
        if value is None:
            return None
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        ttl_ms = int(ttl.total_seconds() * 1000)
        if ttl_ms <= 0:
            await self._redis.delete(self._make_key(key))
            return
        await self._redis.set(self._make_key(key), value, px=ttl_ms)

    async def delete(self, key: str) -> bool:
        return bool(await self._redis.delete(self._make_key(key)))


__all__ = ("RedisKeyStore",)
