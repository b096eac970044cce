"""
In-memory key store — LRU with per-entry expiry.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta

from idemgate.clock import Clock, SystemClock


class MemoryKeyStore:
    """
    In-process key store.

    Example:
        store = MemoryKeyStore(max_size=10_000)

    Note: Single-process only. Entries are evicted oldest-first once
    max_size is reached, and lazily dropped after their expiry.
    """

    def __init__(self, max_size: int = 1000, clock: Clock | None = None) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._max_size = max_size
        self._clock = clock or SystemClock()
        self._entries: OrderedDict[str, tuple[bytes, datetime]] = OrderedDict()

    @property
    def name(self) -> str:
        return "memory"

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> bytes | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock.now() >= expires_at:
            del self._entries[key]
            return None

        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        if ttl <= timedelta(0):
            self._entries.pop(key, None)
            return

        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)

        self._entries[key] = (value, self._clock.now() + ttl)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None


__all__ = ("MemoryKeyStore",)
