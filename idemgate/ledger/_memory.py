"""
In-memory ledger.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import replace
from datetime import datetime, timedelta

from kungfu import Result, Ok, Error

from idemgate.clock import Clock, SystemClock
from idemgate.envelope import ResponseEnvelope
from idemgate.ledger._types import (
    Claim,
    Claimed,
    ClaimRecord,
    ClaimStatus,
    Conflict,
    LedgerError,
)


def new_token() -> str:
    return uuid.uuid4().hex


class MemoryLedger:
    """
    In-memory ledger.

    Note: Single-process only. The asyncio lock makes claim an atomic
    insert-if-absent within one event loop; nothing survives a restart.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._records: dict[str, ClaimRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def _live(self, key: str, now: datetime) -> ClaimRecord | None:
        record = self._records.get(key)
        if record is None or record.is_expired(now):
            return None
        return record

    def _pending(
        self, key: str, now: datetime, ttl: timedelta, fingerprint: str | None
    ) -> Claimed:
        record = ClaimRecord(
            key=key,
            status=ClaimStatus.PENDING,
            response=None,
            created_at=now,
            expires_at=now + ttl,
            token=new_token(),
            fingerprint=fingerprint,
        )
        self._records[key] = record
        return Claimed(record)

    async def claim(
        self,
        key: str,
        *,
        ttl: timedelta,
        fingerprint: str | None = None,
    ) -> Result[Claim, LedgerError]:
        async with self._lock:
            now = self._clock.now()
            existing = self._live(key, now)
            if existing is not None:
                return Ok(Conflict(existing))
            return Ok(self._pending(key, now, ttl, fingerprint))

    async def supersede(
        self,
        stale: ClaimRecord,
        *,
        ttl: timedelta,
        fingerprint: str | None = None,
    ) -> Result[Claim, LedgerError]:
        async with self._lock:
            now = self._clock.now()
            current = self._live(stale.key, now)
            if current is None:
                return Ok(self._pending(stale.key, now, ttl, fingerprint))
            if current.token != stale.token or current.is_committed:
                return Ok(Conflict(current))
            return Ok(self._pending(stale.key, now, ttl, fingerprint))

    async def commit(
        self,
        claimed: Claimed,
        envelope: ResponseEnvelope,
        *,
        ttl: timedelta,
    ) -> Result[ClaimRecord, LedgerError]:
        async with self._lock:
            current = self._records.get(claimed.key)
            if current is None or not current.is_pending or current.token != claimed.token:
                return Error(LedgerError.claim_lost(claimed.key))

            committed = replace(
                current,
                status=ClaimStatus.COMMITTED,
                response=envelope,
                expires_at=self._clock.now() + ttl,
            )
            self._records[claimed.key] = committed
            return Ok(committed)

    async def abandon(self, claimed: Claimed) -> Result[bool, LedgerError]:
        async with self._lock:
            current = self._records.get(claimed.key)
            if current is None or not current.is_pending or current.token != claimed.token:
                return Ok(False)
            del self._records[claimed.key]
            return Ok(True)

    async def read(self, key: str) -> Result[ClaimRecord | None, LedgerError]:
        async with self._lock:
            return Ok(self._live(key, self._clock.now()))

    async def read_expired(
        self, *, now: datetime, limit: int
    ) -> Result[list[ClaimRecord], LedgerError]:
        async with self._lock:
            expired = sorted(
                (r for r in self._records.values() if r.is_expired(now)),
                key=lambda r: r.expires_at,
            )
            return Ok(expired[:limit])

    async def purge(self, key: str, *, now: datetime) -> Result[bool, LedgerError]:
        async with self._lock:
            record = self._records.get(key)
            if record is None or not record.is_expired(now):
                return Ok(False)
            del self._records[key]
            return Ok(True)

    async def delete(self, key: str) -> Result[bool, LedgerError]:
        async with self._lock:
            return Ok(self._records.pop(key, None) is not None)


__all__ = ("MemoryLedger", "new_token")
