"""
Ledger protocol — the durable system of record.

All methods return Result for explicit error handling; backend failures are
`Error(LedgerError)`, never exceptions. `claim` is the only mechanism that
prevents two concurrent executions of one key, so it must be a single atomic
insert-if-absent.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from kungfu import Result

from idemgate.envelope import ResponseEnvelope
from idemgate.ledger._types import Claim, Claimed, ClaimRecord, LedgerError


class Ledger(Protocol):
    """
    Durable ledger protocol.

    Expired records are treated as absent by `read` and may be overwritten
    by `claim`; removing them is the sweeper's job.
    """

    async def claim(
        self,
        key: str,
        *,
        ttl: timedelta,
        fingerprint: str | None = None,
    ) -> Result[Claim, LedgerError]:
        """
        Atomically insert a PENDING record.

        Returns Ok(Claimed) if inserted, Ok(Conflict(existing)) if a live
        record already holds the key.
        """
        ...

    async def supersede(
        self,
        stale: ClaimRecord,
        *,
        ttl: timedelta,
        fingerprint: str | None = None,
    ) -> Result[Claim, LedgerError]:
        """
        Take over an abandoned (stale PENDING or FAILED) record.

        Compare-and-swap on the record's token: if it changed since `stale`
        was read, returns Ok(Conflict(current)).
        """
        ...

    async def commit(
        self,
        claimed: Claimed,
        envelope: ResponseEnvelope,
        *,
        ttl: timedelta,
    ) -> Result[ClaimRecord, LedgerError]:
        """
        PENDING → COMMITTED with the envelope, write-once.

        Error(CLAIM_LOST) if the token no longer owns a pending record.
        """
        ...

    async def abandon(self, claimed: Claimed) -> Result[bool, LedgerError]:
        """Delete the pending record if still owned. Ok(True) if removed."""
        ...

    async def read(self, key: str) -> Result[ClaimRecord | None, LedgerError]:
        """Get the live record. Ok(None) if absent or expired."""
        ...

    async def read_expired(
        self, *, now: datetime, limit: int
    ) -> Result[list[ClaimRecord], LedgerError]:
        """Up to `limit` records whose expires_at has passed, oldest first."""
        ...

    async def purge(self, key: str, *, now: datetime) -> Result[bool, LedgerError]:
        """Delete the record only if it is still expired at `now`."""
        ...

    async def delete(self, key: str) -> Result[bool, LedgerError]:
        """Unconditionally delete. Ok(True) if existed."""
        ...


__all__ = ("Ledger",)
