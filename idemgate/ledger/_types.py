"""
Ledger types — claim records and the tagged claim result.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from idemgate.envelope import ResponseEnvelope

# ═══════════════════════════════════════════════════════════════════════════════
# Claim Status — Record Lifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class ClaimStatus(Enum):
    """
    State of a claim record.

    Lifecycle:
        PENDING → COMMITTED (executor succeeded, response recorded)
                → (deleted) on abandon
                → PENDING (superseded by a new claimant once stale)
        FAILED is only written by ledgers that keep failed attempts; it is
        reclaimable like an abandoned claim.
    """

    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


# ═══════════════════════════════════════════════════════════════════════════════
# Claim Record — System of Record
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ClaimRecord:
    """
    One key's entry in the ledger.

    `response` is present iff COMMITTED and is write-once. `token` identifies
    the claimant that currently owns a PENDING record; commit and abandon are
    only accepted for the matching token.
    """

    key: str
    status: ClaimStatus
    response: ResponseEnvelope | None
    created_at: datetime
    expires_at: datetime
    token: str
    fingerprint: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is ClaimStatus.PENDING

    @property
    def is_committed(self) -> bool:
        return self.status is ClaimStatus.COMMITTED

    @property
    def is_failed(self) -> bool:
        return self.status is ClaimStatus.FAILED

    def age(self, now: datetime) -> timedelta:
        return now - self.created_at

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_stale(self, now: datetime, threshold: timedelta) -> bool:
        """A pending claim held longer than `threshold` is abandoned."""
        return self.is_pending and self.age(now) >= threshold


# ═══════════════════════════════════════════════════════════════════════════════
# Claim Result — Claimed | Conflict
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Claimed:
    """This caller is the sole executor for the key."""

    record: ClaimRecord

    @property
    def key(self) -> str:
        return self.record.key

    @property
    def token(self) -> str:
        return self.record.token


@dataclass(frozen=True, slots=True)
class Conflict:
    """A live record already holds the key."""

    existing: ClaimRecord


type Claim = Claimed | Conflict


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class LedgerErrorKind(Enum):
    UNAVAILABLE = "unavailable"  # backend unreachable or failed
    CLAIM_LOST = "claim_lost"  # token no longer owns the pending record
    CORRUPT = "corrupt"  # stored response cannot be decoded


@dataclass(frozen=True, slots=True)
class LedgerError:
    """Ledger operation error."""

    kind: LedgerErrorKind
    message: str
    cause: Exception | None = None

    @classmethod
    def unavailable(cls, message: str, cause: Exception | None = None) -> LedgerError:
        return cls(LedgerErrorKind.UNAVAILABLE, message, cause)

    @classmethod
    def claim_lost(cls, key: str) -> LedgerError:
        return cls(LedgerErrorKind.CLAIM_LOST, f"Claim on {key!r} is no longer held")


__all__ = (
    "ClaimStatus",
    "ClaimRecord",
    "Claimed",
    "Conflict",
    "Claim",
    "LedgerErrorKind",
    "LedgerError",
)
