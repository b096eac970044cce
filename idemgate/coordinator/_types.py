"""
Coordinator result types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum, auto
from typing import Any

from idemgate.envelope import ResponseEnvelope


class ReplaySource(Enum):
    """Where the returned envelope came from."""

    EXECUTED = auto()  # this call ran the executor and committed
    KEY_STORE = auto()  # replayed from the key store
    LEDGER = auto()  # replayed from the ledger
    BYPASS = auto()  # no key, executed without deduplication


@dataclass(frozen=True, slots=True)
class IdempotencyResult:
    """
    Successful coordination.

    Note: `recovered` is True when this call superseded an abandoned claim.
    """

    envelope: ResponseEnvelope
    source: ReplaySource
    key: str | None
    recovered: bool = False

    @property
    def replayed(self) -> bool:
        return self.source in (ReplaySource.KEY_STORE, ReplaySource.LEDGER)


class IdempotencyErrorKind(Enum):
    """Failures surfaced to the caller."""

    KEY_REQUIRED = auto()  # key missing and policy requires one
    PAYLOAD_MISMATCH = auto()  # key reused with a different payload
    PENDING_BUSY = auto()  # identical request in flight, retry shortly
    EXECUTOR_FAILURE = auto()  # executor raised or returned Error
    EXECUTOR_TIMEOUT = auto()  # executor exceeded execution_timeout
    SUPERSEDED = auto()  # claim recovered by another caller mid-execution
    LEDGER_UNAVAILABLE = auto()  # cannot guarantee idempotency, write rejected

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {
        IdempotencyErrorKind.PENDING_BUSY,
        IdempotencyErrorKind.EXECUTOR_TIMEOUT,
        IdempotencyErrorKind.SUPERSEDED,
        IdempotencyErrorKind.LEDGER_UNAVAILABLE,
    }
)


@dataclass(frozen=True, slots=True)
class IdempotencyError:
    """
    Coordination error.

    Note: `cause` holds the executor's exception or Error value for
    EXECUTOR_FAILURE, and the ledger error for LEDGER_UNAVAILABLE.
    """

    kind: IdempotencyErrorKind
    message: str
    key: str | None = None
    retry_after: timedelta | None = None
    cause: Any | None = None

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


__all__ = (
    "ReplaySource",
    "IdempotencyResult",
    "IdempotencyErrorKind",
    "IdempotencyError",
)
