"""
Coordinator policy — behavior configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum, auto


# ═══════════════════════════════════════════════════════════════════════════════
# On Pending — what a caller does when the key is in flight
# ═══════════════════════════════════════════════════════════════════════════════


class OnPending(Enum):
    """
    Strategy for a request that finds a live PENDING claim.

    FAIL: Return PENDING_BUSY immediately with a retry hint.
          Use when: the client owns its retry loop.

    WAIT: Poll the ledger for at most pending_wait_timeout and replay the
          committed envelope if it appears, else PENDING_BUSY.
          Use when: concurrent duplicates should all get the response.
    """

    FAIL = auto()
    WAIT = auto()


FAIL = OnPending.FAIL
WAIT = OnPending.WAIT


# ═══════════════════════════════════════════════════════════════════════════════
# Operation Classes — TTL presets
# ═══════════════════════════════════════════════════════════════════════════════


class OperationClass(Enum):
    """Typical validity windows per kind of write."""

    MESSAGING = timedelta(minutes=10)
    FILE_SYNC = timedelta(minutes=30)
    PAYMENTS = timedelta(hours=24)

    @property
    def ttl(self) -> timedelta:
        return self.value


def _delta(
    *,
    seconds: float | None,
    minutes: float | None = None,
    hours: float | None = None,
    delta: timedelta | None,
) -> timedelta:
    if delta is not None:
        return delta
    return timedelta(seconds=seconds or 0, minutes=minutes or 0, hours=hours or 0)


# ═══════════════════════════════════════════════════════════════════════════════
# Policy — Full Configuration
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Coordinator policy.

    Example:
        policy = (
            Policy.for_operation(OperationClass.MESSAGING)
            .with_staleness(seconds=30)
            .with_on_pending(WAIT, seconds=5)
            .scoped("messages.send")
        )

    Note: Immutable — each method returns a new Policy.

    ttl: how long a committed response stays replayable; also bounds a
        pending claim, so it may not be shorter than pending_staleness.
    pending_staleness: age after which a PENDING claim is abandoned.
    execution_timeout: executor bound; defaults to pending_staleness and may
        not exceed it, so a live executor never looks abandoned.
    key_required: reject keyless requests instead of bypassing.
    key_store_ttl: key store expiry; defaults to ttl.
    scope: folded into stored keys so unrelated endpoints never collide.
    """

    ttl: timedelta = OperationClass.MESSAGING.ttl
    pending_staleness: timedelta = timedelta(seconds=30)
    execution_timeout: timedelta | None = None
    key_required: bool = False
    key_store_ttl: timedelta | None = None
    on_pending: OnPending = OnPending.FAIL
    pending_wait_timeout: timedelta = timedelta(seconds=5)
    pending_poll_interval: timedelta = timedelta(milliseconds=50)
    scope: str | None = None

    def __post_init__(self) -> None:
        if self.ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        if self.pending_staleness <= timedelta(0):
            raise ValueError("pending_staleness must be positive")
        # A pending claim expires after ttl; it must not become reclaimable
        # before it goes stale.
        if self.ttl < self.pending_staleness:
            raise ValueError("ttl must not be shorter than pending_staleness")
        if self.execution_timeout is not None:
            if self.execution_timeout <= timedelta(0):
                raise ValueError("execution_timeout must be positive")
            if self.execution_timeout > self.pending_staleness:
                raise ValueError("execution_timeout must not exceed pending_staleness")
        if self.key_store_ttl is not None and self.key_store_ttl <= timedelta(0):
            raise ValueError("key_store_ttl must be positive")
        if self.pending_poll_interval <= timedelta(0):
            raise ValueError("pending_poll_interval must be positive")
        if self.scope == "":
            raise ValueError("scope must be non-empty when set")

    @classmethod
    def for_operation(cls, operation: OperationClass) -> Policy:
        return cls(ttl=operation.ttl)

    # ── derived ─────────────────────────────────────────────────────────────

    @property
    def effective_execution_timeout(self) -> timedelta:
        return self.execution_timeout or self.pending_staleness

    @property
    def effective_key_store_ttl(self) -> timedelta:
        return self.key_store_ttl or self.ttl

    def scope_key(self, key: str) -> str:
        return f"{self.scope}:{key}" if self.scope else key

    # ── fluent ──────────────────────────────────────────────────────────────

    def with_ttl(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        hours: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """
        Set how long committed responses are replayed.

        After TTL, the same key is a new logical operation.

        Example:
            .with_ttl(minutes=10)
            .with_ttl(hours=24)
        """
        return replace(self, ttl=_delta(seconds=seconds, minutes=minutes, hours=hours, delta=delta))

    def with_staleness(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """Set the age after which a pending claim is considered abandoned."""
        return replace(
            self,
            pending_staleness=_delta(seconds=seconds, minutes=minutes, delta=delta),
        )

    def with_execution_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        return replace(self, execution_timeout=_delta(seconds=seconds, delta=delta))

    def with_key_store_ttl(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        return replace(
            self,
            key_store_ttl=_delta(seconds=seconds, minutes=minutes, delta=delta),
        )

    def with_on_pending(
        self,
        strategy: OnPending,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """
        Set the pending strategy; seconds/delta bound the WAIT.

        Example:
            .with_on_pending(WAIT, seconds=5)
        """
        wait = self.pending_wait_timeout
        if seconds is not None or delta is not None:
            wait = _delta(seconds=seconds, delta=delta)
        return replace(self, on_pending=strategy, pending_wait_timeout=wait)

    def with_poll_interval(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        return replace(self, pending_poll_interval=_delta(seconds=seconds, delta=delta))

    def require_key(self, required: bool = True) -> Policy:
        """Reject keyless requests with KEY_REQUIRED instead of bypassing."""
        return replace(self, key_required=required)

    def scoped(self, scope: str) -> Policy:
        return replace(self, scope=scope)


__all__ = (
    "OnPending",
    "FAIL",
    "WAIT",
    "OperationClass",
    "Policy",
)
