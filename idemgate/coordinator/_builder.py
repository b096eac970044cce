"""
Coordinator builder — fluent API over the coordination graph.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from kungfu import LazyCoroResult, Result, Ok, Error

from idemgate import keystore as K
from idemgate.clock import Clock, SystemClock
from idemgate.envelope import FingerprintFn, bound_fingerprint, fingerprint_payload
from idemgate.keystore import KeyStore
from idemgate.ledger import Ledger, LedgerError, MemoryLedger
from idemgate.observability import get_logger
from idemgate.coordinator._policy import Policy
from idemgate.coordinator._types import IdempotencyResult, IdempotencyError

logger = get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Executor Type
# ═══════════════════════════════════════════════════════════════════════════════

# Returns a ResponseEnvelope, Ok(ResponseEnvelope) or Error(e); may raise.
type Executor[P] = Callable[[P], Awaitable[Any]]


# ═══════════════════════════════════════════════════════════════════════════════
# Coordination Builder
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(slots=True, frozen=True)
class Coordination:
    """
    Fluent coordinator builder.
    """
    _ledger: Ledger | None
    _key_store: KeyStore | None
    _policy: Policy
    _fingerprint: FingerprintFn | None
    _clock: Clock | None

    def ledger(self, ledger: Ledger) -> Coordination:
        """Set the durable ledger."""
        return Coordination(
            _ledger=ledger,
            _key_store=self._key_store,
            _policy=self._policy,
            _fingerprint=self._fingerprint,
            _clock=self._clock,
        )

    def key_store(self, store: KeyStore) -> Coordination:
        """Put a key store in front of the ledger."""
        return Coordination(
            _ledger=self._ledger,
            _key_store=store,
            _policy=self._policy,
            _fingerprint=self._fingerprint,
            _clock=self._clock,
        )

    def policy(self, policy: Policy) -> Coordination:
        """Set coordination policy."""
        return Coordination(
            _ledger=self._ledger,
            _key_store=self._key_store,
            _policy=policy,
            _fingerprint=self._fingerprint,
            _clock=self._clock,
        )

    def fingerprint(self, fn: FingerprintFn) -> Coordination:
        """
        Use a custom payload fingerprint.

        Results wider than FINGERPRINT_MAX_LENGTH are stored as their SHA-256.
        """
        return Coordination(
            _ledger=self._ledger,
            _key_store=self._key_store,
            _policy=self._policy,
            _fingerprint=fn,
            _clock=self._clock,
        )

    def without_fingerprint(self) -> Coordination:
        """Disable payload mismatch detection."""
        return Coordination(
            _ledger=self._ledger,
            _key_store=self._key_store,
            _policy=self._policy,
            _fingerprint=None,
            _clock=self._clock,
        )

    def clock(self, clock: Clock) -> Coordination:
        """Set time source (tests use MockClock)."""
        return Coordination(
            _ledger=self._ledger,
            _key_store=self._key_store,
            _policy=self._policy,
            _fingerprint=self._fingerprint,
            _clock=clock,
        )

    def build(self) -> Coordinator:
        """Build coordinator."""
        clock = self._clock if self._clock is not None else SystemClock()
        ledger = self._ledger if self._ledger is not None else MemoryLedger(clock=clock)

        return Coordinator(
            ledger=ledger,
            key_store=self._key_store,
            policy=self._policy,
            fingerprint=self._fingerprint,
            clock=clock,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Coordinator
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(slots=True, frozen=True)
class Coordinator:
    """
    Compiled coordinator.

    Note: Thin wrapper — creates ExecutionSpec and runs graph.
    """
    ledger: Ledger
    key_store: KeyStore | None
    policy: Policy
    fingerprint: FingerprintFn | None
    clock: Clock
    _inflight: set[asyncio.Task[Any]] = field(default_factory=set)

    def execute[P](
        self,
        key: str | None,
        payload: P,
        executor: Executor[P],
    ) -> LazyCoroResult[IdempotencyResult, IdempotencyError]:
        """Run `executor(payload)` at most once per key."""
        from idemgate.coordinator._graph import ExecutionSpec, run_coordination

        client_key = key or None
        storage_key = self.policy.scope_key(client_key) if client_key else None
        fingerprint = (
            bound_fingerprint(self.fingerprint(payload))
            if client_key is not None and self.fingerprint is not None
            else None
        )
        spec = ExecutionSpec(
            key=storage_key,
            client_key=client_key,
            payload=payload,
            executor=executor,
            ledger=self.ledger,
            key_store=self.key_store,
            policy=self.policy,
            clock=self.clock,
            fingerprint=fingerprint,
            inflight=self._inflight,
        )

        async def coordinate() -> Result[IdempotencyResult, IdempotencyError]:
            return await run_coordination(spec)

        return LazyCoroResult(coordinate)

    async def invalidate(self, key: str) -> Result[bool, LedgerError]:
        """Forget `key` everywhere so the next request executes again."""
        storage_key = self.policy.scope_key(key)

        if self.key_store is not None:
            match await K.forget(self.key_store, storage_key):
                case Error(err):
                    logger.warning(
                        "idempotency.key_store_degraded",
                        key=key,
                        store=err.store,
                        error=err.message,
                    )
                case _:
                    pass

        result = await self.ledger.delete(storage_key)
        match result:
            case Ok(True):
                logger.info("idempotency.invalidated", key=key)
            case _:
                pass
        return result

    @property
    def inflight(self) -> int:
        """Owned executions still running (possibly detached from callers)."""
        return len(self._inflight)

    async def drain(self) -> None:
        """Wait for detached executions to settle their claims."""
        while self._inflight:
            await asyncio.gather(*tuple(self._inflight), return_exceptions=True)


# ═══════════════════════════════════════════════════════════════════════════════
# coordinator() — Entry Point
# ═══════════════════════════════════════════════════════════════════════════════

def coordinator() -> Coordination:
    """
    Create coordinator builder.

    Example:
        coord = (
            C.coordinator()
            .ledger(D.SQLAlchemyLedger.from_url("sqlite+aiosqlite:///idem.db"))
            .key_store(K.MemoryKeyStore())
            .policy(C.Policy.for_operation(C.OperationClass.MESSAGING))
            .build()
        )

        match await coord.execute(key, request, send_message):
            case Ok(result): ...
            case Error(err): ...
    """
    return Coordination(
        _ledger=None,
        _key_store=None,
        _policy=Policy(),
        _fingerprint=fingerprint_payload,
        _clock=None,
    )


__all__ = (
    "Executor",
    "Coordination",
    "Coordinator",
    "coordinator",
)
