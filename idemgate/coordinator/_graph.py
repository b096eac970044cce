"""
Coordinator graph — the whole decision procedure as nodnod nodes.

Architecture:
    ExecutionSpec (injected)
         │
         ▼
    SpecNode ──┬── UnkeyedNode ─────────────────────────┐
               │                                        │
               └── KeyedNode → KeyStoreLookupNode       │
                                   │                    │
                  ┌────────────────┴──────┐             │
                  ▼                       ▼             │
           KeyStoreHitNode         KeyStoreMissNode     │
           VerifiedHitNode                │             │
                  │                       ▼             │
                  │               ClaimAttemptNode      │
                  │                       │             │
                  │     ┌─────────────────┼──────────┐  │
                  │     ▼                 ▼          ▼  │
                  │  ClaimedNode  LedgerErrorNode  ConflictNode
                  │     │                 │          │  │
                  │     │                 │          ├── CommittedConflictNode
                  │     │                 │          ├── BusyConflictNode
                  │     │                 │          └── AbandonedConflictNode
                  │     │                 │          │  │
                  └─────┴─────────────────┴──────────┴──┘
                                   │
                                   ▼
                   CoordinationOutcome (@polymorphic)
                                   │
                                   ▼
                            FinalResultNode

Every state node validates exactly one situation and raises NodeError
otherwise, so exactly one outcome case applies per request.

Note: no 'from __future__ import annotations' here, nodnod resolves
dependencies from runtime type hints.
"""

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from nodnod import NodeError, polymorphic, case

from kungfu import Result, Ok, Error

from idemgate import graph as G
from idemgate import keystore as K
from idemgate.clock import Clock
from idemgate.envelope import ResponseEnvelope
from idemgate.keystore import CachedEntry, KeyStore
from idemgate.ledger import (
    Claimed,
    ClaimRecord,
    Conflict,
    Ledger,
    LedgerError,
    LedgerErrorKind,
)
from idemgate.observability import get_logger
from idemgate.coordinator._policy import OnPending, Policy
from idemgate.coordinator._types import (
    IdempotencyError,
    IdempotencyErrorKind,
    IdempotencyResult,
    ReplaySource,
)

logger = get_logger(__name__)

# Hint for SUPERSEDED: the winning claimant is usually close to done.
_RETRY_SOON = timedelta(seconds=1)


# ═══════════════════════════════════════════════════════════════════════════════
# Input — ExecutionSpec (injected)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, eq=False)
class ExecutionSpec:
    """
    One Execute(key, payload, executor) call.

    key: storage key (scope folded in), None when the request carries none.
    client_key: the key as the client sent it, reported back in results.
    fingerprint: payload fingerprint, None when fingerprinting is disabled.
    inflight: the coordinator's registry of detached owned executions.
    """

    key: str | None
    client_key: str | None
    payload: Any
    executor: Any
    ledger: Ledger
    key_store: KeyStore | None
    policy: Policy
    clock: Clock
    fingerprint: str | None
    inflight: set[asyncio.Task[Any]]


def _differs(expected: str | None, stored: str | None) -> bool:
    """Fingerprints conflict only when both sides have one."""
    return expected is not None and stored is not None and expected != stored


# ═══════════════════════════════════════════════════════════════════════════════
# Entry Nodes
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class SpecNode:
    """Wraps ExecutionSpec for graph."""

    def __init__(self, spec: ExecutionSpec) -> None:
        self.spec = spec

    @classmethod
    def __compose__(cls, spec: ExecutionSpec) -> "SpecNode":
        return cls(spec)


@G.node
class UnkeyedNode:
    """Validates: request carries no key."""

    def __init__(self, spec: ExecutionSpec) -> None:
        self.spec = spec

    @classmethod
    def __compose__(cls, spec_node: SpecNode) -> "UnkeyedNode":
        if spec_node.spec.key:
            raise NodeError("Has key")
        return cls(spec_node.spec)


@G.node
class KeyedNode:
    """Validates: request carries a key."""

    def __init__(self, spec: ExecutionSpec, key: str) -> None:
        self.spec = spec
        self.key = key

    @classmethod
    def __compose__(cls, spec_node: SpecNode) -> "KeyedNode":
        key = spec_node.spec.key
        if not key:
            raise NodeError("No key")
        return cls(spec_node.spec, key)


# ═══════════════════════════════════════════════════════════════════════════════
# Key Store — never fatal
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class KeyStoreLookupNode:
    """Consults the key store; any error degrades to a miss."""

    def __init__(self, entry: CachedEntry | None, keyed: KeyedNode) -> None:
        self.entry = entry
        self.keyed = keyed

    @classmethod
    async def __compose__(cls, keyed: KeyedNode) -> "KeyStoreLookupNode":
        store = keyed.spec.key_store
        if store is None:
            return cls(None, keyed)

        match await K.lookup(store, keyed.key):
            case Ok(entry):
                return cls(entry, keyed)
            case Error(err):
                logger.warning(
                    "idempotency.key_store_degraded",
                    key=keyed.spec.client_key,
                    store=err.store,
                    error=err.message,
                )
                return cls(None, keyed)


@G.node
class KeyStoreHitNode:
    """Validates: key store holds an entry."""

    def __init__(self, entry: CachedEntry, spec: ExecutionSpec) -> None:
        self.entry = entry
        self.spec = spec

    @classmethod
    def __compose__(cls, lookup: KeyStoreLookupNode) -> "KeyStoreHitNode":
        if lookup.entry is None:
            raise NodeError("Miss")
        return cls(lookup.entry, lookup.keyed.spec)


@G.node
class VerifiedHitNode:
    """Validates: cached entry was produced for this payload."""

    def __init__(self, hit: KeyStoreHitNode) -> None:
        self.hit = hit

    @classmethod
    def __compose__(cls, hit: KeyStoreHitNode) -> "VerifiedHitNode":
        if _differs(hit.spec.fingerprint, hit.entry.fingerprint):
            raise NodeError("Fingerprint mismatch")
        return cls(hit)


@G.node
class KeyStoreMissNode:
    """Validates: key store had nothing (or failed)."""

    def __init__(self, keyed: KeyedNode) -> None:
        self.keyed = keyed

    @classmethod
    def __compose__(cls, lookup: KeyStoreLookupNode) -> "KeyStoreMissNode":
        if lookup.entry is not None:
            raise NodeError("Hit")
        return cls(lookup.keyed)


# ═══════════════════════════════════════════════════════════════════════════════
# Claim — the correctness anchor
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class ClaimAttemptNode:
    """Attempts the atomic claim in the ledger."""

    def __init__(
        self,
        spec: ExecutionSpec,
        claimed: Claimed | None = None,
        conflict: Conflict | None = None,
        error: LedgerError | None = None,
    ) -> None:
        self.spec = spec
        self.claimed = claimed
        self.conflict = conflict
        self.error = error

    @classmethod
    async def __compose__(cls, miss: KeyStoreMissNode) -> "ClaimAttemptNode":
        spec = miss.keyed.spec
        result = await spec.ledger.claim(
            miss.keyed.key,
            ttl=spec.policy.ttl,
            fingerprint=spec.fingerprint,
        )

        match result:
            case Ok(Claimed() as claimed):
                return cls(spec, claimed=claimed)
            case Ok(Conflict() as conflict):
                return cls(spec, conflict=conflict)
            case Error(err):
                return cls(spec, error=err)
            case _:
                raise NodeError("Unexpected claim result")


@G.node
class ClaimedNode:
    """Validates: this caller won the claim."""

    def __init__(self, claimed: Claimed, spec: ExecutionSpec) -> None:
        self.claimed = claimed
        self.spec = spec

    @classmethod
    def __compose__(cls, attempt: ClaimAttemptNode) -> "ClaimedNode":
        if attempt.claimed is None:
            raise NodeError("Not claimed")
        return cls(attempt.claimed, attempt.spec)


@G.node
class LedgerErrorNode:
    """Validates: ledger failed during claim."""

    def __init__(self, error: LedgerError, spec: ExecutionSpec) -> None:
        self.error = error
        self.spec = spec

    @classmethod
    def __compose__(cls, attempt: ClaimAttemptNode) -> "LedgerErrorNode":
        if attempt.error is None:
            raise NodeError("No ledger error")
        return cls(attempt.error, attempt.spec)


@G.node
class ConflictNode:
    """Validates: a live record already holds the key; decides staleness once."""

    def __init__(self, record: ClaimRecord, stale: bool, spec: ExecutionSpec) -> None:
        self.record = record
        self.stale = stale
        self.spec = spec

    @classmethod
    def __compose__(cls, attempt: ClaimAttemptNode) -> "ConflictNode":
        if attempt.conflict is None:
            raise NodeError("No conflict")
        record = attempt.conflict.existing
        spec = attempt.spec
        stale = record.is_failed or record.is_stale(spec.clock.now(), spec.policy.pending_staleness)
        return cls(record, stale, spec)


@G.node
class CommittedConflictNode:
    """Validates: existing record is COMMITTED."""

    def __init__(self, record: ClaimRecord, spec: ExecutionSpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, conflict: ConflictNode) -> "CommittedConflictNode":
        if not conflict.record.is_committed:
            raise NodeError("Not committed")
        return cls(conflict.record, conflict.spec)


@G.node
class VerifiedCommittedNode:
    """Validates: committed record was produced for this payload."""

    def __init__(self, committed: CommittedConflictNode) -> None:
        self.committed = committed

    @classmethod
    def __compose__(cls, committed: CommittedConflictNode) -> "VerifiedCommittedNode":
        if _differs(committed.spec.fingerprint, committed.record.fingerprint):
            raise NodeError("Fingerprint mismatch")
        return cls(committed)


@G.node
class BusyConflictNode:
    """Validates: existing record is PENDING and younger than the staleness threshold."""

    def __init__(self, record: ClaimRecord, spec: ExecutionSpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, conflict: ConflictNode) -> "BusyConflictNode":
        if not conflict.record.is_pending or conflict.stale:
            raise NodeError("Not busy")
        return cls(conflict.record, conflict.spec)


@G.node
class AbandonedConflictNode:
    """Validates: existing record is FAILED or a stale PENDING claim."""

    def __init__(self, record: ClaimRecord, spec: ExecutionSpec) -> None:
        self.record = record
        self.spec = spec

    @classmethod
    def __compose__(cls, conflict: ConflictNode) -> "AbandonedConflictNode":
        if not conflict.stale:
            raise NodeError("Not abandoned")
        return cls(conflict.record, conflict.spec)


# ═══════════════════════════════════════════════════════════════════════════════
# Outcome Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class OutcomeOk:
    """Successful outcome."""

    envelope: ResponseEnvelope
    source: ReplaySource
    key: str | None
    recovered: bool = False


@dataclass(frozen=True)
class OutcomeError:
    """Error outcome."""

    kind: IdempotencyErrorKind
    message: str
    key: str | None
    retry_after: timedelta | None = None
    cause: Any | None = None


type Outcome = OutcomeOk | OutcomeError


# ═══════════════════════════════════════════════════════════════════════════════
# Shared steps
# ═══════════════════════════════════════════════════════════════════════════════


def _failure(spec: ExecutionSpec, cause: Any) -> OutcomeError:
    logger.warning("idempotency.executor_failed", key=spec.client_key, error=str(cause))
    return OutcomeError(
        kind=IdempotencyErrorKind.EXECUTOR_FAILURE,
        message=f"Executor failed: {cause}",
        key=spec.client_key,
        cause=cause,
    )


def _timed_out(spec: ExecutionSpec) -> OutcomeError:
    timeout = spec.policy.effective_execution_timeout
    logger.warning(
        "idempotency.executor_timeout",
        key=spec.client_key,
        timeout_s=timeout.total_seconds(),
    )
    return OutcomeError(
        kind=IdempotencyErrorKind.EXECUTOR_TIMEOUT,
        message=f"Executor exceeded {timeout.total_seconds():g}s",
        key=spec.client_key,
    )


def _ledger_unavailable(spec: ExecutionSpec, err: LedgerError) -> OutcomeError:
    logger.error(
        "idempotency.ledger_unavailable",
        key=spec.client_key,
        kind=err.kind.value,
        error=err.message,
    )
    return OutcomeError(
        kind=IdempotencyErrorKind.LEDGER_UNAVAILABLE,
        message=err.message,
        key=spec.client_key,
        cause=err,
    )


def _mismatch(spec: ExecutionSpec) -> OutcomeError:
    logger.warning("idempotency.payload_mismatch", key=spec.client_key)
    return OutcomeError(
        kind=IdempotencyErrorKind.PAYLOAD_MISMATCH,
        message=f"Key {spec.client_key!r} was used with a different payload",
        key=spec.client_key,
    )


def _busy(spec: ExecutionSpec, record: ClaimRecord | None) -> OutcomeError:
    retry_after = timedelta(0)
    if record is not None and record.is_pending:
        remaining = spec.policy.pending_staleness - record.age(spec.clock.now())
        retry_after = max(remaining, timedelta(0))
    logger.info(
        "idempotency.pending_busy",
        key=spec.client_key,
        retry_after_s=retry_after.total_seconds(),
    )
    return OutcomeError(
        kind=IdempotencyErrorKind.PENDING_BUSY,
        message=f"Request with key {spec.client_key!r} is in flight",
        key=spec.client_key,
        retry_after=retry_after,
    )


async def _remember(spec: ExecutionSpec, envelope: ResponseEnvelope, fingerprint: str | None) -> None:
    """Best-effort key store population."""
    if spec.key_store is None or spec.key is None:
        return
    entry = CachedEntry(envelope=envelope, fingerprint=fingerprint)
    match await K.remember(spec.key_store, spec.key, entry, spec.policy.effective_key_store_ttl):
        case Error(err):
            logger.warning(
                "idempotency.key_store_degraded",
                key=spec.client_key,
                store=err.store,
                error=err.message,
            )
        case _:
            pass


async def _replay_committed(spec: ExecutionSpec, record: ClaimRecord) -> Outcome:
    if record.response is None:
        return _ledger_unavailable(
            spec,
            LedgerError(LedgerErrorKind.CORRUPT, f"Committed record {record.key!r} has no response"),
        )
    if _differs(spec.fingerprint, record.fingerprint):
        return _mismatch(spec)
    await _remember(spec, record.response, record.fingerprint)
    logger.info("idempotency.replayed", key=spec.client_key, source="ledger")
    return OutcomeOk(envelope=record.response, source=ReplaySource.LEDGER, key=spec.client_key)


async def _invoke(spec: ExecutionSpec) -> Result[ResponseEnvelope, Any]:
    """
    Run the executor under the execution timeout.

    Accepts a ResponseEnvelope, Ok(ResponseEnvelope) or Error(e); raises
    TimeoutError on timeout and TypeError on anything else.
    """
    timeout = spec.policy.effective_execution_timeout.total_seconds()
    async with asyncio.timeout(timeout):
        produced = await spec.executor(spec.payload)

    match produced:
        case ResponseEnvelope():
            return Ok(produced)
        case Ok(ResponseEnvelope() as envelope):
            return Ok(envelope)
        case Error(err):
            return Error(err)
        case _:
            raise TypeError(
                f"Executor must produce a ResponseEnvelope, got {type(produced).__name__}"
            )


async def _abandon(spec: ExecutionSpec, claimed: Claimed) -> None:
    match await spec.ledger.abandon(claimed):
        case Error(err):
            # The claim goes stale and is recovered later.
            logger.error(
                "idempotency.abandon_failed",
                key=spec.client_key,
                error=err.message,
            )
        case _:
            pass


async def _commit(
    spec: ExecutionSpec,
    claimed: Claimed,
    envelope: ResponseEnvelope,
    recovered: bool,
) -> Outcome:
    match await spec.ledger.commit(claimed, envelope, ttl=spec.policy.ttl):
        case Ok(record):
            await _remember(spec, envelope, record.fingerprint)
            logger.info("idempotency.executed", key=spec.client_key, recovered=recovered)
            return OutcomeOk(
                envelope=envelope,
                source=ReplaySource.EXECUTED,
                key=spec.client_key,
                recovered=recovered,
            )
        case Error(err) if err.kind is LedgerErrorKind.CLAIM_LOST:
            logger.warning("idempotency.claim_lost", key=spec.client_key)
            return OutcomeError(
                kind=IdempotencyErrorKind.SUPERSEDED,
                message=f"Claim on {spec.client_key!r} was superseded before commit",
                key=spec.client_key,
                retry_after=_RETRY_SOON,
            )
        case Error(err):
            await _abandon(spec, claimed)
            return _ledger_unavailable(spec, err)
        case _:
            raise TypeError("Unexpected commit result")


async def _settle(spec: ExecutionSpec, claimed: Claimed, recovered: bool) -> Outcome:
    """Execute under an owned claim and always resolve it (commit or abandon)."""
    try:
        produced = await _invoke(spec)
    except TimeoutError:
        await _abandon(spec, claimed)
        return _timed_out(spec)
    except Exception as e:
        await _abandon(spec, claimed)
        return _failure(spec, e)

    match produced:
        case Ok(envelope):
            return await _commit(spec, claimed, envelope, recovered)
        case Error(err):
            await _abandon(spec, claimed)
            return _failure(spec, err)
        case _:
            raise TypeError("Unexpected executor result")


async def _run_owned(spec: ExecutionSpec, claimed: Claimed, *, recovered: bool = False) -> Outcome:
    """
    Settle the claim in a task detached from the caller.

    A cancelled caller stops waiting, but the claim still resolves.
    """
    task = asyncio.ensure_future(_settle(spec, claimed, recovered))
    spec.inflight.add(task)
    task.add_done_callback(spec.inflight.discard)
    return await asyncio.shield(task)


async def _await_pending(spec: ExecutionSpec, record: ClaimRecord) -> Outcome:
    """Bounded poll for the in-flight claim to commit."""
    timeout = spec.policy.pending_wait_timeout.total_seconds()
    interval = spec.policy.pending_poll_interval.total_seconds()
    elapsed = 0.0
    latest: ClaimRecord | None = record

    while elapsed < timeout:
        await asyncio.sleep(interval)
        elapsed += interval

        match await spec.ledger.read(record.key):
            case Error(err):
                return _ledger_unavailable(spec, err)
            case Ok(None):
                # Claimant abandoned, key is free for a retry.
                return _busy(spec, None)
            case Ok(current):
                if current.is_committed:
                    return await _replay_committed(spec, current)
                if current.is_failed or current.is_stale(spec.clock.now(), spec.policy.pending_staleness):
                    return _busy(spec, None)
                latest = current

    return _busy(spec, latest)


# ═══════════════════════════════════════════════════════════════════════════════
# Polymorphic Outcome — each case depends on a validated state node
# ═══════════════════════════════════════════════════════════════════════════════


@polymorphic[Outcome]
class CoordinationOutcome:
    """
    Polymorphic router.

    Note: Guards live in the state nodes; cases only act.
    """

    @case
    async def bypass(cls, node: UnkeyedNode) -> Outcome:
        """No key, not required: execute without deduplication."""
        spec = node.spec
        if spec.policy.key_required:
            raise NodeError("Key required")

        logger.debug("idempotency.bypass")
        try:
            produced = await _invoke(spec)
        except TimeoutError:
            return _timed_out(spec)
        except Exception as e:
            return _failure(spec, e)

        match produced:
            case Ok(envelope):
                return OutcomeOk(envelope=envelope, source=ReplaySource.BYPASS, key=None)
            case Error(err):
                return _failure(spec, err)
            case _:
                raise TypeError("Unexpected executor result")

    @case
    def key_missing(cls, node: UnkeyedNode) -> Outcome:
        """KEY_REQUIRED — policy rejects keyless writes."""
        if not node.spec.policy.key_required:
            raise NodeError("Key optional")
        return OutcomeError(
            kind=IdempotencyErrorKind.KEY_REQUIRED,
            message="Idempotency key is required",
            key=None,
        )

    @case
    def cached_replay(cls, verified: VerifiedHitNode) -> Outcome:
        """Replay straight from the key store."""
        hit = verified.hit
        logger.info("idempotency.replayed", key=hit.spec.client_key, source="key_store")
        return OutcomeOk(
            envelope=hit.entry.envelope,
            source=ReplaySource.KEY_STORE,
            key=hit.spec.client_key,
        )

    @case
    def cached_mismatch(cls, hit: KeyStoreHitNode) -> Outcome:
        """PAYLOAD_MISMATCH detected on the key store entry."""
        if not _differs(hit.spec.fingerprint, hit.entry.fingerprint):
            raise NodeError("Fingerprint matches")
        return _mismatch(hit.spec)

    @case
    def ledger_unavailable(cls, node: LedgerErrorNode) -> Outcome:
        """LEDGER_UNAVAILABLE — fail closed."""
        return _ledger_unavailable(node.spec, node.error)

    @case
    async def execute_claimed(cls, node: ClaimedNode) -> Outcome:
        """Sole executor: run, then commit or abandon."""
        return await _run_owned(node.spec, node.claimed)

    @case
    async def committed_replay(cls, verified: VerifiedCommittedNode) -> Outcome:
        """Replay the committed response from the ledger."""
        node = verified.committed
        return await _replay_committed(node.spec, node.record)

    @case
    def committed_mismatch(cls, node: CommittedConflictNode) -> Outcome:
        """PAYLOAD_MISMATCH detected on the committed record."""
        if not _differs(node.spec.fingerprint, node.record.fingerprint):
            raise NodeError("Fingerprint matches")
        return _mismatch(node.spec)

    @case
    async def pending_busy(cls, node: BusyConflictNode) -> Outcome:
        """In flight elsewhere: wait boundedly or signal retry."""
        if node.spec.policy.on_pending is OnPending.WAIT:
            return await _await_pending(node.spec, node.record)
        return _busy(node.spec, node.record)

    @case
    async def recover_abandoned(cls, node: AbandonedConflictNode) -> Outcome:
        """Supersede an abandoned claim (last claimant wins) and execute."""
        spec = node.spec
        abandoned = node.record
        result = await spec.ledger.supersede(
            abandoned,
            ttl=spec.policy.ttl,
            fingerprint=spec.fingerprint,
        )

        match result:
            case Error(err):
                return _ledger_unavailable(spec, err)
            case Ok(Conflict(existing=current)):
                if current.is_committed:
                    return await _replay_committed(spec, current)
                return _busy(spec, current)
            case Ok(Claimed() as claimed):
                logger.warning(
                    "idempotency.claim_recovered",
                    key=spec.client_key,
                    abandoned_status=abandoned.status.value,
                    abandoned_age_s=abandoned.age(spec.clock.now()).total_seconds(),
                )
                return await _run_owned(spec, claimed, recovered=True)
            case _:
                raise NodeError("Unexpected supersede result")


# ═══════════════════════════════════════════════════════════════════════════════
# Final Node
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class FinalResultNode:
    """Converts Outcome to typed Result."""

    def __init__(self, outcome: Outcome) -> None:
        self.outcome = outcome

    @classmethod
    def __compose__(cls, outcome: CoordinationOutcome) -> "FinalResultNode":
        return cls(outcome.value)

    def to_result(self) -> Result[IdempotencyResult, IdempotencyError]:
        match self.outcome:
            case OutcomeOk(envelope=envelope, source=source, key=key, recovered=recovered):
                return Ok(
                    IdempotencyResult(
                        envelope=envelope,
                        source=source,
                        key=key,
                        recovered=recovered,
                    )
                )
            case OutcomeError(kind=kind, message=message, key=key, retry_after=retry_after, cause=cause):
                return Error(
                    IdempotencyError(
                        kind=kind,
                        message=message,
                        key=key,
                        retry_after=retry_after,
                        cause=cause,
                    )
                )


# ═══════════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════════


async def run_coordination(
    spec: ExecutionSpec,
) -> Result[IdempotencyResult, IdempotencyError]:
    """Coordinate one execution via graph."""
    node = await G.run(FinalResultNode, spec)
    return node.to_result()


__all__ = (
    "ExecutionSpec",
    "Outcome",
    "OutcomeOk",
    "OutcomeError",
    "SpecNode",
    "UnkeyedNode",
    "KeyedNode",
    "KeyStoreLookupNode",
    "KeyStoreHitNode",
    "VerifiedHitNode",
    "KeyStoreMissNode",
    "ClaimAttemptNode",
    "ClaimedNode",
    "LedgerErrorNode",
    "ConflictNode",
    "CommittedConflictNode",
    "VerifiedCommittedNode",
    "BusyConflictNode",
    "AbandonedConflictNode",
    "CoordinationOutcome",
    "FinalResultNode",
    "run_coordination",
)
