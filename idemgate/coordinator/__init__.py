"""
Coordinator — at-most-once execution of keyed writes via nodnod graphs.

    from idemgate import coordinator as C

    coord = (
        C.coordinator()
        .ledger(D.SQLAlchemyLedger.from_url("sqlite+aiosqlite:///idem.db"))
        .key_store(K.RedisKeyStore.from_url("redis://localhost:6379/0"))
        .policy(C.Policy.for_operation(C.OperationClass.MESSAGING).require_key())
        .build()
    )

    match await coord.execute(key, request, send_message):
        case Ok(result) if result.replayed: ...
        case Ok(result): ...
        case Error(err) if err.retryable: ...
        case Error(err): ...

Architecture — state nodes validate, polymorphic routes:

    ExecutionSpec
         │
         ▼
    SpecNode ─── UnkeyedNode ─────────────────────┐
         │                                        │
         ▼                                        │
    KeyedNode → KeyStoreLookupNode                │
                     │                            │
         ┌───────────┴───────────┐                │
         ▼                       ▼                │
    VerifiedHitNode         ClaimAttemptNode      │
         │                       │                │
         │      ClaimedNode / LedgerErrorNode /   │
         │      Committed / Busy / Abandoned      │
         └───────────┬───────────┴────────────────┘
                     ▼
         CoordinationOutcome (@polymorphic)
                     │
                     ▼
            FinalResultNode
"""

from idemgate.coordinator._types import (
    ReplaySource,
    IdempotencyResult,
    IdempotencyErrorKind,
    IdempotencyError,
)
from idemgate.coordinator._policy import (
    OnPending,
    OperationClass,
    Policy,
    FAIL,
    WAIT,
)
from idemgate.coordinator._graph import (
    ExecutionSpec,
    CoordinationOutcome,
    run_coordination,
)
from idemgate.coordinator._builder import (
    Executor,
    Coordination,
    Coordinator,
    coordinator,
)

__all__ = (
    # Types
    "ReplaySource",
    "IdempotencyResult",
    "IdempotencyErrorKind",
    "IdempotencyError",
    # Policy
    "OnPending",
    "OperationClass",
    "Policy",
    "FAIL",
    "WAIT",
    # Graph API
    "ExecutionSpec",
    "CoordinationOutcome",
    "run_coordination",
    # Builder API
    "Executor",
    "Coordination",
    "Coordinator",
    "coordinator",
)
