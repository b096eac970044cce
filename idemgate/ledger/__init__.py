"""
Ledger — durable system of record with an atomic claim.

    from idemgate import ledger as D

    ledger = D.MemoryLedger()
    ledger = D.SQLAlchemyLedger.from_url("postgresql+asyncpg://...")

    match await ledger.claim("send:abc123xyz", ttl=timedelta(minutes=10)):
        case Ok(D.Claimed() as claimed): ...       # sole executor
        case Ok(D.Conflict(existing=record)): ...  # someone else holds it
        case Error(err): ...                       # fail closed
"""

from idemgate.ledger._types import (
    ClaimStatus,
    ClaimRecord,
    Claimed,
    Conflict,
    Claim,
    LedgerErrorKind,
    LedgerError,
)
from idemgate.ledger._ledger import Ledger
from idemgate.ledger._memory import MemoryLedger
from idemgate.ledger._sqlalchemy import (
    Base,
    ClaimTable,
    SQLAlchemyLedger,
    SUPPORTED_DIALECTS,
)

__all__ = (
    # Types
    "ClaimStatus",
    "ClaimRecord",
    "Claimed",
    "Conflict",
    "Claim",
    "LedgerErrorKind",
    "LedgerError",
    # Protocol
    "Ledger",
    # Implementations
    "MemoryLedger",
    "SQLAlchemyLedger",
    "Base",
    "ClaimTable",
    "SUPPORTED_DIALECTS",
)
