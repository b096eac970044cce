"""
SQLAlchemy ledger — claims in a relational table.

Usage:
    engine = create_async_engine("postgresql+asyncpg://...")
    ledger = SQLAlchemyLedger(engine)
    await ledger.create_schema()

The primary key on `idempotency_key` is the uniqueness constraint that makes
`claim` atomic:

    INSERT ... ON CONFLICT (idempotency_key) DO NOTHING   -- sqlite, postgresql
    INSERT IGNORE ...                                     -- mysql, mariadb

Commit, abandon and supersede are compare-and-swap UPDATE/DELETE statements
on (`claim_token`, `status`); a zero rowcount means the caller no longer owns
the claim.
"""

from datetime import UTC, datetime, timedelta
from typing import Any, cast

from sqlalchemy import DateTime, LargeBinary, String, delete, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.expression import Executable

from kungfu import Result, Ok, Error

from idemgate.clock import Clock, SystemClock
from idemgate.envelope import (
    FINGERPRINT_MAX_LENGTH,
    EnvelopeDecodeError,
    ResponseEnvelope,
    decode_envelope,
    encode_envelope,
)
from idemgate.ledger._memory import new_token
from idemgate.ledger._types import (
    Claim,
    Claimed,
    ClaimRecord,
    ClaimStatus,
    Conflict,
    LedgerError,
    LedgerErrorKind,
)

SUPPORTED_DIALECTS = frozenset({"sqlite", "postgresql", "mysql", "mariadb"})

# An expired row can be purged between our INSERT and SELECT.
_CLAIM_ATTEMPTS = 3


# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class ClaimTable(Base):
    """
    Persisted claim record.

    Timestamps are stored as naive UTC so comparisons behave the same on
    every backend.
    """

    __tablename__ = "idempotency_claims"

    idempotency_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    response_body: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    fingerprint: Mapped[str | None] = mapped_column(
        String(FINGERPRINT_MAX_LENGTH), nullable=True
    )
    claim_token: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)


def _to_db(dt: datetime) -> datetime:
    return dt.astimezone(UTC).replace(tzinfo=None)


def _from_db(dt: datetime) -> datetime:
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def _rowcount(result: Any) -> int:
    return cast(CursorResult[Any], result).rowcount


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyLedger:
    """
    Durable ledger over an async SQLAlchemy engine.

    Example:
        ledger = SQLAlchemyLedger.from_url("sqlite+aiosqlite:///claims.db")
        await ledger.create_schema()
    """

    def __init__(self, engine: AsyncEngine, clock: Clock | None = None) -> None:
        dialect = engine.dialect.name
        if dialect not in SUPPORTED_DIALECTS:
            raise ValueError(
                f"Unsupported dialect {dialect!r}: atomic claim needs one of {sorted(SUPPORTED_DIALECTS)}"
            )
        self._engine = engine
        self._dialect = dialect
        self._sessions: async_sessionmaker[AsyncSession] = async_sessionmaker(
            engine, expire_on_commit=False
        )
        self._clock = clock or SystemClock()

    @classmethod
    def from_url(cls, url: str, clock: Clock | None = None, **engine_kw: Any) -> "SQLAlchemyLedger":
        return cls(create_async_engine(url, **engine_kw), clock=clock)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    # ── statements ──────────────────────────────────────────────────────────

    def _insert_if_absent(self, values: dict[str, Any]) -> Executable:
        match self._dialect:
            case "sqlite":
                return (
                    sqlite.insert(ClaimTable)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["idempotency_key"])
                )
            case "postgresql":
                return (
                    postgresql.insert(ClaimTable)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["idempotency_key"])
                )
            case _:
                return insert(ClaimTable).values(**values).prefix_with("IGNORE")

    @staticmethod
    def _pending_values(
        key: str, now: datetime, ttl: timedelta, fingerprint: str | None
    ) -> tuple[dict[str, Any], ClaimRecord]:
        record = ClaimRecord(
            key=key,
            status=ClaimStatus.PENDING,
            response=None,
            created_at=now,
            expires_at=now + ttl,
            token=new_token(),
            fingerprint=fingerprint,
        )
        values = {
            "idempotency_key": key,
            "status": ClaimStatus.PENDING.value,
            "response_body": None,
            "fingerprint": fingerprint,
            "claim_token": record.token,
            "created_at": _to_db(record.created_at),
            "expires_at": _to_db(record.expires_at),
        }
        return values, record

    @staticmethod
    def _to_record(row: ClaimTable) -> ClaimRecord:
        status = ClaimStatus(row.status)
        response = None
        if status is ClaimStatus.COMMITTED and row.response_body is not None:
            response = decode_envelope(row.response_body)
        return ClaimRecord(
            key=row.idempotency_key,
            status=status,
            response=response,
            created_at=_from_db(row.created_at),
            expires_at=_from_db(row.expires_at),
            token=row.claim_token,
            fingerprint=row.fingerprint,
        )

    async def _select(self, session: AsyncSession, key: str) -> ClaimTable | None:
        result = await session.execute(
            select(ClaimTable).where(ClaimTable.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    # ── protocol ────────────────────────────────────────────────────────────

    async def claim(
        self,
        key: str,
        *,
        ttl: timedelta,
        fingerprint: str | None = None,
    ) -> Result[Claim, LedgerError]:
        """Insert-if-absent, then take over the row if it has expired."""
        try:
            for _ in range(_CLAIM_ATTEMPTS):
                now = self._clock.now()
                values, record = self._pending_values(key, now, ttl, fingerprint)

                async with self._sessions.begin() as session:
                    inserted = await session.execute(self._insert_if_absent(values))
                    if _rowcount(inserted) == 1:
                        return Ok(Claimed(record))

                    takeover = await session.execute(
                        update(ClaimTable)
                        .where(
                            ClaimTable.idempotency_key == key,
                            ClaimTable.expires_at <= _to_db(now),
                        )
                        .values(**values)
                    )
                    if _rowcount(takeover) == 1:
                        return Ok(Claimed(record))

                    row = await self._select(session, key)
                    if row is not None:
                        return Ok(Conflict(self._to_record(row)))

            return Error(LedgerError.unavailable(f"Claim on {key!r} did not settle"))

        except EnvelopeDecodeError as e:
            return Error(LedgerError(LedgerErrorKind.CORRUPT, f"Corrupt record {key!r}: {e}", e))
        except (SQLAlchemyError, OSError) as e:
            return Error(LedgerError.unavailable(f"Failed to claim: {e}", e))

    async def supersede(
        self,
        stale: ClaimRecord,
        *,
        ttl: timedelta,
        fingerprint: str | None = None,
    ) -> Result[Claim, LedgerError]:
        try:
            now = self._clock.now()
            values, record = self._pending_values(stale.key, now, ttl, fingerprint)

            async with self._sessions.begin() as session:
                swapped = await session.execute(
                    update(ClaimTable)
                    .where(
                        ClaimTable.idempotency_key == stale.key,
                        ClaimTable.claim_token == stale.token,
                        ClaimTable.status.in_(
                            (ClaimStatus.PENDING.value, ClaimStatus.FAILED.value)
                        ),
                    )
                    .values(**values)
                )
                if _rowcount(swapped) == 1:
                    return Ok(Claimed(record))

                row = await self._select(session, stale.key)
                current = self._to_record(row) if row is not None else None

        except EnvelopeDecodeError as e:
            return Error(LedgerError(LedgerErrorKind.CORRUPT, f"Corrupt record {stale.key!r}: {e}", e))
        except (SQLAlchemyError, OSError) as e:
            return Error(LedgerError.unavailable(f"Failed to supersede: {e}", e))

        if current is None or current.is_expired(now):
            return await self.claim(stale.key, ttl=ttl, fingerprint=fingerprint)
        return Ok(Conflict(current))

    async def commit(
        self,
        claimed: Claimed,
        envelope: ResponseEnvelope,
        *,
        ttl: timedelta,
    ) -> Result[ClaimRecord, LedgerError]:
        try:
            expires_at = self._clock.now() + ttl
            async with self._sessions.begin() as session:
                result = await session.execute(
                    update(ClaimTable)
                    .where(
                        ClaimTable.idempotency_key == claimed.key,
                        ClaimTable.claim_token == claimed.token,
                        ClaimTable.status == ClaimStatus.PENDING.value,
                    )
                    .values(
                        status=ClaimStatus.COMMITTED.value,
                        response_body=encode_envelope(envelope),
                        expires_at=_to_db(expires_at),
                    )
                )
                if _rowcount(result) != 1:
                    return Error(LedgerError.claim_lost(claimed.key))

            return Ok(
                ClaimRecord(
                    key=claimed.key,
                    status=ClaimStatus.COMMITTED,
                    response=envelope,
                    created_at=claimed.record.created_at,
                    expires_at=expires_at,
                    token=claimed.token,
                    fingerprint=claimed.record.fingerprint,
                )
            )

        except (SQLAlchemyError, OSError) as e:
            return Error(LedgerError.unavailable(f"Failed to commit: {e}", e))

    async def abandon(self, claimed: Claimed) -> Result[bool, LedgerError]:
        try:
            async with self._sessions.begin() as session:
                result = await session.execute(
                    delete(ClaimTable).where(
                        ClaimTable.idempotency_key == claimed.key,
                        ClaimTable.claim_token == claimed.token,
                        ClaimTable.status == ClaimStatus.PENDING.value,
                    )
                )
                return Ok(_rowcount(result) == 1)

        except (SQLAlchemyError, OSError) as e:
            return Error(LedgerError.unavailable(f"Failed to abandon: {e}", e))

    async def read(self, key: str) -> Result[ClaimRecord | None, LedgerError]:
        try:
            async with self._sessions() as session:
                row = await self._select(session, key)
                if row is None:
                    return Ok(None)
                record = self._to_record(row)
                if record.is_expired(self._clock.now()):
                    return Ok(None)
                return Ok(record)

        except EnvelopeDecodeError as e:
            return Error(LedgerError(LedgerErrorKind.CORRUPT, f"Corrupt record {key!r}: {e}", e))
        except (SQLAlchemyError, OSError) as e:
            return Error(LedgerError.unavailable(f"Failed to read: {e}", e))

    async def read_expired(
        self, *, now: datetime, limit: int
    ) -> Result[list[ClaimRecord], LedgerError]:
        try:
            async with self._sessions() as session:
                result = await session.execute(
                    select(ClaimTable)
                    .where(ClaimTable.expires_at <= _to_db(now))
                    .order_by(ClaimTable.expires_at)
                    .limit(limit)
                )
                return Ok([self._to_record(row) for row in result.scalars()])

        except EnvelopeDecodeError as e:
            return Error(LedgerError(LedgerErrorKind.CORRUPT, f"Corrupt expired record: {e}", e))
        except (SQLAlchemyError, OSError) as e:
            return Error(LedgerError.unavailable(f"Failed to read expired: {e}", e))

    async def purge(self, key: str, *, now: datetime) -> Result[bool, LedgerError]:
        try:
            async with self._sessions.begin() as session:
                result = await session.execute(
                    delete(ClaimTable).where(
                        ClaimTable.idempotency_key == key,
                        ClaimTable.expires_at <= _to_db(now),
                    )
                )
                return Ok(_rowcount(result) == 1)

        except (SQLAlchemyError, OSError) as e:
            return Error(LedgerError.unavailable(f"Failed to purge: {e}", e))

    async def delete(self, key: str) -> Result[bool, LedgerError]:
        try:
            async with self._sessions.begin() as session:
                result = await session.execute(
                    delete(ClaimTable).where(ClaimTable.idempotency_key == key)
                )
                return Ok(_rowcount(result) == 1)

        except (SQLAlchemyError, OSError) as e:
            return Error(LedgerError.unavailable(f"Failed to delete: {e}", e))


__all__ = ("Base", "ClaimTable", "SQLAlchemyLedger", "SUPPORTED_DIALECTS")
