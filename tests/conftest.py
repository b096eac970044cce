"""Shared fixtures and fakes for the idemgate test suite."""

import asyncio
from datetime import datetime, timedelta
from typing import Any

import pytest
import structlog
from kungfu import Result, Error

from idemgate.clock import MockClock
from idemgate.envelope import ResponseEnvelope
from idemgate.keystore import MemoryKeyStore
from idemgate.ledger import (
    Claim,
    Claimed,
    ClaimRecord,
    LedgerError,
    MemoryLedger,
)


SEND_PAYLOAD = {"from": "user123", "to": "user456", "message": "Hey there!"}


# =============================================================================
# Executors
# =============================================================================


class MessageExecutor:
    """Counts invocations and returns a fresh message_id per call.

    Args:
        delay: Seconds to sleep before producing the envelope
        failures: Number of leading calls that raise RuntimeError
    """

    def __init__(self, delay: float = 0.0, failures: int = 0) -> None:
        self.calls = 0
        self.delay = delay
        self.failures = failures

    async def __call__(self, payload: Any) -> ResponseEnvelope:
        self.calls += 1
        call = self.calls
        if self.delay:
            await asyncio.sleep(self.delay)
        if call <= self.failures:
            raise RuntimeError("provider down")
        return ResponseEnvelope.json(
            {"message_id": f"msg_{call:04d}", "to": payload["to"]},
            status_code=201,
        )


# =============================================================================
# Failing collaborators
# =============================================================================


class DownLedger:
    """Ledger whose backend is unreachable."""

    def _down(self) -> Error[LedgerError]:
        return Error(LedgerError.unavailable("connection refused"))

    async def claim(self, key: str, *, ttl: timedelta, fingerprint: str | None = None) -> Result[Claim, LedgerError]:
        return self._down()

    async def supersede(
        self, stale: ClaimRecord, *, ttl: timedelta, fingerprint: str | None = None
    ) -> Result[Claim, LedgerError]:
        return self._down()

    async def commit(
        self, claimed: Claimed, envelope: ResponseEnvelope, *, ttl: timedelta
    ) -> Result[ClaimRecord, LedgerError]:
        return self._down()

    async def abandon(self, claimed: Claimed) -> Result[bool, LedgerError]:
        return self._down()

    async def read(self, key: str) -> Result[ClaimRecord | None, LedgerError]:
        return self._down()

    async def read_expired(self, *, now: datetime, limit: int) -> Result[list[ClaimRecord], LedgerError]:
        return self._down()

    async def purge(self, key: str, *, now: datetime) -> Result[bool, LedgerError]:
        return self._down()

    async def delete(self, key: str) -> Result[bool, LedgerError]:
        return self._down()


class BrokenKeyStore:
    """Key store that raises on every call."""

    def __init__(self) -> None:
        self.attempts = 0

    @property
    def name(self) -> str:
        return "broken"

    async def get(self, key: str) -> bytes | None:
        self.attempts += 1
        raise ConnectionError("key store unreachable")

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        self.attempts += 1
        raise ConnectionError("key store unreachable")

    async def delete(self, key: str) -> bool:
        self.attempts += 1
        raise ConnectionError("key store unreachable")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def ledger(clock: MockClock) -> MemoryLedger:
    return MemoryLedger(clock=clock)


@pytest.fixture
def key_store(clock: MockClock) -> MemoryKeyStore:
    return MemoryKeyStore(max_size=100, clock=clock)


@pytest.fixture
def executor() -> MessageExecutor:
    return MessageExecutor()


@pytest.fixture
def payload() -> dict[str, str]:
    return dict(SEND_PAYLOAD)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any setup_logging() between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_executor():
    """Factory for executors with custom latency or leading failures."""

    def _make(delay: float = 0.0, failures: int = 0) -> MessageExecutor:
        return MessageExecutor(delay=delay, failures=failures)

    return _make


@pytest.fixture
def down_ledger() -> DownLedger:
    return DownLedger()


@pytest.fixture
def broken_key_store() -> BrokenKeyStore:
    return BrokenKeyStore()
