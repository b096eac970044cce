"""Unit tests for the idempotency coordinator."""

import asyncio
from datetime import timedelta
from typing import Any

import pytest
from kungfu import Ok, Error

from idemgate import coordinator as C
from idemgate import sweep as W
from idemgate.envelope import ResponseEnvelope
from idemgate.keystore import CachedEntry
from idemgate.ledger import LedgerError, MemoryLedger


def _ok(result: Any) -> C.IdempotencyResult:
    match result:
        case Ok(value):
            return value
        case Error(err):
            pytest.fail(f"expected Ok, got {err}")


def _err(result: Any) -> C.IdempotencyError:
    match result:
        case Error(err):
            return err
        case Ok(value):
            pytest.fail(f"expected Error, got {value}")


@pytest.fixture
def policy() -> C.Policy:
    return C.Policy.for_operation(C.OperationClass.MESSAGING)


@pytest.fixture
def coord(ledger, key_store, clock, policy) -> C.Coordinator:
    return C.coordinator().ledger(ledger).key_store(key_store).policy(policy).clock(clock).build()


def waiting(policy: C.Policy) -> C.Policy:
    return policy.with_on_pending(C.WAIT, seconds=2).with_poll_interval(seconds=0.01)


class TestReplay:
    """Executed once, replayed afterwards."""

    @pytest.mark.asyncio
    async def test_first_call_executes_and_commits(self, coord, ledger, executor, payload) -> None:
        result = _ok(await coord.execute("abc123xyz", payload, executor))

        assert result.source is C.ReplaySource.EXECUTED
        assert not result.replayed
        assert result.key == "abc123xyz"
        assert executor.calls == 1

        record = _ok(await ledger.read("abc123xyz"))
        assert record is not None
        assert record.is_committed
        assert record.response == result.envelope

    @pytest.mark.asyncio
    async def test_second_call_replays_from_key_store(self, coord, executor, payload) -> None:
        first = _ok(await coord.execute("abc123xyz", payload, executor))
        second = _ok(await coord.execute("abc123xyz", payload, executor))

        assert executor.calls == 1
        assert second.source is C.ReplaySource.KEY_STORE
        assert second.replayed
        assert second.envelope.body == first.envelope.body
        assert second.envelope.status_code == 201

    @pytest.mark.asyncio
    async def test_replays_from_ledger_without_key_store(self, ledger, clock, executor, payload) -> None:
        coord = C.coordinator().ledger(ledger).clock(clock).build()

        first = _ok(await coord.execute("abc123xyz", payload, executor))
        second = _ok(await coord.execute("abc123xyz", payload, executor))

        assert executor.calls == 1
        assert second.source is C.ReplaySource.LEDGER
        assert second.envelope == first.envelope

    @pytest.mark.asyncio
    async def test_ledger_replay_repopulates_key_store(self, coord, key_store, executor, payload) -> None:
        await coord.execute("abc123xyz", payload, executor)
        await key_store.delete("abc123xyz")

        replay = _ok(await coord.execute("abc123xyz", payload, executor))

        assert replay.source is C.ReplaySource.LEDGER
        cached = await key_store.get("abc123xyz")
        assert cached is not None
        assert CachedEntry.from_bytes(cached).envelope == replay.envelope

    @pytest.mark.asyncio
    async def test_scoped_policy_prefixes_stored_key(self, ledger, clock, executor, payload, policy) -> None:
        coord = C.coordinator().ledger(ledger).policy(policy.scoped("messages.send")).clock(clock).build()

        result = _ok(await coord.execute("abc123xyz", payload, executor))

        assert result.key == "abc123xyz"
        assert _ok(await ledger.read("messages.send:abc123xyz")) is not None
        assert _ok(await ledger.read("abc123xyz")) is None


class TestBypass:
    """Requests without a key."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [None, ""])
    async def test_missing_key_executes_every_time(self, coord, ledger, executor, payload, key) -> None:
        first = _ok(await coord.execute(key, payload, executor))
        second = _ok(await coord.execute(key, payload, executor))

        assert executor.calls == 2
        assert first.source is C.ReplaySource.BYPASS
        assert first.key is None
        assert first.envelope.json_body()["message_id"] != second.envelope.json_body()["message_id"]
        assert len(ledger) == 0

    @pytest.mark.asyncio
    async def test_missing_key_rejected_when_required(self, ledger, clock, executor, payload, policy) -> None:
        coord = C.coordinator().ledger(ledger).policy(policy.require_key()).clock(clock).build()

        err = _err(await coord.execute(None, payload, executor))

        assert err.kind is C.IdempotencyErrorKind.KEY_REQUIRED
        assert not err.retryable
        assert executor.calls == 0

    @pytest.mark.asyncio
    async def test_bypass_failure_is_reported(self, coord, make_executor, payload) -> None:
        failing = make_executor(failures=1)

        err = _err(await coord.execute(None, payload, failing))

        assert err.kind is C.IdempotencyErrorKind.EXECUTOR_FAILURE


class TestConcurrency:
    """At most one execution per key under concurrent callers."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_execution(
        self, ledger, key_store, clock, make_executor, payload, policy
    ) -> None:
        coord = (
            C.coordinator()
            .ledger(ledger)
            .key_store(key_store)
            .policy(waiting(policy))
            .clock(clock)
            .build()
        )
        slow = make_executor(delay=0.05)

        async def call() -> Any:
            return await coord.execute("abc123xyz", payload, slow)

        results = [_ok(r) for r in await asyncio.gather(*(call() for _ in range(10)))]

        assert slow.calls == 1
        assert len({r.envelope.body for r in results}) == 1
        assert sum(r.source is C.ReplaySource.EXECUTED for r in results) == 1

    @pytest.mark.asyncio
    async def test_two_simultaneous_sends_get_same_message_id(
        self, ledger, clock, make_executor, payload, policy
    ) -> None:
        coord = C.coordinator().ledger(ledger).policy(waiting(policy)).clock(clock).build()
        slow = make_executor(delay=0.02)

        async def call() -> Any:
            return await coord.execute("abc123xyz", payload, slow)

        first, second = await asyncio.gather(call(), call())

        ids = {_ok(first).envelope.json_body()["message_id"], _ok(second).envelope.json_body()["message_id"]}
        assert ids == {"msg_0001"}
        assert slow.calls == 1

    @pytest.mark.asyncio
    async def test_in_flight_duplicate_is_busy_by_default(self, coord, make_executor, payload) -> None:
        slow = make_executor(delay=0.05)

        async def call() -> Any:
            return await coord.execute("abc123xyz", payload, slow)

        outcomes = await asyncio.gather(call(), call())
        errors = [o for o in outcomes if isinstance(o, Error)]

        assert slow.calls == 1
        assert len(errors) == 1
        err = _err(errors[0])
        assert err.kind is C.IdempotencyErrorKind.PENDING_BUSY
        assert err.retryable
        assert err.retry_after == timedelta(seconds=30)

    @pytest.mark.asyncio
    async def test_running_claim_is_not_taken_over_before_stale(
        self, ledger, clock, payload
    ) -> None:
        """Shortest allowed ttl still keeps a running claim busy until it goes stale."""
        policy = C.Policy(ttl=timedelta(seconds=30), pending_staleness=timedelta(seconds=30))
        coord = C.coordinator().ledger(ledger).policy(policy).clock(clock).build()
        started = asyncio.Event()
        release = asyncio.Event()
        calls = 0

        async def blocked(body: Any) -> ResponseEnvelope:
            nonlocal calls
            calls += 1
            started.set()
            await release.wait()
            return ResponseEnvelope.json({"message_id": f"msg_{calls:04d}"}, status_code=201)

        async def call() -> Any:
            return await coord.execute("abc123xyz", payload, blocked)

        first = asyncio.create_task(call())
        await started.wait()
        clock.advance(seconds=29)

        err = _err(await coord.execute("abc123xyz", payload, blocked))
        release.set()
        done = _ok(await first)

        assert err.kind is C.IdempotencyErrorKind.PENDING_BUSY
        assert err.retry_after == timedelta(seconds=1)
        assert done.source is C.ReplaySource.EXECUTED
        assert calls == 1

    @pytest.mark.asyncio
    async def test_wait_gives_up_after_bound(self, ledger, clock, executor, payload, policy) -> None:
        coord = (
            C.coordinator()
            .ledger(ledger)
            .policy(policy.with_on_pending(C.WAIT, seconds=0.05).with_poll_interval(seconds=0.01))
            .clock(clock)
            .build()
        )
        await ledger.claim("abc123xyz", ttl=timedelta(minutes=10))

        err = _err(await coord.execute("abc123xyz", payload, executor))

        assert err.kind is C.IdempotencyErrorKind.PENDING_BUSY
        assert executor.calls == 0

    @pytest.mark.asyncio
    async def test_wait_polls_the_scoped_key(self, ledger, clock, make_executor, payload, policy) -> None:
        coord = (
            C.coordinator()
            .ledger(ledger)
            .policy(waiting(policy).scoped("messages.send"))
            .clock(clock)
            .build()
        )
        slow = make_executor(delay=0.05)

        async def call() -> Any:
            return await coord.execute("abc123xyz", payload, slow)

        first, second = [_ok(r) for r in await asyncio.gather(call(), call())]

        assert slow.calls == 1
        assert {first.source, second.source} == {C.ReplaySource.EXECUTED, C.ReplaySource.LEDGER}
        assert first.envelope == second.envelope


class TestStaleness:
    """Abandoned claims are recovered once stale."""

    @pytest.mark.asyncio
    async def test_fresh_pending_claim_reports_remaining_window(
        self, coord, ledger, clock, executor, payload
    ) -> None:
        await ledger.claim("abc123xyz", ttl=timedelta(minutes=10))
        clock.advance(seconds=10)

        err = _err(await coord.execute("abc123xyz", payload, executor))

        assert err.kind is C.IdempotencyErrorKind.PENDING_BUSY
        assert err.retry_after == timedelta(seconds=20)
        assert executor.calls == 0

    @pytest.mark.asyncio
    async def test_stale_pending_claim_is_recovered_once(
        self, coord, ledger, clock, executor, payload
    ) -> None:
        await ledger.claim("abc123xyz", ttl=timedelta(minutes=10))
        clock.advance(seconds=31)

        recovered = _ok(await coord.execute("abc123xyz", payload, executor))
        replay = _ok(await coord.execute("abc123xyz", payload, executor))

        assert recovered.source is C.ReplaySource.EXECUTED
        assert recovered.recovered
        assert replay.replayed
        assert replay.envelope == recovered.envelope
        assert executor.calls == 1

    @pytest.mark.asyncio
    async def test_late_commit_of_superseded_claim_is_rejected(
        self, coord, ledger, clock, payload
    ) -> None:
        """The first claimant resumes after being superseded."""

        async def overtaken(body: Any) -> ResponseEnvelope:
            record = _ok(await ledger.read("abc123xyz"))
            clock.advance(seconds=31)
            await ledger.supersede(record, ttl=timedelta(minutes=10))
            return ResponseEnvelope.json({"message_id": "msg_late"})

        err = _err(await coord.execute("abc123xyz", payload, overtaken))

        assert err.kind is C.IdempotencyErrorKind.SUPERSEDED
        assert err.retryable
        assert err.retry_after is not None
        record = _ok(await ledger.read("abc123xyz"))
        assert record.is_pending


class TestExecutorFailure:
    """Failed executions release the key."""

    @pytest.mark.asyncio
    async def test_failure_releases_key_for_retry(self, coord, ledger, make_executor, payload) -> None:
        flaky = make_executor(failures=1)

        err = _err(await coord.execute("abc123xyz", payload, flaky))
        assert err.kind is C.IdempotencyErrorKind.EXECUTOR_FAILURE
        assert isinstance(err.cause, RuntimeError)
        assert not err.retryable
        assert _ok(await ledger.read("abc123xyz")) is None

        retry = _ok(await coord.execute("abc123xyz", payload, flaky))
        assert retry.source is C.ReplaySource.EXECUTED
        assert flaky.calls == 2

    @pytest.mark.asyncio
    async def test_error_result_is_a_failure(self, coord, ledger, payload) -> None:
        async def rejects(body: Any) -> Any:
            return Error("channel closed")

        err = _err(await coord.execute("abc123xyz", payload, rejects))

        assert err.kind is C.IdempotencyErrorKind.EXECUTOR_FAILURE
        assert err.cause == "channel closed"
        assert _ok(await ledger.read("abc123xyz")) is None

    @pytest.mark.asyncio
    async def test_ok_result_is_accepted(self, coord, payload) -> None:
        envelope = ResponseEnvelope.json({"message_id": "msg_ok"}, status_code=201)

        async def accepts(body: Any) -> Any:
            return Ok(envelope)

        result = _ok(await coord.execute("abc123xyz", payload, accepts))

        assert result.envelope == envelope

    @pytest.mark.asyncio
    async def test_non_envelope_result_is_a_failure(self, coord, ledger, payload) -> None:
        async def sloppy(body: Any) -> Any:
            return {"message_id": "msg_1"}

        err = _err(await coord.execute("abc123xyz", payload, sloppy))

        assert err.kind is C.IdempotencyErrorKind.EXECUTOR_FAILURE
        assert isinstance(err.cause, TypeError)
        assert _ok(await ledger.read("abc123xyz")) is None

    @pytest.mark.asyncio
    async def test_timeout_abandons_claim(self, ledger, clock, make_executor, payload, policy) -> None:
        coord = (
            C.coordinator()
            .ledger(ledger)
            .policy(policy.with_execution_timeout(seconds=0.05))
            .clock(clock)
            .build()
        )
        hanging = make_executor(delay=5)

        err = _err(await coord.execute("abc123xyz", payload, hanging))

        assert err.kind is C.IdempotencyErrorKind.EXECUTOR_TIMEOUT
        assert err.retryable
        assert _ok(await ledger.read("abc123xyz")) is None


class TestKeyStoreDegradation:
    """The key store is optional for correctness."""

    @pytest.mark.asyncio
    async def test_unavailable_key_store_keeps_at_most_once(
        self, ledger, clock, broken_key_store, executor, payload
    ) -> None:
        coord = C.coordinator().ledger(ledger).key_store(broken_key_store).clock(clock).build()

        first = _ok(await coord.execute("abc123xyz", payload, executor))
        second = _ok(await coord.execute("abc123xyz", payload, executor))

        assert executor.calls == 1
        assert first.source is C.ReplaySource.EXECUTED
        assert second.source is C.ReplaySource.LEDGER
        assert second.envelope == first.envelope
        assert broken_key_store.attempts > 0

    @pytest.mark.asyncio
    async def test_corrupt_key_store_entry_falls_back_to_ledger(
        self, coord, key_store, executor, payload
    ) -> None:
        first = _ok(await coord.execute("abc123xyz", payload, executor))
        await key_store.set("abc123xyz", b"\x00garbage", timedelta(minutes=1))

        second = _ok(await coord.execute("abc123xyz", payload, executor))

        assert second.source is C.ReplaySource.LEDGER
        assert second.envelope == first.envelope
        assert executor.calls == 1


class TestLedgerUnavailable:
    """Without the ledger, keyed writes fail closed."""

    @pytest.mark.asyncio
    async def test_keyed_write_rejected(self, down_ledger, clock, executor, payload) -> None:
        coord = C.coordinator().ledger(down_ledger).clock(clock).build()

        err = _err(await coord.execute("abc123xyz", payload, executor))

        assert err.kind is C.IdempotencyErrorKind.LEDGER_UNAVAILABLE
        assert err.retryable
        assert isinstance(err.cause, LedgerError)
        assert executor.calls == 0

    @pytest.mark.asyncio
    async def test_commit_failure_abandons_claim(self, clock, executor, payload) -> None:
        class CommitFails(MemoryLedger):
            async def commit(self, claimed, envelope, *, ttl):
                return Error(LedgerError.unavailable("disk full"))

        ledger = CommitFails(clock=clock)
        coord = C.coordinator().ledger(ledger).clock(clock).build()

        err = _err(await coord.execute("abc123xyz", payload, executor))

        assert err.kind is C.IdempotencyErrorKind.LEDGER_UNAVAILABLE
        assert _ok(await ledger.read("abc123xyz")) is None


class TestPayloadMismatch:
    """A key reused with another payload is rejected."""

    @pytest.mark.asyncio
    async def test_mismatch_detected_from_key_store(self, coord, executor, payload) -> None:
        await coord.execute("abc123xyz", payload, executor)

        err = _err(await coord.execute("abc123xyz", {**payload, "message": "Bye"}, executor))

        assert err.kind is C.IdempotencyErrorKind.PAYLOAD_MISMATCH
        assert executor.calls == 1

    @pytest.mark.asyncio
    async def test_mismatch_detected_from_ledger(self, ledger, clock, executor, payload) -> None:
        coord = C.coordinator().ledger(ledger).clock(clock).build()
        await coord.execute("abc123xyz", payload, executor)

        err = _err(await coord.execute("abc123xyz", {**payload, "to": "user789"}, executor))

        assert err.kind is C.IdempotencyErrorKind.PAYLOAD_MISMATCH

    @pytest.mark.asyncio
    async def test_key_order_does_not_matter(self, coord, executor, payload) -> None:
        await coord.execute("abc123xyz", payload, executor)

        reordered = dict(reversed(list(payload.items())))
        replay = _ok(await coord.execute("abc123xyz", reordered, executor))

        assert replay.replayed

    @pytest.mark.asyncio
    async def test_disabled_fingerprint_replays(self, ledger, clock, executor, payload) -> None:
        coord = C.coordinator().ledger(ledger).without_fingerprint().clock(clock).build()
        first = _ok(await coord.execute("abc123xyz", payload, executor))

        replay = _ok(await coord.execute("abc123xyz", {**payload, "message": "Bye"}, executor))

        assert replay.envelope == first.envelope

    @pytest.mark.asyncio
    async def test_wide_custom_fingerprint_is_stored_bounded(self, ledger, clock, executor, payload) -> None:
        def verbose(body: Any) -> str:
            return "|".join(f"{k}={v}" for k, v in sorted(body.items())) * 40

        coord = C.coordinator().ledger(ledger).fingerprint(verbose).clock(clock).build()
        first = _ok(await coord.execute("abc123xyz", payload, executor))

        record = _ok(await ledger.read("abc123xyz"))
        replay = _ok(await coord.execute("abc123xyz", payload, executor))
        err = _err(await coord.execute("abc123xyz", {**payload, "message": "Bye"}, executor))

        assert len(record.fingerprint) == 64
        assert replay.envelope == first.envelope
        assert err.kind is C.IdempotencyErrorKind.PAYLOAD_MISMATCH
        assert executor.calls == 1


class TestExpiry:
    """A key past its TTL is a new logical operation."""

    @pytest.mark.asyncio
    async def test_key_reused_after_ttl_executes_again(self, coord, clock, executor, payload) -> None:
        first = _ok(await coord.execute("abc123xyz", payload, executor))
        clock.advance(minutes=11)

        second = _ok(await coord.execute("abc123xyz", payload, executor))

        assert second.source is C.ReplaySource.EXECUTED
        assert second.envelope.json_body()["message_id"] != first.envelope.json_body()["message_id"]
        assert executor.calls == 2

    @pytest.mark.asyncio
    async def test_key_reused_after_purge_executes_again(
        self, ledger, clock, executor, payload
    ) -> None:
        coord = C.coordinator().ledger(ledger).clock(clock).build()
        await coord.execute("abc123xyz", payload, executor)
        clock.advance(minutes=11)
        assert await W.ExpirySweeper(ledger, clock=clock).sweep_once() == 1

        second = _ok(await coord.execute("abc123xyz", payload, executor))

        assert second.source is C.ReplaySource.EXECUTED
        assert executor.calls == 2


class TestOwnership:
    """Claims resolve independently of the caller."""

    @pytest.mark.asyncio
    async def test_cancelled_caller_still_commits(self, coord, ledger, make_executor, payload) -> None:
        slow = make_executor(delay=0.05)

        async def call() -> Any:
            return await coord.execute("abc123xyz", payload, slow)

        task = asyncio.create_task(call())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await coord.drain()

        assert coord.inflight == 0
        record = _ok(await ledger.read("abc123xyz"))
        assert record is not None
        assert record.is_committed

        replay = _ok(await coord.execute("abc123xyz", payload, slow))
        assert replay.replayed
        assert slow.calls == 1

    @pytest.mark.asyncio
    async def test_drain_without_work_returns(self, coord) -> None:
        await coord.drain()

        assert coord.inflight == 0


class TestInvalidate:
    @pytest.mark.asyncio
    async def test_invalidate_forgets_key_everywhere(self, coord, key_store, executor, payload) -> None:
        await coord.execute("abc123xyz", payload, executor)

        assert _ok(await coord.invalidate("abc123xyz")) is True
        assert await key_store.get("abc123xyz") is None

        again = _ok(await coord.execute("abc123xyz", payload, executor))
        assert again.source is C.ReplaySource.EXECUTED
        assert executor.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_unknown_key(self, coord) -> None:
        assert _ok(await coord.invalidate("nope")) is False
