"""
Idempotent Messaging Example

Run: uv run python -m examples.messaging.main
"""

import asyncio
import uuid
from datetime import timedelta

from combinators import batch, lift as L
from kungfu import Ok, Error

from idemgate import coordinator as C
from idemgate import keystore as K
from idemgate import ledger as D
from idemgate.clock import MockClock
from idemgate.observability import setup_logging

from examples.messaging.domain import SendMessageRequest
from examples.messaging.service import Channel, MessageService


def banner(title: str) -> None:
    rule = "═" * 60
    print(f"\n{rule}\n  {title}\n{rule}")


def show(label: str, outcome: object) -> None:
    match outcome:
        case Ok(result):
            print(f"   {label}: {result.source.name} {result.envelope.json_body()}")
        case Error(err):
            print(f"   {label}: {err.kind.name} ({err.message})")


async def main() -> None:
    banner("Idempotent Messaging")
    setup_logging("WARNING", "console")

    clock = MockClock()
    channel = Channel(latency=0.05)
    service = MessageService(channel)
    ledger = D.SQLAlchemyLedger.from_url("sqlite+aiosqlite:///:memory:", clock=clock)
    await ledger.create_schema()

    coord = (
        C.coordinator()
        .ledger(ledger)
        .key_store(K.MemoryKeyStore(clock=clock))
        .policy(
            C.Policy.for_operation(C.OperationClass.MESSAGING)
            .with_staleness(seconds=30)
            .with_on_pending(C.WAIT, seconds=2)
        )
        .clock(clock)
        .build()
    )

    try:
        req = SendMessageRequest(channel_id="general", text="hello")
        key = f"send:{uuid.uuid4().hex[:12]}"

        # 1. First request
        print("1. First request:")
        show("result", await coord.execute(key, req, service.send))
        print(f"   Delivered: {len(channel.delivered)}\n")

        # 2. Client retry
        print("2. Retry (replayed):")
        show("result", await coord.execute(key, req, service.send))
        print(f"   Delivered: {len(channel.delivered)} (no new delivery)\n")

        # 3. Same key, different text
        print("3. Key reuse with another payload:")
        other = SendMessageRequest(channel_id="general", text="hello?")
        show("result", await coord.execute(key, other, service.send))
        print()

        # 4. Concurrent duplicates
        print("4. Concurrent (5 requests):")
        concurrent_key = f"send:{uuid.uuid4().hex[:12]}"
        before = len(channel.delivered)
        await batch(
            range(5),
            handler=lambda _: L.catching_async(
                lambda: coord.execute(concurrent_key, req, service.send),
                on_error=str,
            ),
            concurrency=5,
        )
        print(f"   Delivered: {len(channel.delivered) - before} (only 1!)\n")

        # 5. Abandoned claim (crashed worker) recovered after staleness
        print("5. Recovering an abandoned claim:")
        crashed_key = f"send:{uuid.uuid4().hex[:12]}"
        await ledger.claim(crashed_key, ttl=timedelta(minutes=10))
        show("while fresh", await coord.execute(crashed_key, req, service.send))
        clock.advance(seconds=31)
        show("after staleness", await coord.execute(crashed_key, req, service.send))

    finally:
        await coord.drain()
        await ledger.dispose()


if __name__ == "__main__":
    asyncio.run(main())
