"""
FastAPI app for the messaging example, configured from IDEMGATE_* env.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from datetime import timedelta

import fastapi

from idemgate import coordinator as C
from idemgate import ledger as D
from idemgate import sweep as W
from idemgate.config import IdempotencySettings
from idemgate.observability import get_logger, setup_logging
from idemgate.wire import Application, HTTPRouteTrigger, endpoint
from idemgate.wire.contrib import fastapi as wire_fastapi

from examples.messaging.domain import SendMessageRequest
from examples.messaging.service import Channel, MessageService

logger = get_logger(__name__)


def create_app(settings: IdempotencySettings | None = None) -> fastapi.FastAPI:
    settings = settings or IdempotencySettings()
    setup_logging(settings.log_level, settings.log_format)

    ledger = settings.create_ledger()
    builder = C.coordinator().ledger(ledger).policy(settings.to_policy())
    key_store = settings.create_key_store()
    if key_store is not None:
        builder = builder.key_store(key_store)
    coord = builder.build()

    service = MessageService(Channel())
    sweeper = W.ExpirySweeper(
        ledger,
        batch_size=settings.sweep_batch_size,
        interval=timedelta(seconds=settings.sweep_interval_seconds),
    )

    @contextlib.asynccontextmanager
    async def lifespan(_: fastapi.FastAPI) -> AsyncIterator[None]:
        if isinstance(ledger, D.SQLAlchemyLedger):
            await ledger.create_schema()
        stop = asyncio.Event()
        sweeping = asyncio.create_task(sweeper.run(stop))
        logger.info("app.started", ledger=type(ledger).__name__)
        try:
            yield
        finally:
            stop.set()
            await sweeping
            await coord.drain()
            if isinstance(ledger, D.SQLAlchemyLedger):
                await ledger.dispose()
            logger.info("app.stopped")

    send = endpoint(coord, service.send).expose(
        HTTPRouteTrigger("POST", "/channels/messages", tags=("messages",)),
        SendMessageRequest,
    )
    return wire_fastapi.from_application(
        Application().mount(send),
        title="messaging",
        lifespan=lifespan,
    )
