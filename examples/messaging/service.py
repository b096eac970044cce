"""
Message Service — the write executor guarded by the coordinator.
"""

import asyncio
import uuid
from datetime import UTC, datetime

from kungfu import Result, Ok, Error

from idemgate.envelope import ResponseEnvelope

from examples.messaging.domain import DeliveryError, Message, SendMessageRequest


# ═══════════════════════════════════════════════════════════════════════════════
# Delivery Channel (simulated)
# ═══════════════════════════════════════════════════════════════════════════════


class Channel:
    """Fake delivery backend; every call is one user-visible side effect."""

    def __init__(self, latency: float = 0.05) -> None:
        self.latency = latency
        self.delivered: list[Message] = []
        self.closed: set[str] = set()

    async def deliver(self, req: SendMessageRequest) -> Message:
        await asyncio.sleep(self.latency)
        message = Message(
            id=f"msg_{uuid.uuid4().hex[:16]}",
            channel_id=req.channel_id,
            text=req.text,
            reply_to=req.reply_to,
            sent_at=datetime.now(UTC),
        )
        self.delivered.append(message)
        return message


# ═══════════════════════════════════════════════════════════════════════════════
# Message Service
# ═══════════════════════════════════════════════════════════════════════════════


class MessageService:
    def __init__(self, channel: Channel) -> None:
        self._channel = channel

    async def send(self, req: SendMessageRequest) -> Result[ResponseEnvelope, DeliveryError]:
        """Executor: deliver once and describe the result as an envelope."""
        if req.channel_id in self._channel.closed:
            return Error(DeliveryError("CHANNEL_CLOSED", f"Channel {req.channel_id} is closed"))

        message = await self._channel.deliver(req)
        return Ok(
            ResponseEnvelope.json(
                {
                    "message_id": message.id,
                    "channel_id": message.channel_id,
                    "sent_at": message.sent_at.isoformat(),
                },
                status_code=201,
            )
        )
