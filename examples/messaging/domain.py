"""Domain models."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    channel_id: str = Field(min_length=1, max_length=64)
    text: str = Field(min_length=1, max_length=4000)
    reply_to: str | None = None


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    channel_id: str
    text: str
    reply_to: str | None
    sent_at: datetime


@dataclass(frozen=True, slots=True)
class DeliveryError:
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
