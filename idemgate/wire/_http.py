from dataclasses import dataclass, field
from typing import Literal


type Method = Literal["POST", "PUT", "PATCH", "DELETE"]
type Path = str
type Header = str

IDEMPOTENCY_KEY_HEADER: Header = "Idempotency-Key"
REPLAYED_HEADER: Header = "Idempotent-Replayed"
RETRY_AFTER_HEADER: Header = "Retry-After"


@dataclass(frozen=True, slots=True)
class HTTPRouteTrigger:
    """Expose a write endpoint as an HTTP route; the key travels in `key_header`."""

    method: Method
    path: Path
    key_header: Header = IDEMPOTENCY_KEY_HEADER
    tags: tuple[str, ...] = field(default_factory=tuple)
