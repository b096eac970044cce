"""
Response envelope — the committed result bound to an idempotency key.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


def canonical_json(data: Any) -> bytes:
    """Deterministic JSON bytes: sorted keys, compact separators."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    ).encode("utf-8")


@dataclass(frozen=True, slots=True)
class ResponseEnvelope:
    """
    Serialized result of a write.

    Stored verbatim and replayed byte-identical: `body` is never regenerated
    after commit.
    """

    body: bytes
    status_code: int = 200
    content_type: str = "application/json"
    headers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def json(
        cls,
        data: Any,
        *,
        status_code: int = 200,
        headers: tuple[tuple[str, str], ...] = (),
    ) -> ResponseEnvelope:
        """
        Build an envelope from JSON-serializable data.

        Example:
            ResponseEnvelope.json({"message_id": "msg_1"}, status_code=201)
        """
        return cls(
            body=canonical_json(data),
            status_code=status_code,
            content_type="application/json",
            headers=headers,
        )

    def json_body(self) -> Any:
        return json.loads(self.body)


__all__ = ("ResponseEnvelope", "canonical_json")
