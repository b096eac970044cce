"""
Key store types.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from idemgate.envelope import (
    EnvelopeDecodeError,
    ResponseEnvelope,
    canonical_json,
    decode_envelope,
    encode_envelope,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Key Store Protocol — Users Implement This
# ═══════════════════════════════════════════════════════════════════════════════


class KeyStore(Protocol):
    """
    Fast volatile store in front of the ledger.

    Best-effort accelerator: implementations may raise on any failure, the
    coordinator treats every error as a miss. Concurrent writers to the same
    key are fine (last write wins, the committed value never changes).

    Example:
        class MemcachedKeyStore:
            @property
            def name(self) -> str:
                return "memcached"

            async def get(self, key: str) -> bytes | None:
                return await self.client.get(key.encode())

            async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
                await self.client.set(key.encode(), value, exptime=int(ttl.total_seconds()))

            async def delete(self, key: str) -> bool:
                return await self.client.delete(key.encode())
    """

    @property
    def name(self) -> str:
        """Store name for logs."""
        ...

    async def get(self, key: str) -> bytes | None:
        """Get value. Returns None on miss or expiry."""
        ...

    async def set(self, key: str, value: bytes, ttl: timedelta) -> None:
        """Set value with expiry."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if existed."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Cached Entry — what the coordinator keeps per key
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CachedEntry:
    """Committed envelope plus the payload fingerprint it was produced for."""

    envelope: ResponseEnvelope
    fingerprint: str | None = None

    def to_bytes(self) -> bytes:
        return canonical_json(
            {
                "envelope": encode_envelope(self.envelope).decode("utf-8"),
                "fingerprint": self.fingerprint,
            }
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> CachedEntry:
        try:
            data = json.loads(raw)
            envelope_raw = data["envelope"].encode("utf-8")
            fingerprint = data.get("fingerprint")
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            raise EnvelopeDecodeError(f"Malformed cache entry: {e}") from e
        return cls(envelope=decode_envelope(envelope_raw), fingerprint=fingerprint)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class KeyStoreError:
    """Key store operation failed. Never fatal for a request."""

    store: str
    message: str
    cause: Exception | None = None


__all__ = ("KeyStore", "CachedEntry", "KeyStoreError")
