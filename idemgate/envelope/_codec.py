"""
Envelope codec — bytes on the wire of the ledger and the key store.

Stored form (UTF-8 JSON, version tagged):

    {"body":"<base64>","content_type":"...","headers":[["k","v"]],"status":201,"v":1}

Request payloads are fingerprinted with SHA-256 over their canonical form so
a reused key with a different payload can be detected.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from typing import Any

from pydantic import BaseModel

from idemgate.envelope._envelope import ResponseEnvelope, canonical_json

FORMAT_VERSION = 1

# Widest fingerprint a ledger stores verbatim.
FINGERPRINT_MAX_LENGTH = 255

type FingerprintFn = Callable[[Any], str]


class EnvelopeDecodeError(ValueError):
    """Stored bytes are not a valid envelope."""


def encode_envelope(envelope: ResponseEnvelope) -> bytes:
    return canonical_json(
        {
            "v": FORMAT_VERSION,
            "status": envelope.status_code,
            "content_type": envelope.content_type,
            "headers": [list(pair) for pair in envelope.headers],
            "body": base64.b64encode(envelope.body).decode("ascii"),
        }
    )


def decode_envelope(raw: bytes) -> ResponseEnvelope:
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise EnvelopeDecodeError(f"Envelope is not JSON: {e}") from e

    if not isinstance(data, dict) or data.get("v") != FORMAT_VERSION:
        raise EnvelopeDecodeError("Unsupported envelope format")

    try:
        return ResponseEnvelope(
            body=base64.b64decode(data["body"], validate=True),
            status_code=int(data["status"]),
            content_type=str(data["content_type"]),
            headers=tuple((str(k), str(v)) for k, v in data["headers"]),
        )
    except (KeyError, TypeError, ValueError, binascii.Error) as e:
        raise EnvelopeDecodeError(f"Malformed envelope: {e}") from e


def fingerprint_payload(payload: Any) -> str:
    """
    SHA-256 hex digest of a request payload.

    bytes and str are hashed as-is; pydantic models, dataclasses and plain
    JSON data are hashed over their canonical JSON form.
    """
    match payload:
        case bytes() | bytearray():
            raw = bytes(payload)
        case str():
            raw = payload.encode("utf-8")
        case BaseModel():
            raw = canonical_json(payload.model_dump(mode="json"))
        case _ if is_dataclass(payload) and not isinstance(payload, type):
            raw = canonical_json(asdict(payload))
        case _:
            raw = canonical_json(payload)
    return hashlib.sha256(raw).hexdigest()


def bound_fingerprint(fingerprint: str) -> str:
    """Digest fingerprints too wide to store; shorter ones pass through."""
    if len(fingerprint) <= FINGERPRINT_MAX_LENGTH:
        return fingerprint
    return hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()


__all__ = (
    "FORMAT_VERSION",
    "FINGERPRINT_MAX_LENGTH",
    "FingerprintFn",
    "EnvelopeDecodeError",
    "encode_envelope",
    "decode_envelope",
    "fingerprint_payload",
    "bound_fingerprint",
)
