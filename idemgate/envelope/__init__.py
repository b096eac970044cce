"""
Envelope — canonical, replayable write responses.

    from idemgate import envelope as R

    env = R.ResponseEnvelope.json({"message_id": "msg_1"}, status_code=201)
    raw = R.encode_envelope(env)
    assert R.decode_envelope(raw) == env
"""

from idemgate.envelope._envelope import ResponseEnvelope, canonical_json
from idemgate.envelope._codec import (
    FORMAT_VERSION,
    FINGERPRINT_MAX_LENGTH,
    FingerprintFn,
    EnvelopeDecodeError,
    encode_envelope,
    decode_envelope,
    fingerprint_payload,
    bound_fingerprint,
)

__all__ = (
    "ResponseEnvelope",
    "canonical_json",
    "FORMAT_VERSION",
    "FINGERPRINT_MAX_LENGTH",
    "FingerprintFn",
    "EnvelopeDecodeError",
    "encode_envelope",
    "decode_envelope",
    "fingerprint_payload",
    "bound_fingerprint",
)
