"""
Mapping of coordination outcomes to HTTP responses.

Replays return the stored envelope byte for byte; only the replay marker
header is added on top.
"""

from __future__ import annotations

import math
from http import HTTPStatus

from idemgate.coordinator import IdempotencyError, IdempotencyErrorKind, IdempotencyResult
from idemgate.envelope import ResponseEnvelope
from idemgate.wire._http import REPLAYED_HEADER, RETRY_AFTER_HEADER

ERROR_STATUS: dict[IdempotencyErrorKind, HTTPStatus] = {
    IdempotencyErrorKind.KEY_REQUIRED: HTTPStatus.BAD_REQUEST,
    IdempotencyErrorKind.PAYLOAD_MISMATCH: HTTPStatus.UNPROCESSABLE_ENTITY,
    IdempotencyErrorKind.PENDING_BUSY: HTTPStatus.CONFLICT,
    IdempotencyErrorKind.SUPERSEDED: HTTPStatus.CONFLICT,
    IdempotencyErrorKind.EXECUTOR_FAILURE: HTTPStatus.INTERNAL_SERVER_ERROR,
    IdempotencyErrorKind.EXECUTOR_TIMEOUT: HTTPStatus.GATEWAY_TIMEOUT,
    IdempotencyErrorKind.LEDGER_UNAVAILABLE: HTTPStatus.SERVICE_UNAVAILABLE,
}


def success_envelope(result: IdempotencyResult) -> ResponseEnvelope:
    if not result.replayed:
        return result.envelope
    envelope = result.envelope
    return ResponseEnvelope(
        body=envelope.body,
        status_code=envelope.status_code,
        content_type=envelope.content_type,
        headers=(*envelope.headers, (REPLAYED_HEADER, "true")),
    )


def error_envelope(err: IdempotencyError) -> ResponseEnvelope:
    status = ERROR_STATUS[err.kind]
    headers: tuple[tuple[str, str], ...] = ()
    if err.retry_after is not None:
        # Retry-After is whole seconds; never advertise 0 for a busy key.
        seconds = max(1, math.ceil(err.retry_after.total_seconds()))
        headers = ((RETRY_AFTER_HEADER, str(seconds)),)

    # Executor internals stay out of the response body.
    message = "Write failed" if err.kind is IdempotencyErrorKind.EXECUTOR_FAILURE else err.message
    return ResponseEnvelope.json(
        {
            "error": {
                "kind": err.kind.name.lower(),
                "message": message,
                "retryable": err.retryable,
            }
        },
        status_code=status.value,
        headers=headers,
    )


__all__ = ("ERROR_STATUS", "success_envelope", "error_envelope")
