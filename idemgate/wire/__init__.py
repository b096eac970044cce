"""
Wire — expose coordinated writes over HTTP.

    from idemgate.wire import endpoint, Application, HTTPRouteTrigger
    from idemgate.wire.contrib import fastapi

    endp = endpoint(coord, send_message).expose(
        HTTPRouteTrigger("POST", "/messages"),
        SendMessageRequest,
    )
    app = fastapi.from_application(Application().mount(endp))

Clients send `Idempotency-Key`; replays carry `Idempotent-Replayed: true`.
"""

from idemgate.wire._endpoint import (
    Endpoint,
    Exposure,
    endpoint,
)
from idemgate.wire._app import Application, application
from idemgate.wire._http import (
    HTTPRouteTrigger,
    Method,
    Path,
    Header,
    IDEMPOTENCY_KEY_HEADER,
    REPLAYED_HEADER,
    RETRY_AFTER_HEADER,
)
from idemgate.wire._response import (
    ERROR_STATUS,
    success_envelope,
    error_envelope,
)

# Subpackages
from idemgate.wire import contrib

__all__ = (
    # Core API
    "Endpoint",
    "Exposure",
    "endpoint",
    "Application",
    "application",
    # HTTP
    "HTTPRouteTrigger",
    "Method",
    "Path",
    "Header",
    "IDEMPOTENCY_KEY_HEADER",
    "REPLAYED_HEADER",
    "RETRY_AFTER_HEADER",
    # Responses
    "ERROR_STATUS",
    "success_envelope",
    "error_envelope",
    # Subpackages
    "contrib",
)
