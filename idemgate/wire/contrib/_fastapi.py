from typing import Annotated, Any

import fastapi
from kungfu import Ok, Error
from pydantic import BaseModel

from idemgate.coordinator import Coordinator, Executor
from idemgate.envelope import ResponseEnvelope
from idemgate.wire._app import Application
from idemgate.wire._endpoint import Endpoint
from idemgate.wire._http import HTTPRouteTrigger, Path
from idemgate.wire._response import error_envelope, success_envelope


def to_response(envelope: ResponseEnvelope) -> fastapi.Response:
    """Emit envelope bytes verbatim."""
    return fastapi.Response(
        content=envelope.body,
        status_code=envelope.status_code,
        media_type=envelope.content_type,
        headers=dict(envelope.headers),
    )


def compile_to_fastapi_route(
    endp: Endpoint,
) -> list[tuple[HTTPRouteTrigger, Path, Any]]:  # (trigger, path, route_func)
    routes: list[tuple[HTTPRouteTrigger, Path, Any]] = []

    for trigger, request_model in endp.exposures:

        def make_handler(
            req_cls: type[BaseModel],
            key_header: str,
            coordinator: Coordinator,
            executor: Executor[Any],
        ) -> Any:
            async def _route_handler(body: Any, key: Any = None) -> fastapi.Response:
                match await coordinator.execute(key, body, executor):
                    case Ok(result):
                        return to_response(success_envelope(result))
                    case Error(err):
                        return to_response(error_envelope(err))

            # Header name comes from the trigger, so annotations are set here.
            _route_handler.__annotations__ = {
                "body": req_cls,
                "key": Annotated[
                    str | None,
                    fastapi.Header(alias=key_header, convert_underscores=False),
                ],
                "return": fastapi.Response,
            }

            return _route_handler

        handler = make_handler(
            request_model, trigger.key_header, endp.coordinator, endp.executor
        )

        routes.append((trigger, trigger.path, handler))

    return routes


def add_endpoint_to_app(
    app: fastapi.FastAPI,
    endp: Endpoint,
) -> None:
    for trigger, path, handler in compile_to_fastapi_route(endp):
        app.add_api_route(
            path,
            handler,
            methods=[trigger.method.upper()],
            tags=list(trigger.tags) or None,
        )


def from_application(app: Application, **fastapi_kw: Any) -> fastapi.FastAPI:
    f_app = fastapi.FastAPI(**fastapi_kw)

    for endp in app.endpoints:
        add_endpoint_to_app(f_app, endp)

    return f_app
