from __future__ import annotations

"""faultline/api/middleware.py

ASGI middleware that guarantees every HTTP request carries a trace id.

- missing header  -> a generated id is injected into the request headers
- invalid header  -> 400 ValidationError response, the app is not called
- always          -> the trace id is echoed on the response headers
"""

import logging
from typing import Optional

from fastapi.responses import JSONResponse
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from faultline.config import Settings, get_settings
from faultline.models.errors import ValidationError
from faultline.schemas import ErrorResponse
from faultline.services.trace_id import generate_trace_id, validate_trace_id

logger = logging.getLogger(__name__)


class TraceIdMiddleware:
    def __init__(self, app: ASGIApp, settings: Optional[Settings] = None) -> None:
        self.app = app
        self.settings = settings or get_settings()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        header = self.settings.trace_id_header
        trace_id = Headers(scope=scope).get(header)

        if trace_id is None:
            trace_id = generate_trace_id(self.settings.trace_id_length)
            scope = dict(scope)
            scope["headers"] = [
                *scope.get("headers", []),
                (header.encode("latin-1"), trace_id.encode("latin-1")),
            ]
        else:
            try:
                validate_trace_id(trace_id, self.settings.trace_id_length)
            except ValidationError as exc:
                logger.info("Rejected request with invalid %s header", header)
                response = self._invalid_trace_id_response(exc)
                await response(scope, receive, send)
                return

        async def send_with_trace_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).setdefault(header, trace_id)
            await send(message)

        await self.app(scope, receive, send_with_trace_id)

    def _invalid_trace_id_response(self, error: ValidationError) -> JSONResponse:
        body = ErrorResponse(
            code=error.code,
            service_name=self.settings.service_name,
            message=error.message,
            timestamp=error.timestamp,
            trace_id="unknown",
            status_code=error.status_code,
        )
        return JSONResponse(status_code=error.status_code, content=body.model_dump(mode="json", by_alias=True))
