from __future__ import annotations

"""faultline/api/handlers.py

FastAPI exception handlers returning structured error responses.

Every exception that reaches the handler is turned into a StructuredError:
- StructuredError             -> unchanged
- RequestValidationError      -> ValidationError (first issue)
- Starlette HTTPException     -> kind chosen from the status code
- anything else               -> ErrorTransformer (classification)

The error then gets the request metadata in its context and a trace id from
the request headers, is logged, and is sent as an ErrorResponse body.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from faultline.config import Settings, get_settings
from faultline.models import ErrorCategory, ErrorContext, ErrorLayer
from faultline.models.errors import StructuredError
from faultline.schemas import ErrorResponse
from faultline.services.diagnostics.recognizers import validation_error_from_issues
from faultline.services.diagnostics.report import log_error
from faultline.services.factory import ErrorFactory
from faultline.services.transformer import ErrorTransformer

logger = logging.getLogger(__name__)

UNKNOWN_TRACE_ID = "unknown-trace-id"
FALLBACK_TRACE_IDS = ("x-request-id", "x-correlation-id")
REDACTED_HEADERS = frozenset({"authorization", "cookie", "proxy-authorization"})

STATUS_CATEGORIES: dict[int, ErrorCategory] = {
    400: ErrorCategory.VALIDATION,
    401: ErrorCategory.AUTHENTICATION,
    403: ErrorCategory.AUTHORIZATION,
    404: ErrorCategory.NOT_FOUND,
    409: ErrorCategory.CONFLICT,
}


def category_for_status(status_code: int) -> ErrorCategory:
    """Other 4xx statuses are treated as validation failures, 5xx as internal."""
    if status_code in STATUS_CATEGORIES:
        return STATUS_CATEGORIES[status_code]
    if 400 <= status_code < 500:
        return ErrorCategory.VALIDATION
    return ErrorCategory.INTERNAL


class ErrorHandler:
    """Async exception handler usable with ``app.add_exception_handler``."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        logger: Optional[logging.Logger] = None,
        transformer: Optional[ErrorTransformer] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.logger = logger or logging.getLogger(__name__)
        self.factory = ErrorFactory(service_name=self.settings.service_name)
        # Logging is done by the handler, once per request.
        self.transformer = transformer or ErrorTransformer(
            module_name=self.settings.service_name,
            settings=self.settings,
            log="never",
        )

    async def __call__(self, request: Request, exc: Exception) -> JSONResponse:
        try:
            error = self.transform_to_standard_error(exc)
            error = error.with_context({"metadata": self.extract_request_metadata(request, exc)})
            error = self.assign_trace_id(error, request)
            if self.settings.enable_logging:
                log_error(error, logger=self.logger)
            return self.error_response(error)
        except Exception:  # noqa: BLE001
            self.logger.exception("Error handler failed while handling %s", type(exc).__name__)
            return self.fallback_response()

    # ---- Transformation ----

    def transform_to_standard_error(self, exc: Exception) -> StructuredError:
        if isinstance(exc, StructuredError):
            return exc

        if isinstance(exc, RequestValidationError):
            issues = exc.errors()
            if not issues:
                self.logger.warning("Request validation error without issues, check error handler")
            return validation_error_from_issues(issues, ErrorContext(layer=ErrorLayer.ROUTER), exc)

        if isinstance(exc, StarletteHTTPException):
            return self._from_http_exception(exc)

        return self.transformer.transform(
            exc,
            {
                "layer": ErrorLayer.ROUTER,
                "class_name": type(self).__name__,
                "method_name": "transform_to_standard_error",
            },
        )

    def _from_http_exception(self, exc: StarletteHTTPException) -> StructuredError:
        detail = exc.detail
        code = f"HTTP_{exc.status_code}"
        if isinstance(detail, dict):
            code = str(detail.get("code") or detail.get("error") or code)
            message = detail.get("message")
        elif isinstance(detail, (list, tuple)):
            message = ", ".join(str(item) for item in detail)
        else:
            message = detail
        context = {
            "layer": ErrorLayer.ROUTER,
            "class_name": type(self).__name__,
            "method_name": "transform_http_exception",
        }
        error = self.factory.create_error(
            category_for_status(exc.status_code),
            code,
            str(message) if message else None,
            context,
            cause=exc,
        )
        return error.derive(status_code=exc.status_code)

    # ---- Request metadata ----

    def extract_request_metadata(self, request: Request, exc: Exception) -> Dict[str, Any]:
        headers = {
            key: "[redacted]" if key in REDACTED_HEADERS else value
            for key, value in request.headers.items()
        }
        metadata: Dict[str, Any] = {
            "method": request.method,
            "url": str(request.url),
            "path": request.url.path,
            "query": dict(request.query_params),
            "params": dict(request.path_params),
            "headers": headers,
            "user_agent": request.headers.get("user-agent", "unknown"),
            "ip": request.client.host if request.client else "unknown",
        }

        route = request.scope.get("route")
        if route is not None and getattr(route, "path", None):
            metadata["route"] = route.path

        if self.settings.include_request_body:
            body = self._request_body(request, exc)
            if body is not None:
                metadata["body"] = body
        return metadata

    def _request_body(self, request: Request, exc: Exception) -> Any:
        # Only bodies already read by the app are used; the stream is consumed.
        body = getattr(exc, "body", None)
        if body is None:
            body = getattr(request, "_body", None)
        if body is None:
            return None
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        try:
            size = len(body) if isinstance(body, str) else len(json.dumps(body, default=str))
        except (TypeError, ValueError):
            return None
        return body if size <= self.settings.max_body_size else None

    # ---- Trace id ----

    def extract_trace_id(self, request: Request) -> Optional[str]:
        for header in (self.settings.trace_id_header, *FALLBACK_TRACE_IDS):
            value = request.headers.get(header)
            if value:
                return value
        return None

    def assign_trace_id(self, error: StructuredError, request: Request) -> StructuredError:
        trace_id = self.extract_trace_id(request) or error.trace_id or UNKNOWN_TRACE_ID
        return error.derive(trace_id=trace_id)

    # ---- Responses ----

    def error_response(self, error: StructuredError) -> JSONResponse:
        body = ErrorResponse(
            code=str(getattr(error.code, "value", error.code)),
            service_name=error.service_name,
            message=error.message,
            timestamp=error.timestamp,
            trace_id=error.trace_id or UNKNOWN_TRACE_ID,
            status_code=error.status_code,
        )
        return JSONResponse(status_code=error.status_code, content=body.model_dump(mode="json", by_alias=True))

    def fallback_response(self) -> JSONResponse:
        body = ErrorResponse(
            code="ERROR_HANDLER_FAILED",
            service_name=self.settings.service_name,
            message="An error occurred while processing the request",
            timestamp=datetime.now(timezone.utc),
            trace_id="unknown",
            status_code=500,
        )
        return JSONResponse(status_code=500, content=body.model_dump(mode="json", by_alias=True))


def install_error_handlers(app: FastAPI, settings: Optional[Settings] = None) -> ErrorHandler:
    """Register one ErrorHandler for every exception type on ``app``."""
    handler = ErrorHandler(settings=settings)
    app.add_exception_handler(StructuredError, handler)
    app.add_exception_handler(RequestValidationError, handler)
    app.add_exception_handler(StarletteHTTPException, handler)
    app.add_exception_handler(Exception, handler)
    return handler
