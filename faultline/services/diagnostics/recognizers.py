from __future__ import annotations

"""faultline/services/diagnostics/recognizers.py

Recognizers for third-party exceptions with a well-known meaning.

A recognizer takes the raw value and the call's ErrorContext and returns a
StructuredError, or None when it does not know the value. The classifier
tries them in order after the explicit ``code`` lookup.

- httpx request errors     -> NetworkError (code per failure mode)
- httpx.HTTPStatusError    -> ExternalServiceError (remote host recorded)
- SQLAlchemy errors        -> DatabaseError (code per failure mode)
- pydantic ValidationError -> ValidationError (first issue)
"""

from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

import httpx
import pydantic
from sqlalchemy import exc as sa_exc

from faultline.models import DatabaseErrorCode, ErrorContext, NetworkErrorCode
from faultline.models.errors import (
    DatabaseError,
    ExternalServiceError,
    InternalError,
    NetworkError,
    StructuredError,
    ValidationError,
)

Recognizer = Callable[[Any, ErrorContext], Optional[StructuredError]]

# Order matters: the first matching class wins.
_HTTPX_CODES: Sequence[tuple[type, NetworkErrorCode]] = (
    (httpx.TimeoutException, NetworkErrorCode.REQUEST_TIMEOUT),
    (httpx.TooManyRedirects, NetworkErrorCode.TOO_MANY_REDIRECTS),
    (httpx.UnsupportedProtocol, NetworkErrorCode.INVALID_URL),
    (httpx.InvalidURL, NetworkErrorCode.INVALID_URL),
    (httpx.ProxyError, NetworkErrorCode.BAD_CONFIGURATION),
    (httpx.ProtocolError, NetworkErrorCode.BAD_CONFIGURATION),
    (httpx.NetworkError, NetworkErrorCode.SERVER_NOT_REACHABLE),
)

_SQLALCHEMY_CODES: Sequence[tuple[type, DatabaseErrorCode]] = (
    (sa_exc.TimeoutError, DatabaseErrorCode.DATABASE_TIMEOUT_ERROR),
    (sa_exc.PendingRollbackError, DatabaseErrorCode.DATABASE_TRANSACTION_ERROR),
    (sa_exc.OperationalError, DatabaseErrorCode.DATABASE_CONNECTION_ERROR),
    (sa_exc.IntegrityError, DatabaseErrorCode.DATABASE_VALIDATION_ERROR),
    (sa_exc.DataError, DatabaseErrorCode.DATABASE_VALIDATION_ERROR),
)


def _first_code(raw: Any, table: Iterable[tuple[type, Any]], default: Any) -> Any:
    for exc_type, code in table:
        if isinstance(raw, exc_type):
            return code
    return default


def _text(raw: BaseException, fallback: str) -> str:
    return str(raw).strip() or fallback


# ---- httpx ----


def _is_httpx_request_error(raw: Any) -> bool:
    return isinstance(raw, (httpx.RequestError, httpx.InvalidURL))


def _httpx_network_error(raw: BaseException, context: ErrorContext) -> NetworkError:
    code = _first_code(raw, _HTTPX_CODES, NetworkErrorCode.UNKNOWN_ERROR)
    return NetworkError(code, _text(raw, code.value), context=context, cause=raw)


def recognize_httpx_error(raw: Any, context: ErrorContext) -> Optional[StructuredError]:
    if isinstance(raw, httpx.HTTPStatusError):
        host = raw.request.url.host or "unknown"
        return ExternalServiceError(
            "EXTERNAL_SERVICE_ERROR",
            _text(raw, f"External service error: {host}"),
            external_service=host,
            context=context.merge({"response_status": raw.response.status_code}),
            cause=raw,
        )
    if _is_httpx_request_error(raw):
        return _httpx_network_error(raw, context)
    return None


def network_error_from_httpx(exc: Any, context: Any = None) -> NetworkError:
    """Strict conversion of an httpx request error into a NetworkError.

    Raises:
        InternalError: INVALID_CALL if ``exc`` carries a response or is not
            an httpx request error at all.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        raise InternalError(
            "INVALID_CALL",
            "calling from_httpx_error with a response, this is not a request error",
        )
    if not _is_httpx_request_error(exc):
        raise InternalError(
            "INVALID_CALL",
            "calling from_httpx_error without a request error",
        )
    return _httpx_network_error(exc, ErrorContext.coerce(context))


# ---- SQLAlchemy ----


def recognize_sqlalchemy_error(raw: Any, context: ErrorContext) -> Optional[StructuredError]:
    if not isinstance(raw, sa_exc.SQLAlchemyError):
        return None
    code = _first_code(raw, _SQLALCHEMY_CODES, DatabaseErrorCode.DATABASE_QUERY_ERROR)
    # DBAPIError.__str__ embeds the statement; the driver error is enough.
    origin = getattr(raw, "orig", None)
    message = _text(origin, code.value) if isinstance(origin, BaseException) else _text(raw, code.value)
    return DatabaseError(code, message, context=context, cause=raw)


# ---- pydantic ----


def validation_error_from_issues(
    issues: Sequence[Mapping[str, Any]],
    context: ErrorContext,
    cause: Any,
) -> ValidationError:
    """Build a ValidationError from pydantic-style issue dicts (first issue only)."""
    if not issues:
        return ValidationError(
            "UNKNOWN_VALIDATION_ERROR",
            "Validation failed",
            context=context,
            cause=cause,
        )
    issue = issues[0]
    message = str(issue.get("msg") or "Validation failed")
    details = {
        "path": ".".join(str(part) for part in issue.get("loc", ())),
        "constraint": issue.get("type"),
        "value": issue.get("input"),
    }
    return ValidationError(
        message,
        message,
        context=context.merge({key: value for key, value in details.items() if value is not None}),
        cause=cause,
    )


def recognize_pydantic_error(raw: Any, context: ErrorContext) -> Optional[StructuredError]:
    if not isinstance(raw, pydantic.ValidationError):
        return None
    return validation_error_from_issues(raw.errors(include_url=False), context, raw)


DEFAULT_RECOGNIZERS: Sequence[Recognizer] = (
    recognize_httpx_error,
    recognize_sqlalchemy_error,
    recognize_pydantic_error,
)
