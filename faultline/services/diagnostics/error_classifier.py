from __future__ import annotations

"""faultline/services/diagnostics/error_classifier.py

Centralized classification of raised values.

This module looks at any raised value (an exception, a mapping, a string,
None, ...) plus the ErrorContext of the call and produces exactly one
StructuredError.

The classification is:
- deterministic (no randomness)
- total (it never raises; unknown shapes fall back to InternalError)
- lossless (the raw value is always kept in ``cause``)

Resolution order:
1. already a StructuredError     -> same error, contexts merged
2. ``code`` is a NetworkErrorCode -> NetworkError
3. ``code`` is a DatabaseErrorCode -> DatabaseError
4. a library recognizer matches  -> its error (httpx, SQLAlchemy, pydantic)
5. anything else                 -> InternalError (category internal)
"""

import enum
import logging
from typing import Any, Mapping, Optional, Sequence

from faultline.models import DatabaseErrorCode, ErrorContext, NetworkErrorCode
from faultline.models.errors import DatabaseError, InternalError, NetworkError, StructuredError
from faultline.services.diagnostics.recognizers import DEFAULT_RECOGNIZERS, Recognizer

logger = logging.getLogger(__name__)

DEFAULT_CODE = "INTERNAL_SERVER_ERROR"
UNKNOWN_MESSAGE = "Unknown error"

_NETWORK_CODES = {code.value for code in NetworkErrorCode}
_DATABASE_CODES = {code.value for code in DatabaseErrorCode}


def get_field(raw: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or an attribute; None when unreadable."""
    try:
        if isinstance(raw, Mapping):
            return raw.get(name)
        return getattr(raw, name, None)
    except Exception:  # noqa: BLE001
        return None


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:  # noqa: BLE001
        try:
            return repr(value)
        except Exception:  # noqa: BLE001
            return UNKNOWN_MESSAGE


def extract_code(raw: Any) -> Optional[str]:
    """Return the raw value's string ``code`` field, if it has one."""
    code = get_field(raw, "code")
    if isinstance(code, enum.Enum):
        code = code.value
    return code if isinstance(code, str) and code else None


def extract_message(raw: Any) -> str:
    """Return a human-readable message for any raised value.

    Prefers an explicit ``message``, then the exception text, then the
    code, and finally the string form of the value.
    """
    if raw is None:
        return UNKNOWN_MESSAGE
    if isinstance(raw, str):
        return raw

    message = get_field(raw, "message")
    if isinstance(message, str) and message:
        return message

    if isinstance(raw, BaseException):
        text = _safe_str(raw)
        if text:
            return text

    code = extract_code(raw)
    if code:
        return code

    if isinstance(raw, BaseException):
        return type(raw).__name__
    return _safe_str(raw) or UNKNOWN_MESSAGE


def _classify(raw: Any, context: ErrorContext, recognizers: Sequence[Recognizer]) -> StructuredError:
    # 1) Already classified: keep it, only fill in missing context
    if isinstance(raw, StructuredError):
        return raw.with_context(context)

    message = extract_message(raw)
    code = extract_code(raw)

    # 2) Explicit machine codes
    if code in _NETWORK_CODES:
        return NetworkError(code, message, context=context, cause=raw)
    if code in _DATABASE_CODES:
        return DatabaseError(code, message, context=context, cause=raw)

    # 3) Third-party exceptions with a known meaning
    for recognizer in recognizers:
        error = recognizer(raw, context)
        if error is not None:
            return error

    # 4) Fall back to an internal error
    return InternalError(code or DEFAULT_CODE, message, context=context, cause=raw)


def classify(
    raw: Any,
    context: Any = None,
    *,
    recognizers: Sequence[Recognizer] = DEFAULT_RECOGNIZERS,
) -> StructuredError:
    """Classify a raised value into a StructuredError.

    ``context`` may be an ErrorContext, a mapping or None. This function
    never raises; at minimum it returns an InternalError wrapping ``raw``.
    """
    try:
        ctx = ErrorContext.coerce(context)
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring unusable error context: %s", exc)
        ctx = ErrorContext()

    try:
        return _classify(raw, ctx, recognizers)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Error classification failed, falling back to InternalError: %s", exc)
        return InternalError(DEFAULT_CODE, _safe_str(raw), context=ctx, cause=raw)
