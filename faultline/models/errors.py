from __future__ import annotations

"""faultline/models/errors.py

Structured error classes.

Every error raised or returned by the transformer is an instance of
StructuredError. There is one subclass per ErrorKind; each subclass carries
its default category, HTTP status code and operational flag:

- ValidationError        validation        400  operational
- AuthenticationError    authentication    401  operational
- AuthorizationError     authorization     403  operational
- NotFoundError          not_found         404  operational
- ConflictError          conflict          409  operational
- ExternalServiceError   external_service  502
- DatabaseError          database          500  operational
- InternalError          internal          500
- NetworkError           network           (per code)
- BadConfigError         bad_config        500
- TransformationError    transformation    400  operational

Instances are not mutated after construction. Use ``derive`` (or
``with_context``) to obtain an adjusted copy.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Optional, Type

from faultline.config import get_settings
from faultline.models import (
    DatabaseErrorCode,
    ErrorCategory,
    ErrorContext,
    ErrorKind,
    NetworkErrorCode,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _default_service_name() -> str:
    # Error construction must not fail on a broken environment.
    try:
        return get_settings().service_name
    except ValueError:
        return "unknown"


def _code_text(code: Any) -> str:
    return str(getattr(code, "value", code))


_FIELD_NAMES = frozenset(
    {
        "code",
        "message",
        "category",
        "status_code",
        "is_operational",
        "context",
        "cause",
        "cleaned_stack",
        "service_name",
        "trace_id",
        "timestamp",
    }
)


class StructuredError(Exception):
    """Canonical, categorized error with contextual metadata."""

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL
    default_category: ClassVar[ErrorCategory] = ErrorCategory.INTERNAL
    default_status_code: ClassVar[int] = 500
    default_operational: ClassVar[bool] = False
    DEFAULT_CODE: ClassVar[Any] = "UNKNOWN_ERROR"

    def __init__(
        self,
        code: str,
        message: Optional[str] = None,
        *,
        category: Optional[ErrorCategory] = None,
        status_code: Optional[int] = None,
        is_operational: Optional[bool] = None,
        context: Any = None,
        cause: Any = None,
        cleaned_stack: Optional[str] = None,
        service_name: Optional[str] = None,
        trace_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        super().__init__()
        self._set_fields(
            code,
            message,
            category=category,
            status_code=status_code,
            is_operational=is_operational,
            context=context,
            cause=cause,
            cleaned_stack=cleaned_stack,
            service_name=service_name,
            trace_id=trace_id,
            timestamp=timestamp,
        )

    @classmethod
    def _coerce_code(cls, code: Any) -> Any:
        return code

    @classmethod
    def _default_status(cls, code: Any) -> int:
        return cls.default_status_code

    def _set_fields(
        self,
        code: Any,
        message: Optional[str],
        *,
        category: Optional[ErrorCategory],
        status_code: Optional[int],
        is_operational: Optional[bool],
        context: Any,
        cause: Any,
        cleaned_stack: Optional[str],
        service_name: Optional[str],
        trace_id: Optional[str],
        timestamp: Optional[datetime],
    ) -> None:
        self.code = self._coerce_code(code)
        self.message = message if message is not None else ""
        self.args = (self.message or _code_text(self.code),)
        self.category = ErrorCategory(category) if category is not None else self.default_category
        self.status_code = status_code if status_code is not None else self._default_status(self.code)
        self.is_operational = (
            is_operational if is_operational is not None else self.default_operational
        )
        self.context = ErrorContext.coerce(context)
        self.cause = cause
        self.cleaned_stack = cleaned_stack
        self.service_name = service_name or _default_service_name()
        self.trace_id = trace_id
        self.timestamp = timestamp or _now()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"

    @property
    def name(self) -> str:
        return self.kind.value

    def _init_kwargs(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category,
            "status_code": self.status_code,
            "is_operational": self.is_operational,
            "context": self.context,
            "cause": self.cause,
            "cleaned_stack": self.cleaned_stack,
            "service_name": self.service_name,
            "trace_id": self.trace_id,
            "timestamp": self.timestamp,
        }

    def derive(self, **changes: Any) -> "StructuredError":
        """Return a copy of this error with the given attributes replaced.

        The copy is built without calling ``__init__``, so subclasses with
        their own constructor signature keep their type and extra attributes.
        """
        error = type(self).__new__(type(self))
        error.__dict__.update(self.__dict__)
        fields = {**StructuredError._init_kwargs(self), **changes}
        extra = {name: fields.pop(name) for name in list(fields) if name not in _FIELD_NAMES}
        error._set_fields(**fields)
        error.__dict__.update(extra)
        return error

    def with_context(self, context: Any) -> "StructuredError":
        """Return a copy whose context gains the fields it does not set yet."""
        return self.derive(context=self.context.merge(context))

    def log(self, *, include_context: bool = True, filter_stack: bool = True, logger=None) -> None:
        from faultline.services.diagnostics.report import log_error

        log_error(self, logger=logger, include_context=include_context, filter_stack=filter_stack)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.kind.value,
            "code": _code_text(self.code),
            "message": self.message,
            "status_code": self.status_code,
            "trace_id": self.trace_id,
            "service_name": self.service_name,
            "category": self.category.value,
            "is_operational": self.is_operational,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict(),
            "stack": self.cleaned_stack,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "StructuredError":
        """Rebuild an error from ``to_dict`` output.

        Unknown kinds, and codes or categories the kind does not accept,
        are rebuilt as InternalError.
        """
        try:
            error_cls = get_error_class(data.get("name") or data.get("kind"))
        except ValueError:
            error_cls = InternalError
        timestamp = data.get("timestamp")
        kwargs: Dict[str, Any] = {
            "code": data.get("code") or error_cls.DEFAULT_CODE,
            "message": data.get("message"),
            "category": data.get("category"),
            "status_code": data.get("status_code"),
            "is_operational": data.get("is_operational"),
            "context": data.get("context"),
            "cleaned_stack": data.get("stack"),
            "service_name": data.get("service_name"),
            "trace_id": data.get("trace_id"),
            "timestamp": datetime.fromisoformat(timestamp) if timestamp else None,
        }
        if error_cls is ExternalServiceError:
            kwargs["external_service"] = data.get("external_service") or "unknown"
        try:
            return error_cls(**kwargs)
        except ValueError:
            for name in ("category", "status_code", "is_operational", "external_service"):
                kwargs.pop(name, None)
            return InternalError(**kwargs)


class ValidationError(StructuredError):
    kind = ErrorKind.VALIDATION
    default_category = ErrorCategory.VALIDATION
    default_status_code = 400
    default_operational = True


class AuthenticationError(StructuredError):
    kind = ErrorKind.AUTHENTICATION
    default_category = ErrorCategory.AUTHENTICATION
    default_status_code = 401
    default_operational = True


class AuthorizationError(StructuredError):
    kind = ErrorKind.AUTHORIZATION
    default_category = ErrorCategory.AUTHORIZATION
    default_status_code = 403
    default_operational = True


class NotFoundError(StructuredError):
    kind = ErrorKind.NOT_FOUND
    default_category = ErrorCategory.NOT_FOUND
    default_status_code = 404
    default_operational = True


class ConflictError(StructuredError):
    kind = ErrorKind.CONFLICT
    default_category = ErrorCategory.CONFLICT
    default_status_code = 409
    default_operational = True


class ExternalServiceError(StructuredError):
    kind = ErrorKind.EXTERNAL_SERVICE
    default_category = ErrorCategory.EXTERNAL_SERVICE
    default_status_code = 502
    default_operational = False

    def __init__(self, code: str, message: Optional[str] = None, *, external_service: str = "unknown", **kwargs: Any) -> None:
        super().__init__(code, message, **kwargs)
        self.external_service = external_service

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "external_service": self.external_service}


class DatabaseError(StructuredError):
    CODES = DatabaseErrorCode

    kind = ErrorKind.DATABASE
    default_category = ErrorCategory.DATABASE
    default_status_code = 500
    default_operational = True

    DEFAULT_CODE = DatabaseErrorCode.DATABASE_QUERY_ERROR

    @classmethod
    def _coerce_code(cls, code: Any) -> DatabaseErrorCode:
        return DatabaseErrorCode(code)


class InternalError(StructuredError):
    kind = ErrorKind.INTERNAL
    default_category = ErrorCategory.INTERNAL
    default_status_code = 500
    default_operational = False


NETWORK_STATUS_CODES: Dict[NetworkErrorCode, int] = {
    NetworkErrorCode.SERVER_NOT_REACHABLE: 503,
    NetworkErrorCode.REQUEST_TIMEOUT: 408,
    NetworkErrorCode.BAD_CONFIGURATION: 502,
    NetworkErrorCode.TOO_MANY_REDIRECTS: 310,
    NetworkErrorCode.INVALID_URL: 400,
    NetworkErrorCode.REQUEST_CANCELED: 499,
    NetworkErrorCode.UNKNOWN_ERROR: 520,
}


class NetworkError(StructuredError):
    CODES = NetworkErrorCode

    kind = ErrorKind.NETWORK
    default_category = ErrorCategory.NETWORK
    default_status_code = 520
    default_operational = False

    DEFAULT_CODE = NetworkErrorCode.UNKNOWN_ERROR

    @classmethod
    def _coerce_code(cls, code: Any) -> NetworkErrorCode:
        return NetworkErrorCode(code)

    @classmethod
    def _default_status(cls, code: Any) -> int:
        return NETWORK_STATUS_CODES[code]

    @classmethod
    def from_httpx_error(cls, exc: Any, context: Any = None) -> "NetworkError":
        """Build a NetworkError from an httpx request (transport) error.

        Raises:
            InternalError: INVALID_CALL when ``exc`` is not a request error
                or already carries a response.
        """
        from faultline.services.diagnostics.recognizers import network_error_from_httpx

        return network_error_from_httpx(exc, context)


class BadConfigError(StructuredError):
    kind = ErrorKind.BAD_CONFIG
    default_category = ErrorCategory.BAD_CONFIG
    default_status_code = 500
    default_operational = False


class TransformationError(StructuredError):
    kind = ErrorKind.TRANSFORMATION
    default_category = ErrorCategory.TRANSFORMATION
    default_status_code = 400
    default_operational = True


ERROR_CLASSES: Dict[ErrorKind, Type[StructuredError]] = {
    ErrorKind.VALIDATION: ValidationError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.EXTERNAL_SERVICE: ExternalServiceError,
    ErrorKind.DATABASE: DatabaseError,
    ErrorKind.INTERNAL: InternalError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.AUTHORIZATION: AuthorizationError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.BAD_CONFIG: BadConfigError,
    ErrorKind.TRANSFORMATION: TransformationError,
}

CATEGORY_KINDS: Dict[ErrorCategory, ErrorKind] = {
    ErrorCategory.VALIDATION: ErrorKind.VALIDATION,
    ErrorCategory.AUTHENTICATION: ErrorKind.AUTHENTICATION,
    ErrorCategory.AUTHORIZATION: ErrorKind.AUTHORIZATION,
    ErrorCategory.NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCategory.CONFLICT: ErrorKind.CONFLICT,
    ErrorCategory.EXTERNAL_SERVICE: ErrorKind.EXTERNAL_SERVICE,
    ErrorCategory.DATABASE: ErrorKind.DATABASE,
    ErrorCategory.NETWORK: ErrorKind.NETWORK,
    ErrorCategory.CONFIGURATION: ErrorKind.BAD_CONFIG,
    ErrorCategory.INTERNAL: ErrorKind.INTERNAL,
    ErrorCategory.BAD_CONFIG: ErrorKind.BAD_CONFIG,
    ErrorCategory.TRANSFORMATION: ErrorKind.TRANSFORMATION,
}


def get_error_class(kind: Any) -> Type[StructuredError]:
    """Return the StructuredError subclass for an ErrorKind or its value."""
    return ERROR_CLASSES[ErrorKind(kind)]
