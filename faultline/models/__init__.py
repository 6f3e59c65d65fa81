# faultline/models/__init__.py
from __future__ import annotations

"""
Core value types for faultline.

This module depends on nothing else in the package and is used by:
- faultline.models.errors (structured error classes)
- the diagnostics services (classifier, stack helpers)
- the transformer and the FastAPI adapter

Types:
- ErrorCategory: what went wrong
- ErrorLayer: which architectural layer raised it
- ErrorKind: which structured error class represents it
- NetworkErrorCode / DatabaseErrorCode: fine-grained machine codes
- ErrorContext: per-call metadata attached to a structured error

The string values are persisted in logs and API responses; never rename them.
"""

import enum
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Mapping, Optional


class ErrorCategory(str, enum.Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    EXTERNAL_SERVICE = "external_service"
    DATABASE = "database"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"
    BAD_CONFIG = "bad_config"
    TRANSFORMATION = "transformation"


class ErrorLayer(str, enum.Enum):
    APP = "app"
    ROUTER = "router"
    REPOSITORY = "repository"
    SERVICE = "service"
    CONTROLLER = "controller"
    MODEL = "model"
    UTILITY = "utility"


class ErrorKind(str, enum.Enum):
    VALIDATION = "ValidationError"
    CONFLICT = "ConflictError"
    EXTERNAL_SERVICE = "ExternalServiceError"
    DATABASE = "DatabaseError"
    INTERNAL = "InternalError"
    NOT_FOUND = "NotFoundError"
    NETWORK = "NetworkError"
    AUTHORIZATION = "AuthorizationError"
    AUTHENTICATION = "AuthenticationError"
    BAD_CONFIG = "BadConfigError"
    TRANSFORMATION = "TransformationError"


class NetworkErrorCode(str, enum.Enum):
    INVALID_URL = "INVALID_URL"
    SERVER_NOT_REACHABLE = "SERVER_NOT_REACHABLE"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    REQUEST_CANCELED = "REQUEST_CANCELED"
    BAD_CONFIGURATION = "BAD_CONFIGURATION"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"


class DatabaseErrorCode(str, enum.Enum):
    DATABASE_CONNECTION_ERROR = "DATABASE_CONNECTION_ERROR"
    DATABASE_QUERY_ERROR = "DATABASE_QUERY_ERROR"
    DATABASE_TRANSACTION_ERROR = "DATABASE_TRANSACTION_ERROR"
    DATABASE_VALIDATION_ERROR = "DATABASE_VALIDATION_ERROR"
    DATABASE_TIMEOUT_ERROR = "DATABASE_TIMEOUT_ERROR"


# camelCase keys accepted from callers porting contexts from JSON payloads
_CONTEXT_KEY_ALIASES = {
    "moduleName": "module_name",
    "transformerModuleName": "module_name",
    "className": "class_name",
    "methodName": "method_name",
}

_ENUM_FIELDS = {"layer": ErrorLayer, "category": ErrorCategory}


@dataclass(frozen=True)
class ErrorContext:
    """Metadata describing where an error was intercepted.

    Instances are immutable. ``merge`` builds a new context and never
    overwrites a field that is already set.
    """

    layer: Optional[ErrorLayer] = None
    category: Optional[ErrorCategory] = None
    module_name: Optional[str] = None
    class_name: Optional[str] = None
    method_name: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, enum_cls in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if value is not None and not isinstance(value, enum_cls):
                object.__setattr__(self, name, enum_cls(value))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @classmethod
    def coerce(cls, value: Any) -> "ErrorContext":
        """Build a context from None, a mapping, keyword-style dict or a context.

        Unknown keys are kept in ``extra``. Enum fields holding values
        outside their enumeration are kept in ``extra`` as well.
        """
        if value is None:
            return cls()
        if isinstance(value, ErrorContext):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"Cannot build an ErrorContext from {type(value).__name__}")

        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = dict(value.get("extra") or {})
        for key, item in value.items():
            if key == "extra":
                continue
            name = _CONTEXT_KEY_ALIASES.get(key, key)
            if name not in known or item is None:
                if item is not None:
                    extra[key] = item
                continue
            enum_cls = _ENUM_FIELDS.get(name)
            if enum_cls is not None and not isinstance(item, enum_cls):
                try:
                    item = enum_cls(item)
                except ValueError:
                    extra[key] = item
                    continue
            kwargs.setdefault(name, item)
        return cls(extra=extra, **kwargs)

    def merge(self, other: Any) -> "ErrorContext":
        """Return a context with unset fields filled in from ``other``."""
        other = ErrorContext.coerce(other)
        values = {
            f.name: getattr(self, f.name) if getattr(self, f.name) is not None else getattr(other, f.name)
            for f in fields(self)
            if f.name != "extra"
        }
        return ErrorContext(extra={**other.extra, **self.extra}, **values)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            data[f.name] = value.value if isinstance(value, enum.Enum) else value
        return data

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()
