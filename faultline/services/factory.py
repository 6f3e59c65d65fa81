"""Convenience constructors for structured errors."""
from __future__ import annotations

from typing import Any, Optional

from faultline.config import get_settings
from faultline.models import DatabaseErrorCode, ErrorCategory, ErrorContext, NetworkErrorCode
from faultline.models.errors import (
    AuthenticationError,
    AuthorizationError,
    BadConfigError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    InternalError,
    NetworkError,
    NotFoundError,
    StructuredError,
    TransformationError,
    ValidationError,
)


class ErrorFactory:
    """Build errors stamped with one service name and default trace id."""

    def __init__(self, service_name: Optional[str] = None, default_trace_id: Optional[str] = None):
        self.service_name = service_name or get_settings().service_name
        self.default_trace_id = default_trace_id

    def _common(self, context: Any, cause: Any) -> dict[str, Any]:
        return {
            "service_name": self.service_name,
            "trace_id": self.default_trace_id,
            "context": context,
            "cause": cause,
        }

    def create_validation_error(
        self, code: str, message: str | None = None, context: Any = None, *, cause: Any = None
    ) -> ValidationError:
        return ValidationError(code, message or "Validation failed", **self._common(context, cause))

    def create_conflict_error(
        self, code: str, message: str | None = None, context: Any = None, *, cause: Any = None
    ) -> ConflictError:
        return ConflictError(code, message or "Resource conflict", **self._common(context, cause))

    def create_not_found_error(
        self, code: str, message: str | None = None, context: Any = None, *, cause: Any = None
    ) -> NotFoundError:
        return NotFoundError(code, message or "Resource not found", **self._common(context, cause))

    def create_external_service_error(
        self,
        code: str,
        external_service: str,
        message: str | None = None,
        context: Any = None,
        *,
        cause: Any = None,
    ) -> ExternalServiceError:
        return ExternalServiceError(
            code,
            message or f"External service error: {external_service}",
            external_service=external_service,
            **self._common(context, cause),
        )

    def create_internal_error(
        self, code: str, message: str | None = None, context: Any = None, *, cause: Any = None
    ) -> InternalError:
        return InternalError(code, message or "Internal server error", **self._common(context, cause))

    def create_network_error(
        self,
        code: NetworkErrorCode,
        message: str | None = None,
        context: Any = None,
        *,
        cause: Any = None,
    ) -> NetworkError:
        return NetworkError(code, message or "Network error", **self._common(context, cause))

    def create_database_error(
        self,
        code: DatabaseErrorCode,
        message: str | None = None,
        context: Any = None,
        *,
        cause: Any = None,
    ) -> DatabaseError:
        return DatabaseError(code, message or "Database error", **self._common(context, cause))

    def create_authentication_error(
        self, code: str, message: str | None = None, context: Any = None, *, cause: Any = None
    ) -> AuthenticationError:
        return AuthenticationError(code, message or "Authentication failed", **self._common(context, cause))

    def create_authorization_error(
        self, code: str, message: str | None = None, context: Any = None, *, cause: Any = None
    ) -> AuthorizationError:
        return AuthorizationError(code, message or "Authorization failed", **self._common(context, cause))

    def create_bad_config_error(
        self, code: str, message: str | None = None, context: Any = None, *, cause: Any = None
    ) -> BadConfigError:
        return BadConfigError(code, message or "Configuration error", **self._common(context, cause))

    def create_transformation_error(
        self, code: str, message: str | None = None, context: Any = None, *, cause: Any = None
    ) -> TransformationError:
        return TransformationError(code, message or "Transformation failed", **self._common(context, cause))

    def create_error(
        self,
        category: ErrorCategory,
        code: str,
        message: str | None = None,
        context: Any = None,
        *,
        cause: Any = None,
    ) -> StructuredError:
        """Generic creator: pick the error class from the category.

        Network and database errors only accept their own codes; any other
        ``code`` falls back to UNKNOWN_ERROR / DATABASE_QUERY_ERROR and is
        kept in the context as ``requested_code``.
        """
        category = ErrorCategory(category)
        if category == ErrorCategory.VALIDATION:
            return self.create_validation_error(code, message, context, cause=cause)
        if category == ErrorCategory.CONFLICT:
            return self.create_conflict_error(code, message, context, cause=cause)
        if category == ErrorCategory.NOT_FOUND:
            return self.create_not_found_error(code, message, context, cause=cause)
        if category == ErrorCategory.EXTERNAL_SERVICE:
            return self.create_external_service_error(code, "unknown", message, context, cause=cause)
        if category == ErrorCategory.NETWORK:
            if code in NetworkErrorCode._value2member_map_:
                return self.create_network_error(NetworkErrorCode(code), message, context, cause=cause)
            return self.create_network_error(
                NetworkErrorCode.UNKNOWN_ERROR,
                message,
                _with_requested_code(context, code),
                cause=cause,
            )
        if category == ErrorCategory.DATABASE:
            if code in DatabaseErrorCode._value2member_map_:
                return self.create_database_error(DatabaseErrorCode(code), message, context, cause=cause)
            return self.create_database_error(
                DatabaseErrorCode.DATABASE_QUERY_ERROR,
                message,
                _with_requested_code(context, code),
                cause=cause,
            )
        if category == ErrorCategory.AUTHENTICATION:
            return self.create_authentication_error(code, message, context, cause=cause)
        if category == ErrorCategory.AUTHORIZATION:
            return self.create_authorization_error(code, message, context, cause=cause)
        if category in (ErrorCategory.BAD_CONFIG, ErrorCategory.CONFIGURATION):
            error = self.create_bad_config_error(code, message, context, cause=cause)
            return error if error.category == category else error.derive(category=category)
        if category == ErrorCategory.TRANSFORMATION:
            return self.create_transformation_error(code, message, context, cause=cause)
        return self.create_internal_error(code, message, context, cause=cause)


def _with_requested_code(context: Any, code: str) -> ErrorContext:
    return ErrorContext.coerce(context).merge({"requested_code": code})
