# faultline/__init__.py
from __future__ import annotations

"""
Structured error handling for Python services.

Raised values of any shape are classified into StructuredError instances
that carry a kind, a category, the call context, a normalized stack and
the original exception.
"""

from faultline.models import (  # noqa: F401
    DatabaseErrorCode,
    ErrorCategory,
    ErrorContext,
    ErrorKind,
    ErrorLayer,
    NetworkErrorCode,
)
from faultline.models.errors import (  # noqa: F401
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
from faultline.services.diagnostics import (  # noqa: F401
    classify,
    filter_lines,
    generate_normalized_stack,
    remove_working_directory_prefix,
)
from faultline.services.factory import ErrorFactory  # noqa: F401
from faultline.services.transformer import (  # noqa: F401
    ErrorMapBuilder,
    ErrorTransformer,
    IncompleteMappingError,
    register_transforms,
    transform,
    transform_errors,
    wrap_with_transform,
)

__version__ = "0.1.0"
