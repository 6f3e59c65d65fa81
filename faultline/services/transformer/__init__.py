from __future__ import annotations

"""
Error transformation.

This package provides:
- ErrorTransformer: raw raised value + context -> StructuredError
- ErrorMapBuilder: ordered rules consulted before classification
- wrappers: decorators and helpers that re-raise transformed errors

High-level helpers exposed:

- transform(raw, context) -> StructuredError
- wrap_with_transform(fn, context) -> wrapped callable
- register_transforms(instance, methods) -> instance
"""

from .error_map import ErrorMapBuilder, IncompleteMappingError  # noqa: F401
from .transformer import ErrorTransformer, get_default_transformer, transform  # noqa: F401
from .wrappers import register_transforms, transform_errors, wrap_with_transform  # noqa: F401
