from __future__ import annotations

"""
Diagnostics: stack normalization, error classification and reports.

This package provides:
- stack: capture the current call stack and normalize it
- error_classifier: turn any raised value into a StructuredError
- recognizers: classification of httpx, SQLAlchemy and pydantic errors
- report: human-readable error reports for logs

The goal is to keep error handling logic centralized and deterministic.
"""

from .error_classifier import classify, extract_code, extract_message  # noqa: F401
from .stack import (  # noqa: F401
    filter_lines,
    generate_normalized_stack,
    remove_working_directory_prefix,
)
