"""Trace id generation and validation."""
from __future__ import annotations

import secrets
from typing import Optional

from faultline.config import get_settings
from faultline.models.errors import ValidationError


def _length(length: Optional[int]) -> int:
    length = length if length is not None else get_settings().trace_id_length
    if length <= 0 or length % 2 != 0:
        raise ValueError("Trace id length must be a positive even number")
    return length


def generate_trace_id(length: Optional[int] = None) -> str:
    """Return a random lowercase hex trace id of ``length`` characters."""
    return secrets.token_hex(_length(length) // 2)


def validate_trace_id(trace_id: str, length: Optional[int] = None) -> str:
    """Return ``trace_id`` unchanged if it has the expected length.

    Raises:
        ValidationError: INVALID_TRACE_ID otherwise.
    """
    expected = _length(length)
    if not isinstance(trace_id, str) or len(trace_id) != expected:
        raise ValidationError(
            "INVALID_TRACE_ID",
            "Trace ID is invalid",
            context={"expected_length": expected},
        )
    return trace_id
