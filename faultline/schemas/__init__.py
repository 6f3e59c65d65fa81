# faultline/schemas/__init__.py
from __future__ import annotations

"""
Pydantic schemas for serialized errors.

This module is the API contract layer and depends on:
- faultline.models (enumerations)
- faultline.models.errors.StructuredError

It is used by:
- the FastAPI error handlers (response bodies)
- anything that ships structured errors between services
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from faultline.models import ErrorCategory, ErrorKind
from faultline.models.errors import StructuredError


# ---------- HTTP error response ----------


class ErrorResponse(BaseModel):
    """Body returned to HTTP clients. Serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    service_name: str
    message: str
    timestamp: datetime
    trace_id: str
    status_code: int = Field(ge=100, le=599)


# ---------- Full error record ----------


class StructuredErrorRead(BaseModel):
    name: ErrorKind
    code: str
    message: str
    status_code: int
    category: ErrorCategory
    is_operational: bool
    service_name: str
    trace_id: Optional[str] = None
    timestamp: datetime
    context: Dict[str, Any] = Field(default_factory=dict)
    stack: Optional[str] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_error(cls, error: StructuredError) -> "StructuredErrorRead":
        return cls.model_validate(error.to_dict())
