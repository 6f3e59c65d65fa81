# faultline/api/__init__.py
from __future__ import annotations

"""
FastAPI integration.

This module depends on:
- faultline.services.transformer for classifying unknown exceptions
- faultline.schemas.ErrorResponse for response bodies

Usage:

    app = FastAPI()
    app.add_middleware(TraceIdMiddleware)
    install_error_handlers(app)
"""

from .handlers import ErrorHandler, category_for_status, install_error_handlers  # noqa: F401
from .middleware import TraceIdMiddleware  # noqa: F401
