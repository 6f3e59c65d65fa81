# faultline/config/__init__.py
from __future__ import annotations

"""
Shortcut imports for configuration.
"""

from .settings import Settings, TransformerLogLevel, get_settings  # noqa: F401
