"""Global test fixtures."""

import pytest

from faultline.config import get_settings
from faultline.services.transformer import transformer as transformer_module


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Each test reads settings from a clean environment."""
    for name in (
        "SERVICE_NAME",
        "FAULTLINE_SERVICE_NAME",
        "FAULTLINE_TRANSFORMER_LOG_LEVEL",
        "FAULTLINE_TRACE_ID_LENGTH",
        "FAULTLINE_TRACE_ID_HEADER",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    monkeypatch.setattr(transformer_module, "_default_transformer", None)
    yield
    get_settings.cache_clear()
