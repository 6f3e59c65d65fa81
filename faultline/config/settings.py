from __future__ import annotations

"""faultline/config/settings.py

Library configuration using environment-driven settings.

This module centralizes:
- the service name stamped on every structured error
- stack normalization defaults (exclusions, working-directory stripping)
- the transformer log level
- trace id header name and length
- FastAPI error handler options (request body capture, logging)
"""
from functools import lru_cache
from typing import List, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TransformerLogLevel = Literal["unknown", "known", "all", "never"]


class Settings(BaseSettings):
    service_name: str = Field(
        default="unknown",
        validation_alias=AliasChoices("FAULTLINE_SERVICE_NAME", "SERVICE_NAME"),
    )

    # Stack normalization
    stack_exclusions: List[str] = ["site-packages", "<frozen "]
    strip_working_directory: bool = True

    # Transformer
    transformer_log_level: TransformerLogLevel = "never"

    # Trace ids
    trace_id_header: str = "x-trace-id"
    trace_id_length: int = 32

    # FastAPI error handler
    include_request_body: bool = False
    max_body_size: int = 1024
    enable_logging: bool = True

    model_config = SettingsConfigDict(
        env_prefix="FAULTLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("trace_id_length")
    @classmethod
    def _even_trace_id_length(cls, value: int) -> int:
        if value <= 0 or value % 2 != 0:
            raise ValueError("trace_id_length must be a positive even number")
        return value

    @field_validator("trace_id_header")
    @classmethod
    def _lowercase_header(cls, value: str) -> str:
        return value.lower()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
