"""Application settings and configuration.

This module provides Pydantic settings classes for application configuration,
loaded from environment variables with support for nested configuration.
"""

import logging

import pydantic_settings
from pydantic import BaseModel, Field, field_validator

from lm_gateway.platform.constants import DEFAULT_HOST, DEFAULT_PORT, MAX_BODY_BYTES, SYSTEM_MARKER


class AppHTTPSettings(BaseModel):
    host: str = Field(DEFAULT_HOST)
    port: int = Field(DEFAULT_PORT)
    log_level: str = Field("INFO")
    log_json: bool | None = Field(
        None, description="Override log format: True=JSON, False=console, None=auto"
    )

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v):
        v_upper = v.upper()
        if v_upper not in logging._nameToLevel:
            raise ValueError(f'invalid value "{v}"')
        return v_upper


class GatewaySettings(BaseModel):
    """Request handling limits and conventions.

    Attributes:
        max_body_bytes: Largest accepted request body
        system_marker: Prefix for system prompts folded into user messages
        keep_alive_timeout: Idle keep-alive timeout in seconds
        shutdown_timeout: Seconds to wait for a graceful stop before forcing it
    """

    max_body_bytes: int = Field(MAX_BODY_BYTES, gt=0)
    system_marker: str = Field(SYSTEM_MARKER, min_length=1)
    keep_alive_timeout: int = Field(65, gt=0)
    shutdown_timeout: float = Field(5.0, gt=0)


class UpstreamModelSettings(BaseModel):
    """A model exposed through the gateway.

    Attributes:
        id: LiteLLM model identifier (e.g. "openai/gpt-4o")
        family: Family used for fuzzy matching of requested names
        vendor: Reported owner of the model
        name: Display name
        max_input_tokens: Context window size, if known
    """

    id: str
    family: str = ""
    vendor: str = ""
    name: str = ""
    max_input_tokens: int | None = None


class UpstreamSettings(BaseModel):
    """LiteLLM connection settings.

    Example: UPSTREAM__MODELS='[{"id":"openai/gpt-4o","family":"gpt-4o","vendor":"openai"}]'
    """

    api_base: str | None = None
    api_key: str | None = None
    timeout: float = Field(120.0, gt=0)
    models: list[UpstreamModelSettings] = []


class BugsnagSettings(BaseModel):
    api_key: str = Field("")
    release_stage: str = Field("local")

    @field_validator("release_stage")
    @classmethod
    def _validate_bugsnag_release_stage(cls, v):
        if v not in ["development", "production", "local"]:
            raise ValueError(f'invalid bugsnag release stage "{v}"')
        return v


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_nested_delimiter="__")

    app_http: AppHTTPSettings = AppHTTPSettings()
    gateway: GatewaySettings = GatewaySettings()
    upstream: UpstreamSettings = UpstreamSettings()
    bugsnag: BugsnagSettings = BugsnagSettings()

    @property
    def json_logs(self) -> bool:
        """Resolve the log format: explicit override, else JSON outside local runs."""
        if self.app_http.log_json is not None:
            return self.app_http.log_json
        return self.bugsnag.release_stage != "local"
