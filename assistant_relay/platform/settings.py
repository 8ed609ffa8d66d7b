"""Application settings and configuration.

This module provides Pydantic settings classes for application configuration,
loaded from environment variables with support for nested configuration.
"""

import logging

import pydantic_settings
from pydantic import BaseModel, Field, field_validator


class AppHTTPSettings(BaseModel):
    host: str = Field("0.0.0.0")
    port: int = Field(8000)
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


class OpenTelemetrySettings(BaseModel):
    host: str = Field("")
    port: int = Field(4317)
    enabled: bool = Field(False)
    excluded_urls: str = Field("metrics,health,info")


class BugsnagSettings(BaseModel):
    api_key: str = Field("")
    release_stage: str = Field("local")

    @field_validator("release_stage")
    @classmethod
    def _validate_bugsnag_release_stage(cls, v):
        if v not in ["development", "production", "local"]:
            raise ValueError(f'invalid bugsnag release stage "{v}"')
        return v


class AssistantSettings(BaseModel):
    """Upstream assistant service configuration.

    Attributes:
        api_key: Bearer token for the assistant service
        assistant_id: Identifier of the assistant that processes every run
        base_url: Base URL of the assistant REST API
        beta_header: Value sent in the OpenAI-Beta header on every call
        timeout_seconds: HTTP timeout for non-streaming calls
        stream_read_timeout_seconds: Read timeout between chunks of a streamed run
        poll_interval_seconds: Fixed delay between run status checks in poll mode
        max_poll_time_seconds: Upper bound on a single polled run
        messages_page_limit: Page size used when listing thread messages
    """

    api_key: str | None = None
    assistant_id: str | None = None
    base_url: str = Field("https://api.openai.com/v1")
    beta_header: str = Field("assistants=v2")
    timeout_seconds: float = Field(60.0, gt=0)
    stream_read_timeout_seconds: float = Field(300.0, gt=0)
    poll_interval_seconds: float = Field(1.0, gt=0)
    max_poll_time_seconds: float = Field(600.0, gt=0)
    messages_page_limit: int = Field(100, ge=1, le=100)

    @property
    def missing_fields(self) -> list[str]:
        """Names of required fields that are not set."""
        missing = []
        if not self.api_key:
            missing.append("api_key")
        if not self.assistant_id:
            missing.append("assistant_id")
        return missing


class SearchSettings(BaseModel):
    """Public web search API configuration."""

    base_url: str = Field("https://api.duckduckgo.com/")
    fallback_url: str = Field("https://duckduckgo.com/")
    app_name: str = Field("assistant-relay")
    timeout_seconds: float = Field(10.0, gt=0)
    max_attempts: int = Field(2, ge=1)


class StreamSettings(BaseModel):
    """Client-facing stream behaviour.

    Attributes:
        char_delay_seconds: Pause after each emitted character; 0 disables pacing
        cancel_run_on_disconnect: Cancel the upstream run when the client goes away
    """

    char_delay_seconds: float = Field(0.01, ge=0)
    cancel_run_on_disconnect: bool = Field(False)


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_http: AppHTTPSettings = AppHTTPSettings()
    opentelemetry: OpenTelemetrySettings = OpenTelemetrySettings()
    bugsnag: BugsnagSettings = BugsnagSettings()

    # Upstream assistant service
    assistant: AssistantSettings = AssistantSettings()

    # External tool backends
    search: SearchSettings = SearchSettings()

    # Client stream pacing and disconnect policy
    stream: StreamSettings = StreamSettings()
