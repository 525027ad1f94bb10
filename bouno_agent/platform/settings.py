"""Application settings and configuration.

This module provides Pydantic settings classes for application configuration,
loaded from environment variables with support for nested configuration
(e.g. WORKFLOW__MAX_STEPS=20).
"""

import logging

import pydantic_settings
from pydantic import BaseModel, Field, field_validator

from bouno_agent.platform.agent.config import LlmConfig, RetryConfig


class AppSettings(BaseModel):
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
    enabled: bool = Field(False)


class LitellmSettings(BaseModel):
    """Model selection and credentials.

    Attributes:
        model: LiteLLM model identifier
        provider: Provider id used for reasoning budget lookup
        model_family: Overrides the family derived from `model`
        api_key: API key for the provider or proxy
        api_base: Base URL of a LiteLLM proxy, if any
        temperature: Sampling temperature
        reasoning_enabled: Ask the provider for extended reasoning
    """

    model: str = Field("anthropic/claude-sonnet-4-5")
    provider: str = Field("anthropic")
    model_family: str | None = None
    api_key: str | None = None
    api_base: str | None = None
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    reasoning_enabled: bool = Field(False)

    def to_llm_config(self) -> LlmConfig:
        return LlmConfig(
            model=self.model,
            provider=self.provider,
            api_key=self.api_key,
            base_url=self.api_base,
            temperature=self.temperature,
            model_family=self.model_family,
            reasoning_enabled=self.reasoning_enabled,
        )


class WorkflowSettings(BaseModel):
    max_steps: int = Field(15, ge=1)
    post_action_delay: float = Field(0.5, ge=0.0, description="Settle pause after page-changing tools (seconds)")


class RetrySettings(BaseModel):
    max_attempts: int = Field(3, ge=1)
    base_delay: float = Field(2.0, gt=0.0)

    def to_retry_config(self) -> RetryConfig:
        return RetryConfig(max_attempts=self.max_attempts, base_delay_seconds=self.base_delay)


class ToolRelaySettings(BaseModel):
    """Tool relay endpoint.

    Attributes:
        url: Endpoint receiving EXECUTE_TOOL messages
        timeout: Per-call timeout in seconds
    """

    url: str = Field("http://127.0.0.1:8765/tools")
    timeout: float = Field(60.0, gt=0.0)


class Settings(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_nested_delimiter="__")

    app: AppSettings = AppSettings()
    opentelemetry: OpenTelemetrySettings = OpenTelemetrySettings()

    # LiteLLM configuration
    litellm: LitellmSettings = LitellmSettings()

    # Agent loop configuration
    workflow: WorkflowSettings = WorkflowSettings()
    retry: RetrySettings = RetrySettings()

    # Tool execution
    tool_relay: ToolRelaySettings = ToolRelaySettings()
