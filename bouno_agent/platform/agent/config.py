"""Configuration dataclasses for agent components.

This module provides immutable configuration objects for the LLM client,
retry policy, post-action settle delays and workflow behavior, plus the
reasoning budget table consulted when reasoning is enabled.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_MAX_STEPS = 15


@dataclass(frozen=True)
class LlmConfig:
    """Configuration for language model clients.

    Attributes:
        model: Model identifier passed to LiteLLM (e.g., "anthropic/claude-sonnet-4-5")
        provider: Provider id used for reasoning budget lookup (e.g., "anthropic")
        api_key: API key for the LLM provider
        base_url: Base URL for the API (e.g., LiteLLM proxy URL)
        temperature: Sampling temperature (0.0 to 1.0)
        model_family: Explicit model family; derived from `model` when None
        reasoning_enabled: Request extended reasoning from the provider
    """

    model: str
    provider: str
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.7
    model_family: str | None = None
    reasoning_enabled: bool = False

    @property
    def family(self) -> str:
        return self.model_family or model_family_of(self.model)


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy for rate-limited model calls.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay_seconds: Delay before the first retry, doubled for each further retry
    """

    max_attempts: int = 3
    base_delay_seconds: float = 2.0


@dataclass(frozen=True)
class SettleDelayConfig:
    """Pause after tools that change page state.

    Attributes:
        delay_seconds: Pause applied after a side-effecting tool completes
        side_effect_tools: Tool names that may change observable state
        read_only_actions: Per tool, `action` values that never need the pause
    """

    delay_seconds: float = 0.5
    side_effect_tools: frozenset[str] = frozenset()
    read_only_actions: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def requires_settle(self, tool_name: str, params: Mapping[str, Any]) -> bool:
        if self.delay_seconds <= 0 or tool_name not in self.side_effect_tools:
            return False
        return params.get("action") not in self.read_only_actions.get(tool_name, frozenset())


@dataclass(frozen=True)
class AgentConfig:
    """Configuration for agent behavior.

    Attributes:
        slug: Identifier used in metric labels and span names
        max_steps: Maximum number of model steps per run
    """

    slug: str
    max_steps: int = DEFAULT_MAX_STEPS


# Provider options keyed by (provider, model family), in LiteLLM completion kwargs
REASONING_BUDGETS: dict[tuple[str, str], dict[str, Any]] = {
    ("anthropic", "claude"): {"thinking": {"type": "enabled", "budget_tokens": 16000}},
    ("openrouter", "claude"): {"thinking": {"type": "enabled", "budget_tokens": 16000}},
    ("google", "gemini"): {"thinking": {"type": "enabled", "budget_tokens": 8000}},
    ("gemini", "gemini"): {"thinking": {"type": "enabled", "budget_tokens": 8000}},
}


def model_family_of(model: str) -> str:
    """Derive a model family from a model id.

    The family is the first dash-separated token of the last path segment,
    e.g. "anthropic/claude-sonnet-4-5" -> "claude".
    """
    return model.rsplit("/", 1)[-1].split("-", 1)[0].lower()


def reasoning_provider_options(provider: str, model_family: str, enabled: bool) -> dict[str, Any]:
    """Look up provider options that enable reasoning.

    Returns:
        A fresh options dict, empty when reasoning is disabled or the
        (provider, family) pair has no budget entry
    """
    if not enabled:
        return {}
    options = REASONING_BUDGETS.get((provider.lower(), model_family.lower()))
    return {key: dict(value) for key, value in options.items()} if options else {}
