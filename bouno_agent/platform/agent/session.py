"""Per-run conversation state.

A session owns the message list, the rendered system prompt and resolved
tool catalog, the run configuration and the cancellation signal. It is
created once per workflow run and only mutated by the workflow engine.
"""

import asyncio
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Self

from bouno_agent.platform.agent.catalog import ToolDefinition, default_system_prompt, resolve_tool_catalog
from bouno_agent.platform.agent.config import (
    DEFAULT_MAX_STEPS,
    LlmConfig,
    RetryConfig,
    SettleDelayConfig,
    model_family_of,
    reasoning_provider_options,
)
from bouno_agent.platform.agent.messages import Message, MessageContent
from bouno_agent.platform.agent.protocol import (
    AgentCallbacks,
    ModelClient,
    PromptBuilder,
    ToolCatalogProvider,
    ToolExecutor,
)
from bouno_agent.platform.agent.tracing import NoopTracer, Tracer


@dataclass(frozen=True)
class SessionConfig:
    """Run configuration fixed at session creation.

    Attributes:
        max_steps: Maximum number of model steps
        execution_context: Defaults merged into every tool call (e.g. tab id)
        tool_executor: Executes tool calls
        settle: Post-action pause policy
        retry: Rate-limit retry policy
        provider_options: Provider-specific options sent with every model call
    """

    max_steps: int
    execution_context: Mapping[str, Any]
    tool_executor: ToolExecutor
    settle: SettleDelayConfig = field(default_factory=SettleDelayConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    provider_options: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class WorkflowOptions:
    """Inputs for one workflow run.

    Attributes:
        model: Streaming model client
        messages: Initial conversation, copied into the session
        tool_executor: Executes tool calls
        catalog: Source of tool definitions
        execution_context: Defaults merged into every tool call
        max_steps: Maximum number of model steps
        settle: Post-action pause policy
        retry: Rate-limit retry policy
        cancellation: Signal to stop the run; a fresh one is created when None
        callbacks: Observer hooks
        tracer: Span hooks
        reasoning_enabled: Ask the provider for extended reasoning
        model_family: Overrides the family derived from the model name
        skill_context: Active skill instructions, enables skill tools
        system_prompt_builder: Renders the system prompt from the offered tools
        agent: Agent slug for metric labels and span names
    """

    model: ModelClient
    messages: Sequence[Message]
    tool_executor: ToolExecutor
    catalog: ToolCatalogProvider
    execution_context: Mapping[str, Any] = field(default_factory=dict)
    max_steps: int = DEFAULT_MAX_STEPS
    settle: SettleDelayConfig = field(default_factory=SettleDelayConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    cancellation: asyncio.Event | None = None
    callbacks: AgentCallbacks | None = None
    tracer: Tracer | None = None
    reasoning_enabled: bool = False
    model_family: str | None = None
    skill_context: str | None = None
    system_prompt_builder: PromptBuilder = default_system_prompt
    agent: str = "agent"

    @classmethod
    def from_llm_config(cls, llm_config: LlmConfig, **kwargs: Any) -> Self:
        """Build options taking reasoning settings from an LlmConfig."""
        kwargs.setdefault("reasoning_enabled", llm_config.reasoning_enabled)
        kwargs.setdefault("model_family", llm_config.family)
        return cls(**kwargs)


@dataclass
class AgentSession:
    """Mutable state of one run.

    Attributes:
        id: Unique session identifier
        model: Streaming model client
        messages: Conversation, grown by the workflow engine after each step
        system_prompt: Rendered once at creation
        tool_catalog: Tools offered to the model
        config: Run configuration
        cancellation: Cancellation signal shared with the caller
        callbacks: Observer hooks
        tracer: Span hooks
        agent: Agent slug for metric labels and span names
        step: Number of completed steps
    """

    id: str
    model: ModelClient
    messages: list[Message]
    system_prompt: str
    tool_catalog: list[ToolDefinition]
    config: SessionConfig
    cancellation: asyncio.Event
    callbacks: AgentCallbacks = field(default_factory=AgentCallbacks)
    tracer: Tracer = field(default_factory=NoopTracer)
    agent: str = "agent"
    step: int = 0

    def append_assistant_message(self, content: MessageContent) -> None:
        self.messages.append(Message.assistant(content))

    def append_user_message(self, content: MessageContent) -> None:
        self.messages.append(Message.user(content))

    def is_aborted(self) -> bool:
        return self.cancellation.is_set()

    def abort(self) -> None:
        """Signal cancellation to every component of the run."""
        self.cancellation.set()


def create_session(options: WorkflowOptions) -> AgentSession:
    """Create the session for a new run.

    Resolves the tool catalog, renders the system prompt and looks up
    reasoning options for the model's provider and family.

    Args:
        options: Run inputs

    Returns:
        A session with a fresh id and a copy of the initial messages

    Raises:
        ValueError: If max_steps is not positive
    """
    if options.max_steps < 1:
        raise ValueError(f"max_steps must be positive, got {options.max_steps}")

    tools = resolve_tool_catalog(options.catalog.list_tools(), skill_context=options.skill_context)
    family = options.model_family or model_family_of(options.model.model_name)
    config = SessionConfig(
        max_steps=options.max_steps,
        execution_context=dict(options.execution_context),
        tool_executor=options.tool_executor,
        settle=options.settle,
        retry=options.retry,
        provider_options=reasoning_provider_options(
            options.model.provider, family, options.reasoning_enabled
        ),
    )
    return AgentSession(
        id=f"session_{uuid.uuid4().hex}",
        model=options.model,
        messages=list(options.messages),
        system_prompt=options.system_prompt_builder(tools, options.skill_context),
        tool_catalog=tools,
        config=config,
        cancellation=options.cancellation or asyncio.Event(),
        callbacks=options.callbacks or AgentCallbacks(),
        tracer=options.tracer or NoopTracer(),
        agent=options.agent,
    )
