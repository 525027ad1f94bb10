"""Protocols for the collaborators the agent engine depends on.

The engine never talks to a model provider, a browser or a tool registry
directly. It goes through the interfaces defined here so that adapters and
test doubles are interchangeable.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from bouno_agent.platform.agent.catalog import ToolDefinition
from bouno_agent.platform.agent.messages import Message, StepResult, ToolCallInfo


class ModelChunkKind(StrEnum):
    TEXT = "text"
    REASONING = "reasoning"
    FINISH = "finish"


@dataclass(frozen=True)
class ModelChunk:
    """One streamed fragment of model output.

    Attributes:
        kind: Visible text, reasoning text, or the end-of-response marker
        text: Fragment text (empty for FINISH)
        finish_reason: Provider finish reason, only on FINISH
    """

    kind: ModelChunkKind
    text: str = ""
    finish_reason: str | None = None


@dataclass(frozen=True)
class ModelRequest:
    """Everything needed to open one model stream.

    Attributes:
        system_prompt: Rendered system prompt
        messages: Conversation so far
        provider_options: Provider-specific options (e.g. a reasoning budget)
        cancellation: Signal the client may observe to stop early
    """

    system_prompt: str
    messages: Sequence[Message]
    provider_options: Mapping[str, Any] = field(default_factory=dict)
    cancellation: asyncio.Event | None = None


class ModelClient(Protocol):
    """Protocol for a streaming language model client."""

    @property
    def provider(self) -> str:
        """Provider identifier (e.g. "anthropic")."""
        ...

    @property
    def model_name(self) -> str:
        """Model identifier."""
        ...

    def stream(self, request: ModelRequest) -> AsyncGenerator[ModelChunk, None]:
        """Open a response stream.

        Args:
            request: Prompt, conversation and options for this call

        Returns:
            Async generator of chunks, ending after at most one FINISH chunk

        Raises:
            Exception: Provider failures, including rate limiting, surface
                while iterating
        """
        ...


class ToolExecutor(Protocol):
    """Executes a named tool.

    Failures are reported as a mapping with an "error" key rather than raised.
    """

    async def __call__(self, name: str, params: dict[str, Any]) -> Any: ...


class ToolCatalogProvider(Protocol):
    """Lists the tools that may be offered to the model."""

    def list_tools(self) -> list[ToolDefinition]: ...


class PromptBuilder(Protocol):
    """Renders a system prompt for the tools offered in a session."""

    def __call__(self, tools: Sequence[ToolDefinition], skill_context: str | None = None) -> str: ...


@dataclass(frozen=True)
class AgentCallbacks:
    """Optional observer hooks invoked as a run progresses.

    Hooks are called synchronously and their return values are ignored.

    Attributes:
        on_text_delta: Visible text fragment
        on_text_done: Full visible text of a step
        on_reasoning_delta: Reasoning fragment
        on_reasoning_done: Full reasoning text of a step
        on_tool_start: Tool call parsed and queued
        on_tool_done: Tool call reached a terminal state
        on_step_start: Step number about to run (1-based)
        on_step_complete: Step number and its result
        on_stream_start: Run started
        on_stream_done: Run finished, successfully or not
    """

    on_text_delta: Callable[[str], None] | None = None
    on_text_done: Callable[[str], None] | None = None
    on_reasoning_delta: Callable[[str], None] | None = None
    on_reasoning_done: Callable[[str], None] | None = None
    on_tool_start: Callable[[ToolCallInfo], None] | None = None
    on_tool_done: Callable[[ToolCallInfo], None] | None = None
    on_step_start: Callable[[int], None] | None = None
    on_step_complete: Callable[[int, StepResult], None] | None = None
    on_stream_start: Callable[[], None] | None = None
    on_stream_done: Callable[[], None] | None = None
