"""Shared test fixtures.

This module provides fixtures for running the step runner, workflow engine
and agents against scripted collaborators:
- A scripted model client replaying canned streams
- A recording tool executor
- A no-op sleep so retry backoff and settle pauses cost nothing
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from typing import Any, TypeAlias
from unittest.mock import AsyncMock

import pytest

from bouno_agent.platform.agent.catalog import StaticToolCatalog, ToolCategory, ToolDefinition, ToolParameter
from bouno_agent.platform.agent.config import RetryConfig, SettleDelayConfig
from bouno_agent.platform.agent.messages import Message
from bouno_agent.platform.agent.protocol import ModelChunk, ModelChunkKind, ModelRequest
from bouno_agent.platform.agent.session import WorkflowOptions

ScriptedResponse: TypeAlias = list[ModelChunk | Exception] | Exception


def text_chunks(*texts: str, finish_reason: str = "stop") -> list[ModelChunk | Exception]:
    """Build a stream of text chunks followed by a finish chunk."""
    chunks: list[ModelChunk | Exception] = [ModelChunk(kind=ModelChunkKind.TEXT, text=t) for t in texts]
    chunks.append(ModelChunk(kind=ModelChunkKind.FINISH, finish_reason=finish_reason))
    return chunks


def invoke(name: str, **params: Any) -> str:
    """Render a tool invocation the way a model writes it."""
    body = "".join(f'<parameter name="{key}">{value}</parameter>\n' for key, value in params.items())
    return f'<invoke name="{name}">\n{body}</invoke>'


class ScriptedModelClient:
    """Model client replaying one canned response per stream call.

    A response is a list of chunks (an exception in the list is raised at
    that point of the stream) or an exception raised when the stream opens.
    Control returns to the event loop between chunks, as with a real network
    stream.
    """

    def __init__(
        self,
        responses: list[ScriptedResponse],
        provider: str = "anthropic",
        model_name: str = "anthropic/claude-sonnet-4-5",
    ):
        self.responses = list(responses)
        self.requests: list[ModelRequest] = []
        self.yielded = 0
        self._provider = provider
        self._model_name = model_name

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def model_name(self) -> str:
        return self._model_name

    async def stream(self, request: ModelRequest) -> AsyncGenerator[ModelChunk, None]:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        for chunk in response:
            await asyncio.sleep(0)
            if isinstance(chunk, Exception):
                raise chunk
            self.yielded += 1
            yield chunk


class RecordingExecutor:
    """Tool executor recording every call.

    Results are looked up by tool name; a callable result is called with the
    params. Unknown tools return {"success": True}.
    """

    def __init__(self, results: dict[str, Any] | None = None):
        self.results = results or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def __call__(self, name: str, params: dict[str, Any]) -> Any:
        self.calls.append((name, params))
        result = self.results.get(name, {"success": True})
        return result(params) if callable(result) else result


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Replacement for asyncio.sleep that returns immediately."""
    return AsyncMock()


@pytest.fixture
def recording_executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def test_catalog() -> StaticToolCatalog:
    """A small catalog with a page-changing and a read-only tool."""
    return StaticToolCatalog(
        definitions=[
            ToolDefinition(
                name="navigate",
                description="Navigate to a URL",
                parameters=(ToolParameter("url", "string", "Target URL", required=True),),
                category=ToolCategory.NAVIGATION,
            ),
            ToolDefinition(
                name="read_page",
                description="Read the page",
                category=ToolCategory.READING,
            ),
        ]
    )


@pytest.fixture
def workflow_options(
    recording_executor: RecordingExecutor, test_catalog: StaticToolCatalog
) -> Callable[..., WorkflowOptions]:
    """Factory for workflow options around a scripted model."""

    def factory(model: ScriptedModelClient, **overrides: Any) -> WorkflowOptions:
        options: dict[str, Any] = {
            "model": model,
            "messages": [Message.user("Open example.com")],
            "tool_executor": recording_executor,
            "catalog": test_catalog,
            "execution_context": {"tabId": 7},
            "max_steps": 5,
            "settle": SettleDelayConfig(delay_seconds=0.5, side_effect_tools=frozenset({"navigate"})),
            "retry": RetryConfig(max_attempts=3, base_delay_seconds=2.0),
            "agent": "test-agent",
        }
        options.update(overrides)
        return WorkflowOptions(**options)

    return factory


@pytest.fixture
def scripted_model() -> Callable[..., ScriptedModelClient]:
    """Factory for scripted model clients."""
    return ScriptedModelClient


@pytest.fixture
def chunks() -> Callable[..., list[ModelChunk | Exception]]:
    """Builds a text stream: `chunks("Hello ", "world")`."""
    return text_chunks


@pytest.fixture
def invoke_markup() -> Callable[..., str]:
    """Renders invocation markup: `invoke_markup("navigate", url="...")`."""
    return invoke
