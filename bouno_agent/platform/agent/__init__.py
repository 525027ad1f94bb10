"""Agent infrastructure module.

This module provides the core pieces of the agent loop:
- Message, tool call and result types
- Streaming invocation parser
- Serial tool execution queue
- Session, step runner and workflow engine
- Collaborator protocols, configuration and tracing
- LiteLLM model client
"""

from bouno_agent.platform.agent.catalog import (
    StaticToolCatalog,
    ToolCategory,
    ToolDefinition,
    ToolParameter,
    resolve_tool_catalog,
)
from bouno_agent.platform.agent.config import AgentConfig, LlmConfig, RetryConfig, SettleDelayConfig
from bouno_agent.platform.agent.exceptions import (
    AgentError,
    ModelProviderError,
    ModelRateLimitError,
    RunCancelledError,
    ToolRelayError,
)
from bouno_agent.platform.agent.llm_client import LiteLLMModelClient
from bouno_agent.platform.agent.messages import (
    AgentResult,
    FilePart,
    FinishReason,
    ImagePart,
    Message,
    StepResult,
    StreamEvent,
    StreamEventType,
    TextPart,
    ToolCallInfo,
    ToolCallStatus,
)
from bouno_agent.platform.agent.protocol import (
    AgentCallbacks,
    ModelChunk,
    ModelChunkKind,
    ModelClient,
    ModelRequest,
    ToolCatalogProvider,
    ToolExecutor,
)
from bouno_agent.platform.agent.session import AgentSession, WorkflowOptions, create_session
from bouno_agent.platform.agent.step import StepRunner
from bouno_agent.platform.agent.stream_parser import InvokeStreamParser
from bouno_agent.platform.agent.tool_queue import ToolQueue
from bouno_agent.platform.agent.tracing import NoopTracer, OpenTelemetryTracer, SpanKind, Tracer
from bouno_agent.platform.agent.workflow import WorkflowEngine, run_workflow

__all__ = [
    "AgentCallbacks",
    "AgentConfig",
    "AgentError",
    "AgentResult",
    "AgentSession",
    "FilePart",
    "FinishReason",
    "ImagePart",
    "InvokeStreamParser",
    "LiteLLMModelClient",
    "LlmConfig",
    "Message",
    "ModelChunk",
    "ModelChunkKind",
    "ModelClient",
    "ModelProviderError",
    "ModelRateLimitError",
    "ModelRequest",
    "NoopTracer",
    "OpenTelemetryTracer",
    "RetryConfig",
    "RunCancelledError",
    "SettleDelayConfig",
    "SpanKind",
    "StaticToolCatalog",
    "StepResult",
    "StepRunner",
    "StreamEvent",
    "StreamEventType",
    "TextPart",
    "ToolCallInfo",
    "ToolCallStatus",
    "ToolCatalogProvider",
    "ToolCategory",
    "ToolDefinition",
    "ToolExecutor",
    "ToolParameter",
    "ToolQueue",
    "ToolRelayError",
    "Tracer",
    "WorkflowEngine",
    "WorkflowOptions",
    "create_session",
    "resolve_tool_catalog",
    "run_workflow",
]
