"""Framework-agnostic message, tool call and result types.

These types are shared by the parser, queue, step runner and workflow engine
and define the common vocabulary for an agent run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal, Self, TypeAlias


class Role(StrEnum):
    """Conversation role of a message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class TextPart:
    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ImagePart:
    """Inline image content.

    Attributes:
        image: Data URL, remote URL or raw bytes
        media_type: MIME type when known (e.g. "image/png")
    """

    image: str | bytes
    media_type: str | None = None
    type: Literal["image"] = "image"


@dataclass(frozen=True)
class FilePart:
    """Attached file content.

    Attributes:
        data: Data URL or raw bytes
        media_type: MIME type of the file
        filename: Original file name, if any
    """

    data: str | bytes
    media_type: str
    filename: str | None = None
    type: Literal["file"] = "file"


ContentPart: TypeAlias = TextPart | ImagePart | FilePart
MessageContent: TypeAlias = str | list[ContentPart]


@dataclass(frozen=True)
class Message:
    """A single conversation message.

    Attributes:
        role: Who authored the message
        content: Plain text or an ordered list of content parts
    """

    role: Role
    content: MessageContent

    @classmethod
    def user(cls, content: MessageContent) -> Self:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: MessageContent) -> Self:
        return cls(role=Role.ASSISTANT, content=content)


def message_text(message: Message) -> str:
    """Return the concatenated text of a message, ignoring non-text parts."""
    if isinstance(message.content, str):
        return message.content
    return "".join(part.text for part in message.content if isinstance(part, TextPart))


def message_attachments(message: Message) -> list[ImagePart | FilePart]:
    """Return the image and file parts of a message in order."""
    if isinstance(message.content, str):
        return []
    return [part for part in message.content if not isinstance(part, TextPart)]


class ToolCallStatus(StrEnum):
    """Lifecycle state of a tool call."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class ToolCallInfo:
    """A single tool invocation and its outcome.

    Status only moves forward: pending -> running -> completed | error.
    `started_at` is set on entering running, `completed_at` on reaching a
    terminal state.

    Attributes:
        id: Identifier unique within a run
        name: Tool name as requested by the model
        input: Coerced parameter mapping
        status: Current lifecycle state
        result: Executor result when completed
        error: Error text when the executor reported a failure
        started_at: When execution began
        completed_at: When execution finished
    """

    id: str
    name: str
    input: dict[str, Any]
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: Any = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ToolCallStatus.COMPLETED, ToolCallStatus.ERROR)


@dataclass(frozen=True)
class ToolExecutionResult:
    """Outcome of one queued tool execution.

    Attributes:
        tool_call: The call record, already in a terminal state
        result: Raw executor result (an `{"error": ...}` mapping on failure)
        has_error: Whether the executor reported an error
    """

    tool_call: ToolCallInfo
    result: Any
    has_error: bool


@dataclass(frozen=True)
class StepResult:
    """Result of a single model step.

    Attributes:
        text: Assistant text with invocation markup removed
        tool_calls: Tool calls executed during the step, in parse order
        reasoning: Accumulated reasoning text, empty when none was produced
    """

    text: str
    tool_calls: list[ToolCallInfo] = field(default_factory=list)
    reasoning: str = ""


class FinishReason(StrEnum):
    """Why a workflow run ended."""

    STOP = "stop"
    ABORTED = "aborted"
    MAX_STEPS = "max-steps"
    ERROR = "error"


@dataclass(frozen=True)
class AgentResult:
    """Final outcome of a workflow run.

    Attributes:
        text: Accumulated assistant text, trimmed
        tool_calls: Every executed tool call across all steps
        steps: Number of steps executed
        finish_reason: Why the run ended
        error: Error description for the "error" finish reason
    """

    text: str
    tool_calls: list[ToolCallInfo]
    steps: int
    finish_reason: FinishReason
    error: str | None = None


class StreamEventType(StrEnum):
    """Kinds of events emitted while a model response streams."""

    TEXT_DELTA = "text_delta"
    TEXT_DONE = "text_done"
    TOOL_CALL_START = "tool_call_start"
    TOOL_CALL_DONE = "tool_call_done"
    STREAM_START = "stream_start"
    STREAM_DONE = "stream_done"
    STREAM_ERROR = "stream_error"


@dataclass(frozen=True)
class ParsedToolCall:
    """A tool invocation recognized in the model's text stream.

    Attributes:
        id: Parser-assigned identifier
        name: Tool name from the invocation's name attribute
        params: Coerced parameter values keyed by parameter name
    """

    id: str
    name: str
    params: dict[str, Any]


@dataclass(frozen=True)
class StreamEvent:
    """Streaming parse event.

    Attributes:
        type: Kind of event
        data: Text for text events, a ParsedToolCall for tool call events,
            the exception for stream errors, None otherwise
    """

    type: StreamEventType
    data: Any = None
