"""Incremental parser for tool invocations embedded in streamed model text.

The model writes tool calls inline as

    <invoke name="navigate">
    <parameter name="url">https://example.com</parameter>
    </invoke>

Text arrives in arbitrary fragments, so the parser buffers only as much as
needed to decide whether a `<` starts a recognized tag. Everything else is
emitted immediately as text. The sequence of emitted events does not depend
on how the input was split into chunks.
"""

import json
import re
import xml.etree.ElementTree as ET
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Literal, TypeAlias

import structlog

from bouno_agent.platform.agent.messages import ParsedToolCall, StreamEvent, StreamEventType

logger = structlog.get_logger(__name__)

INVOKE_OPEN = "<invoke"
INVOKE_CLOSE = "</invoke>"

# Legacy wrapper tags some models still emit around invocations
WRAPPER_TAGS = ("<tool_calls>", "</tool_calls>", "<tools_call>", "</tools_call>")

_PARTIAL_TAGS = (INVOKE_OPEN, *WRAPPER_TAGS)
_NUMBER_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

StreamListener: TypeAlias = Callable[[StreamEvent], None]
ListenerKey: TypeAlias = StreamEventType | Literal["*"]


def coerce_value(value: str) -> Any:
    """Convert a trimmed parameter string into a typed value.

    Strings starting with `[` or `{` are decoded as JSON when valid, `true` and
    `false` become booleans and numeric literals become numbers. Anything else
    is returned unchanged.
    """
    if value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except ValueError:
            return value
    if value == "true":
        return True
    if value == "false":
        return False
    if _NUMBER_RE.fullmatch(value):
        if any(c in value for c in ".eE"):
            return float(value)
        return int(value)
    return value


def _find_invoke_start(buffer: str, start: int = 0) -> int:
    """Index of the next `<invoke` followed by `>` or whitespace, or -1."""
    index = buffer.find(INVOKE_OPEN, start)
    while index != -1:
        end = index + len(INVOKE_OPEN)
        if end < len(buffer) and (buffer[end] == ">" or buffer[end].isspace()):
            return index
        index = buffer.find(INVOKE_OPEN, index + 1)
    return -1


def _find_wrapper(buffer: str) -> tuple[int, str | None]:
    earliest, tag = -1, None
    for candidate in WRAPPER_TAGS:
        index = buffer.find(candidate)
        if index != -1 and (earliest == -1 or index < earliest):
            earliest, tag = index, candidate
    return earliest, tag


def _partial_suffix_index(buffer: str, tag: str) -> int:
    """Start of the longest buffer suffix that is a proper prefix of `tag`."""
    for i in range(max(0, len(buffer) - len(tag)), len(buffer)):
        if tag.startswith(buffer[i:]):
            return i
    return -1


def _earliest_partial_index(buffer: str) -> int:
    indices = [i for i in (_partial_suffix_index(buffer, tag) for tag in _PARTIAL_TAGS) if i != -1]
    return min(indices) if indices else -1


class InvokeStreamParser:
    """Turns streamed text into text and tool call events.

    A parser instance covers exactly one model response. Call ids are
    `{id_prefix}_{n}` with `n` counting from 1 per instance.
    """

    def __init__(self, id_prefix: str = "tc"):
        self._id_prefix = id_prefix
        self._buffer = ""
        self._text = ""
        self._call_count = 0
        self._listeners: dict[ListenerKey, list[StreamListener]] = defaultdict(list)

    @property
    def text(self) -> str:
        """All text emitted so far, with invocation markup removed."""
        return self._text

    def on(self, event_type: ListenerKey, listener: StreamListener) -> Callable[[], None]:
        """Register a listener for one event type, or "*" for all.

        Returns:
            A function that removes the listener
        """
        self._listeners[event_type].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[event_type]:
                self._listeners[event_type].remove(listener)

        return unsubscribe

    def emit(self, event: StreamEvent) -> None:
        """Deliver an event to its type listeners, then to wildcard listeners."""
        for listener in list(self._listeners[event.type]):
            listener(event)
        for listener in list(self._listeners["*"]):
            listener(event)

    def process_chunk(self, chunk: str) -> None:
        """Consume the next fragment of model text."""
        self._buffer += chunk

        while self._buffer:
            invoke_index = _find_invoke_start(self._buffer)
            wrapper_index, wrapper = _find_wrapper(self._buffer)

            if wrapper is not None and (invoke_index == -1 or wrapper_index < invoke_index):
                self._emit_text(self._buffer[:wrapper_index])
                self._buffer = self._buffer[wrapper_index + len(wrapper) :]
                continue

            if invoke_index != -1:
                self._emit_text(self._buffer[:invoke_index])
                self._buffer = self._buffer[invoke_index:]
                close_index = self._buffer.find(INVOKE_CLOSE)
                if close_index == -1:
                    # wait for the closing tag
                    return
                end = close_index + len(INVOKE_CLOSE)
                self._emit_invoke(self._buffer[:end])
                self._buffer = self._buffer[end:]
                continue

            partial_index = _earliest_partial_index(self._buffer)
            if partial_index != -1:
                self._emit_text(self._buffer[:partial_index])
                self._buffer = self._buffer[partial_index:]
                return

            self._emit_text(self._buffer)
            self._buffer = ""

    def flush(self) -> None:
        """End the stream.

        Any retained buffer, including an unterminated invocation, is emitted
        as plain text, followed by TEXT_DONE carrying the full text when any
        text was produced.
        """
        if self._buffer:
            self._emit_text(self._buffer)
            self._buffer = ""
        if self._text:
            self.emit(StreamEvent(StreamEventType.TEXT_DONE, self._text))

    def reset(self) -> None:
        """Clear buffered and accumulated text. Listeners are kept."""
        self._buffer = ""
        self._text = ""

    def _emit_text(self, text: str) -> None:
        if not text:
            return
        self._text += text
        self.emit(StreamEvent(StreamEventType.TEXT_DELTA, text))

    def _emit_invoke(self, raw: str) -> None:
        try:
            root = ET.fromstring(f"<r>{raw}</r>")
        except ET.ParseError as e:
            logger.warning("malformed_tool_invocation", error=str(e), raw=raw[:200])
            return

        invoke = root.find("invoke")
        name = invoke.get("name") if invoke is not None else None
        if not name:
            logger.warning("tool_invocation_without_name", raw=raw[:200])
            return

        params: dict[str, Any] = {}
        for parameter in invoke.iter("parameter"):
            param_name = parameter.get("name")
            if param_name:
                params[param_name] = coerce_value("".join(parameter.itertext()).strip())

        self._call_count += 1
        call = ParsedToolCall(id=f"{self._id_prefix}_{self._call_count}", name=name, params=params)
        self.emit(StreamEvent(StreamEventType.TOOL_CALL_START, call))
        self.emit(StreamEvent(StreamEventType.TOOL_CALL_DONE, call))
