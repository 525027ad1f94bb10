"""Conversation messages produced after a step with tool calls.

After tools run, the workflow appends two messages: the assistant turn as
the model would have written it (text followed by its invocations) and a
user turn carrying the tool results. Inline images returned by tools are
hoisted out of the textual results into image content parts.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any

from bouno_agent.platform.agent.messages import (
    ContentPart,
    ImagePart,
    MessageContent,
    TextPart,
    ToolCallInfo,
    ToolCallStatus,
)

IMAGE_RESULT_KEY = "dataUrl"
_IMAGE_PREFIX = "data:image/"


def _format_param(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def build_assistant_response(text: str, tool_calls: Sequence[ToolCallInfo]) -> str:
    """Reconstruct the assistant turn from visible text and executed calls.

    Returns:
        The text, a separating newline when needed, then one invocation
        block per call, with trailing whitespace removed
    """
    response = text
    if response and not response.endswith("\n"):
        response += "\n"
    for call in tool_calls:
        response += f'<invoke name="{call.name}">\n'
        for key, value in call.input.items():
            response += f'<parameter name="{key}">{_format_param(value)}</parameter>\n'
        response += "</invoke>\n"
    return response.rstrip()


def _media_type(data_url: str) -> str:
    header = data_url[len("data:") :].split(",", 1)[0]
    return header.split(";", 1)[0] or "image/png"


def tool_call_output(call: ToolCallInfo) -> Any:
    """Output reported to the model.

    Failed calls report the executor's error mapping as returned. A failure
    recorded without one is reported as `{"error": message}`.
    """
    if call.status == ToolCallStatus.ERROR and not isinstance(call.result, Mapping):
        return {"error": call.error}
    return call.result


def extract_images(tool_calls: Sequence[ToolCallInfo]) -> tuple[list[tuple[str, Any]], list[ImagePart]]:
    """Split inline images out of tool results.

    Returns:
        (name, output) pairs with image payloads removed, and the images in
        result order. Recorded tool call results are left untouched.
    """
    outputs: list[tuple[str, Any]] = []
    images: list[ImagePart] = []
    for call in tool_calls:
        output = tool_call_output(call)
        data_url = output.get(IMAGE_RESULT_KEY) if isinstance(output, dict) else None
        if isinstance(data_url, str) and data_url.startswith(_IMAGE_PREFIX):
            images.append(ImagePart(image=data_url, media_type=_media_type(data_url)))
            output = {key: value for key, value in output.items() if key != IMAGE_RESULT_KEY}
        outputs.append((call.name, output))
    return outputs, images


def format_tool_results(outputs: Sequence[tuple[str, Any]]) -> str:
    """Render tool outputs as a `<tool_results>` block.

    String outputs are inserted verbatim, anything else as indented JSON.
    """
    blocks = []
    for name, output in outputs:
        rendered = output if isinstance(output, str) else json.dumps(output, indent=2, default=str)
        blocks.append(f"<result>\n<name>{name}</name>\n<output>{rendered}</output>\n</result>")
    return "<tool_results>\n" + "\n".join(blocks) + "\n</tool_results>"


def build_tool_results_message(tool_calls: Sequence[ToolCallInfo]) -> MessageContent:
    """Build the user turn content reporting tool results.

    Returns:
        Plain text when no tool returned an image, otherwise the text part
        followed by one image part per image
    """
    outputs, images = extract_images(tool_calls)
    text = format_tool_results(outputs)
    if not images:
        return text
    parts: list[ContentPart] = [TextPart(text=text)]
    parts.extend(images)
    return parts
