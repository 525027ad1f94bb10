"""Streaming model client implementation using LiteLLM."""

import base64
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from typing import Any

import litellm

from bouno_agent.platform.agent.config import LlmConfig
from bouno_agent.platform.agent.exceptions import ModelRateLimitError
from bouno_agent.platform.agent.messages import FilePart, ImagePart, Message, Role, TextPart, message_text
from bouno_agent.platform.agent.protocol import ModelChunk, ModelChunkKind, ModelRequest

logger = logging.getLogger(__name__)


def _as_url(data: str | bytes, media_type: str | None) -> str:
    if isinstance(data, str):
        return data
    return f"data:{media_type or 'application/octet-stream'};base64,{base64.b64encode(data).decode()}"


def _convert_part(part: TextPart | ImagePart | FilePart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ImagePart):
        return {"type": "image_url", "image_url": {"url": _as_url(part.image, part.media_type)}}
    file: dict[str, Any] = {"file_data": _as_url(part.data, part.media_type)}
    if part.filename:
        file["filename"] = part.filename
    return {"type": "file", "file": file}


def to_litellm_messages(system_prompt: str, messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Convert a conversation to LiteLLM (OpenAI-style) chat messages.

    The system prompt comes first. Assistant turns are sent as plain text;
    user turns keep their image and file parts.
    """
    converted: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for message in messages:
        if message.role == Role.ASSISTANT or isinstance(message.content, str):
            converted.append({"role": message.role.value, "content": message_text(message)})
        else:
            converted.append({"role": message.role.value, "content": [_convert_part(p) for p in message.content]})
    return converted


class LiteLLMModelClient:
    """Model client that streams completions through LiteLLM.

    Maps `delta.content` to text chunks, `delta.reasoning_content` to
    reasoning chunks and a choice `finish_reason` to a final chunk. Provider
    options from the request are passed through as completion kwargs.
    """

    def __init__(
        self,
        config: LlmConfig,
        completion: Callable[..., Awaitable[Any]] | None = None,
    ):
        """Initialize the client.

        Args:
            config: Model, provider and credentials
            completion: Replacement for `litellm.acompletion`
        """
        self._config = config
        self._completion = completion or litellm.acompletion

    @property
    def provider(self) -> str:
        return self._config.provider

    @property
    def model_name(self) -> str:
        return self._config.model

    async def stream(self, request: ModelRequest) -> AsyncGenerator[ModelChunk, None]:
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": to_litellm_messages(request.system_prompt, request.messages),
            "stream": True,
            "api_key": self._config.api_key,
            "api_base": self._config.base_url,
        }
        if not request.provider_options:
            # extended reasoning requires the provider default temperature
            kwargs["temperature"] = self._config.temperature
        kwargs.update(request.provider_options)

        logger.debug("Opening stream for model %s", self._config.model)
        try:
            response = await self._completion(**kwargs)
            async for chunk in response:
                if request.cancellation is not None and request.cancellation.is_set():
                    break
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta
                reasoning = getattr(delta, "reasoning_content", None)
                if reasoning:
                    yield ModelChunk(kind=ModelChunkKind.REASONING, text=reasoning)
                content = getattr(delta, "content", None)
                if content:
                    yield ModelChunk(kind=ModelChunkKind.TEXT, text=content)
                if choice.finish_reason:
                    yield ModelChunk(kind=ModelChunkKind.FINISH, finish_reason=choice.finish_reason)
        except litellm.RateLimitError as e:
            raise ModelRateLimitError(str(e)) from e
