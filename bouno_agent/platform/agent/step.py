"""A single model step: stream a response, run its tools, report the result.

Text is fed through the stream parser as it arrives; every recognized tool
call is queued immediately, so tools execute while the model keeps
streaming. Rate-limited model calls are retried with exponential backoff.
Each attempt starts from a clean parser and queue.
"""

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import aclosing
from typing import Any, TypeAlias

import structlog
from openinference.semconv.trace import SpanAttributes
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from bouno_agent.platform.agent.exceptions import is_rate_limit_error
from bouno_agent.platform.agent.messages import (
    ParsedToolCall,
    StepResult,
    StreamEvent,
    StreamEventType,
    ToolCallInfo,
)
from bouno_agent.platform.agent.metrics import AgentMetricsLabels, record_model_retry
from bouno_agent.platform.agent.protocol import ModelChunkKind, ModelRequest
from bouno_agent.platform.agent.session import AgentSession
from bouno_agent.platform.agent.stream_parser import InvokeStreamParser
from bouno_agent.platform.agent.tool_queue import ToolQueue
from bouno_agent.platform.agent.tracing import SpanHandle, SpanKind

logger = structlog.get_logger(__name__)

EventListener: TypeAlias = Callable[[StreamEvent], None]


class StepRunner:
    """Runs model steps against a session.

    Args:
        session: Run state; read only, the workflow engine appends messages
        event_listener: Receives every stream event of every attempt
        sleep: Awaitable used for retry backoff and settle pauses
    """

    def __init__(
        self,
        session: AgentSession,
        *,
        event_listener: EventListener | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._session = session
        self._event_listener = event_listener
        self._sleep = sleep
        self._labels = AgentMetricsLabels(agent=session.agent)

    async def run(self, step_number: int, parent_span: SpanHandle | None = None) -> StepResult:
        """Execute one step.

        Args:
            step_number: 1-based step number, used for call ids and span names
            parent_span: Span the model and tool spans are attached to

        Returns:
            Visible text, executed tool calls and reasoning of the step

        Raises:
            Exception: The model error once retries are exhausted, or any
                error that is not a rate limit
        """
        retry_config = self._session.config.retry
        retrying = AsyncRetrying(
            stop=stop_after_attempt(retry_config.max_attempts),
            wait=wait_exponential(multiplier=retry_config.base_delay_seconds),
            retry=retry_if_exception(self._should_retry),
            before_sleep=self._before_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                result = await self._attempt(step_number, attempt.retry_state.attempt_number, parent_span)
        return result

    def _should_retry(self, exc: BaseException) -> bool:
        return is_rate_limit_error(exc) and not self._session.is_aborted()

    def _before_retry(self, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "model_rate_limited",
            attempt=retry_state.attempt_number,
            retry_in=delay,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )
        record_model_retry(self._labels, self._session.model.provider)

    async def _attempt(self, step_number: int, attempt_number: int, parent_span: SpanHandle | None) -> StepResult:
        session = self._session
        callbacks = session.callbacks
        parser = InvokeStreamParser(id_prefix=f"tc_{step_number}")
        queue = ToolQueue(
            session.config.tool_executor,
            execution_context=session.config.execution_context,
            settle=session.config.settle,
            cancellation=session.cancellation,
            callbacks=callbacks,
            tracer=session.tracer,
            parent_span=parent_span,
            agent=session.agent,
            sleep=self._sleep,
        )

        if self._event_listener is not None:
            parser.on("*", self._event_listener)
        if callbacks.on_text_delta:
            parser.on(StreamEventType.TEXT_DELTA, lambda event: callbacks.on_text_delta(event.data))

        def on_tool_call(event: StreamEvent) -> None:
            parsed: ParsedToolCall = event.data
            tool_call = ToolCallInfo(id=parsed.id, name=parsed.name, input=parsed.params)
            if queue.push(tool_call) and callbacks.on_tool_start:
                callbacks.on_tool_start(tool_call)

        parser.on(StreamEventType.TOOL_CALL_DONE, on_tool_call)

        llm_span = session.tracer.start_span(
            "llm",
            kind=SpanKind.LLM,
            inputs={"messages": len(session.messages), "attempt": attempt_number},
            attributes={
                SpanAttributes.LLM_MODEL_NAME: session.model.model_name,
                SpanAttributes.LLM_PROVIDER: session.model.provider,
            },
            parent=parent_span,
        )
        request = ModelRequest(
            system_prompt=session.system_prompt,
            messages=list(session.messages),
            provider_options=session.config.provider_options,
            cancellation=session.cancellation,
        )

        raw_text = ""
        reasoning = ""
        finish_reason = None
        parser.emit(StreamEvent(StreamEventType.STREAM_START))
        try:
            async with aclosing(session.model.stream(request)) as stream:
                async for chunk in stream:
                    if session.is_aborted():
                        logger.info("model_stream_cancelled", step=step_number)
                        break
                    if chunk.kind == ModelChunkKind.TEXT:
                        raw_text += chunk.text
                        parser.process_chunk(chunk.text)
                    elif chunk.kind == ModelChunkKind.REASONING:
                        reasoning += chunk.text
                        if callbacks.on_reasoning_delta:
                            callbacks.on_reasoning_delta(chunk.text)
                    else:
                        finish_reason = chunk.finish_reason
        except asyncio.CancelledError:
            queue.cancel()
            llm_span.end(output=raw_text, error="cancelled")
            logger.info("step_attempt_cancelled", step=step_number, executed=len(queue.results))
            raise
        except Exception as e:
            queue.abort()
            await queue.drain()
            parser.emit(StreamEvent(StreamEventType.STREAM_ERROR, e))
            llm_span.end(output=raw_text, error=str(e))
            if queue.results:
                logger.warning(
                    "step_attempt_failed_after_tools",
                    step=step_number,
                    executed=len(queue.results),
                    discarded=queue.discarded,
                )
            raise

        parser.flush()
        llm_span.set_attributes({"llm.finish_reason": finish_reason})
        llm_span.end(output=raw_text)
        try:
            results = await queue.drain()
        except asyncio.CancelledError:
            queue.cancel()
            raise
        parser.emit(StreamEvent(StreamEventType.STREAM_DONE))

        text = parser.text
        if text and callbacks.on_text_done:
            callbacks.on_text_done(text)
        if reasoning and callbacks.on_reasoning_done:
            callbacks.on_reasoning_done(reasoning)

        logger.info(
            "step_streamed",
            step=step_number,
            tool_calls=len(results),
            discarded=queue.discarded,
            finish_reason=finish_reason,
        )
        return StepResult(text=text, tool_calls=[r.tool_call for r in results], reasoning=reasoning)
