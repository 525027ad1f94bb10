"""FIFO execution of tool calls parsed during a step.

Calls are pushed as soon as the parser recognizes them, so tools start
running while the model is still streaming. A single consumer task executes
them strictly one at a time in push order; `drain` closes the queue and waits
for that consumer to finish.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from time import monotonic
from typing import Any, Final

import structlog
from openinference.semconv.trace import SpanAttributes

from bouno_agent.platform.agent.config import SettleDelayConfig
from bouno_agent.platform.agent.messages import ToolCallInfo, ToolCallStatus, ToolExecutionResult
from bouno_agent.platform.agent.metrics import AgentMetricsLabels, ToolMetricsLabels, record_tool_call
from bouno_agent.platform.agent.protocol import AgentCallbacks, ToolExecutor
from bouno_agent.platform.agent.tracing import NoopTracer, SpanHandle, SpanKind, Tracer

logger = structlog.get_logger(__name__)

_CLOSE: Final = object()


def is_error_result(result: Any) -> bool:
    """Return True for executor results that report a failure."""
    return isinstance(result, Mapping) and "error" in result


class ToolQueue:
    """Serial executor for the tool calls of one step.

    Args:
        executor: Executes a tool by name
        execution_context: Defaults merged into every call's parameters
            (values given by the model take precedence)
        settle: Post-action pause policy
        cancellation: Run cancellation signal; once set, pending calls are
            discarded and new pushes are ignored
        callbacks: Observer hooks; `on_tool_done` fires per finished call
        tracer: Span hooks for each executed call
        parent_span: Span the tool spans are attached to
        agent: Agent slug used in metric labels
        sleep: Awaitable used for settle pauses
    """

    def __init__(
        self,
        executor: ToolExecutor,
        *,
        execution_context: Mapping[str, Any] | None = None,
        settle: SettleDelayConfig | None = None,
        cancellation: asyncio.Event | None = None,
        callbacks: AgentCallbacks | None = None,
        tracer: Tracer | None = None,
        parent_span: SpanHandle | None = None,
        agent: str = "agent",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._executor = executor
        self._execution_context = dict(execution_context or {})
        self._settle = settle or SettleDelayConfig()
        self._cancellation = cancellation
        self._callbacks = callbacks or AgentCallbacks()
        self._tracer = tracer or NoopTracer()
        self._parent_span = parent_span
        self._labels = AgentMetricsLabels(agent=agent)
        self._sleep = sleep

        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._seen: set[str] = set()
        self._results: list[ToolExecutionResult] = []
        self._closed = False
        self._close_sent = False
        self._aborted = False
        self._discarded = 0

    @property
    def results(self) -> list[ToolExecutionResult]:
        """Results of executed calls so far, in execution order."""
        return list(self._results)

    @property
    def discarded(self) -> int:
        """Number of queued calls dropped without executing."""
        return self._discarded

    def _is_cancelled(self) -> bool:
        return self._aborted or (self._cancellation is not None and self._cancellation.is_set())

    def push(self, tool_call: ToolCallInfo) -> bool:
        """Enqueue a call and make sure the consumer is running.

        Returns:
            False when the call was ignored (queue closed, run cancelled or
            id already queued)
        """
        if self._closed or self._is_cancelled():
            logger.info("tool_call_ignored", tool_call_id=tool_call.id, tool=tool_call.name)
            return False
        if tool_call.id in self._seen:
            logger.warning("duplicate_tool_call_ignored", tool_call_id=tool_call.id, tool=tool_call.name)
            return False

        self._seen.add(tool_call.id)
        self._queue.put_nowait(tool_call)
        if self._worker is None:
            self._worker = asyncio.create_task(self._consume(), name=f"tool-queue-{tool_call.id}")
        return True

    def abort(self) -> None:
        """Stop accepting calls and discard those not yet started."""
        self._closed = True
        self._aborted = True

    def cancel(self) -> None:
        """Abort and stop the consumer task, interrupting the call in flight.

        Used when the task running the step is itself cancelled; `drain` must
        not be awaited afterwards.
        """
        self.abort()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()

    async def drain(self) -> list[ToolExecutionResult]:
        """Close the queue and wait until every accepted call is settled.

        Returns immediately when nothing was ever pushed. A call already
        executing is always awaited, never interrupted.

        Returns:
            Results of executed calls in execution order
        """
        self._closed = True
        if self._worker is not None:
            if not self._close_sent:
                self._queue.put_nowait(_CLOSE)
                self._close_sent = True
            await self._worker
        return list(self._results)

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            if self._is_cancelled():
                self._discarded += 1
                logger.info("tool_call_discarded", tool_call_id=item.id, tool=item.name)
                continue
            self._results.append(await self._execute(item))

    async def _execute(self, tool_call: ToolCallInfo) -> ToolExecutionResult:
        tool_call.status = ToolCallStatus.RUNNING
        tool_call.started_at = datetime.now(UTC)
        params = {**self._execution_context, **tool_call.input}
        span = self._tracer.start_span(
            tool_call.name,
            kind=SpanKind.TOOL,
            inputs=params,
            attributes={
                SpanAttributes.TOOL_NAME: tool_call.name,
                SpanAttributes.TOOL_PARAMETERS: params,
            },
            parent=self._parent_span,
        )
        logger.debug("tool_call_started", tool_call_id=tool_call.id, tool=tool_call.name)

        start = monotonic()
        try:
            result = await self._executor(tool_call.name, params)
        except Exception as e:
            logger.warning("tool_executor_failed", tool_call_id=tool_call.id, tool=tool_call.name, exc_info=True)
            result = {"error": str(e) or type(e).__name__}
        duration = monotonic() - start

        has_error = is_error_result(result)
        tool_call.result = result
        if has_error:
            tool_call.status = ToolCallStatus.ERROR
            tool_call.error = str(result["error"])
        else:
            tool_call.status = ToolCallStatus.COMPLETED
        tool_call.completed_at = datetime.now(UTC)

        record_tool_call(ToolMetricsLabels(self._labels.agent, tool_call.name), duration, error=has_error)
        span.end(output=result, error=tool_call.error)
        logger.info(
            "tool_call_finished",
            tool_call_id=tool_call.id,
            tool=tool_call.name,
            status=tool_call.status.value,
            duration=round(duration, 3),
        )
        if self._callbacks.on_tool_done:
            self._callbacks.on_tool_done(tool_call)

        if self._settle.requires_settle(tool_call.name, tool_call.input):
            await self._sleep(self._settle.delay_seconds)

        return ToolExecutionResult(tool_call=tool_call, result=result, has_error=has_error)
