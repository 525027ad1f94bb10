"""Multi-step agent loop.

The engine runs model steps until the model answers without calling a tool,
the run is cancelled, or the step limit is reached. After every step with
tool calls it appends the reconstructed assistant turn and a user turn with
the tool results, then asks the model again.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from openinference.instrumentation import using_session
from openinference.semconv.trace import SpanAttributes

from bouno_agent.platform.agent.exceptions import is_cancellation_error
from bouno_agent.platform.agent.messages import (
    AgentResult,
    FinishReason,
    Role,
    ToolCallInfo,
    message_text,
)
from bouno_agent.platform.agent.metrics import (
    AgentMetricsLabels,
    collect_run_metrics,
    record_run,
    record_step,
)
from bouno_agent.platform.agent.session import AgentSession, WorkflowOptions, create_session
from bouno_agent.platform.agent.step import EventListener, StepRunner
from bouno_agent.platform.agent.tracing import SpanHandle, SpanKind
from bouno_agent.platform.agent.transcript import build_assistant_response, build_tool_results_message
from bouno_agent.platform.observability.logging import log_session

logger = structlog.get_logger(__name__)

MAX_STEPS_NOTE = "\n\n(Reached maximum steps limit)"


def _result(text: str, tool_calls: list[ToolCallInfo], steps: int, finish_reason: FinishReason) -> AgentResult:
    return AgentResult(text=text.strip(), tool_calls=list(tool_calls), steps=steps, finish_reason=finish_reason)


class WorkflowEngine:
    """Runs a session to completion.

    Args:
        session: Run state created by `create_session`
        event_listener: Receives every stream event of every step
        sleep: Awaitable used for retry backoff and settle pauses
    """

    def __init__(
        self,
        session: AgentSession,
        *,
        event_listener: EventListener | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.session = session
        self._step_runner = StepRunner(session, event_listener=event_listener, sleep=sleep)
        self._labels = AgentMetricsLabels(agent=session.agent)

    async def run(self) -> AgentResult:
        """Run steps until the model stops, the run is cancelled or steps run out.

        Returns:
            The accumulated text, every executed tool call, the step count
            and the finish reason

        Raises:
            Exception: Any error from a step that is not a cancellation
        """
        session = self.session
        try:
            with log_session(session.id, session.agent), using_session(session.id):
                async with collect_run_metrics(self._labels):
                    result = await self._run()
        except Exception:
            record_run(self._labels, FinishReason.ERROR)
            raise
        record_run(self._labels, result.finish_reason)
        return result

    async def _run(self) -> AgentResult:
        session = self.session
        callbacks = session.callbacks
        last_user = next((m for m in reversed(session.messages) if m.role == Role.USER), None)
        agent_span = session.tracer.start_span(
            session.agent,
            kind=SpanKind.AGENT,
            inputs=message_text(last_user) if last_user else None,
            attributes={
                SpanAttributes.SESSION_ID: session.id,
                SpanAttributes.LLM_MODEL_NAME: session.model.model_name,
                SpanAttributes.LLM_PROVIDER: session.model.provider,
            },
        )
        logger.info("workflow_started", max_steps=session.config.max_steps, tools=len(session.tool_catalog))
        if callbacks.on_stream_start:
            callbacks.on_stream_start()

        final_text = ""
        all_tool_calls: list[ToolCallInfo] = []
        try:
            while session.step < session.config.max_steps:
                if session.is_aborted():
                    return self._finish(agent_span, final_text, all_tool_calls, FinishReason.ABORTED)

                step_number = session.step + 1
                if callbacks.on_step_start:
                    callbacks.on_step_start(step_number)
                step_span = session.tracer.start_span(
                    f"step.{step_number}", kind=SpanKind.CHAIN, parent=agent_span
                )
                try:
                    step_result = await self._step_runner.run(step_number, step_span)
                except BaseException as e:
                    step_span.end(error=str(e) or type(e).__name__)
                    raise
                step_span.end(output=step_result.text)
                record_step(self._labels)

                final_text += step_result.text
                all_tool_calls.extend(step_result.tool_calls)
                if callbacks.on_step_complete:
                    callbacks.on_step_complete(step_number, step_result)

                if not step_result.tool_calls:
                    session.step = step_number
                    reason = FinishReason.ABORTED if session.is_aborted() else FinishReason.STOP
                    return self._finish(agent_span, final_text, all_tool_calls, reason)

                session.append_assistant_message(build_assistant_response(step_result.text, step_result.tool_calls))
                session.append_user_message(build_tool_results_message(step_result.tool_calls))
                session.step = step_number
                logger.info("step_completed", step=step_number, tool_calls=len(step_result.tool_calls))

            return self._finish(agent_span, final_text + MAX_STEPS_NOTE, all_tool_calls, FinishReason.MAX_STEPS)
        except Exception as e:
            if is_cancellation_error(e):
                logger.info("workflow_cancelled", step=session.step)
                return self._finish(agent_span, final_text, all_tool_calls, FinishReason.ABORTED)
            logger.exception("workflow_failed", step=session.step)
            agent_span.end(error=str(e) or type(e).__name__)
            raise
        finally:
            if callbacks.on_stream_done:
                callbacks.on_stream_done()

    def _finish(
        self,
        agent_span: SpanHandle,
        text: str,
        tool_calls: list[ToolCallInfo],
        finish_reason: FinishReason,
    ) -> AgentResult:
        result = _result(text, tool_calls, self.session.step, finish_reason)
        agent_span.set_attributes({"agent.finish_reason": finish_reason.value, "agent.steps": result.steps})
        agent_span.end(output=result.text)
        logger.info("workflow_finished", finish_reason=finish_reason.value, steps=result.steps)
        return result


async def run_workflow(
    options: WorkflowOptions,
    *,
    event_listener: EventListener | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> AgentResult:
    """Create a session from `options` and run it to completion.

    Args:
        options: Run inputs
        event_listener: Receives every stream event of every step
        sleep: Awaitable used for retry backoff and settle pauses

    Returns:
        Final outcome of the run

    Raises:
        ValueError: If the options are invalid
        Exception: Any step error that is not a cancellation
    """
    session = create_session(options)
    return await WorkflowEngine(session, event_listener=event_listener, sleep=sleep).run()
