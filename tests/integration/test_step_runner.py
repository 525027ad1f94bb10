"""Integration tests for the step runner.

These tests drive a real parser and tool queue with a scripted model and a
recording executor.
"""

import asyncio

import pytest

from bouno_agent.platform.agent.exceptions import ModelRateLimitError
from bouno_agent.platform.agent.messages import StreamEventType, ToolCallStatus
from bouno_agent.platform.agent.protocol import AgentCallbacks, ModelChunk, ModelChunkKind
from bouno_agent.platform.agent.session import create_session
from bouno_agent.platform.agent.step import StepRunner


@pytest.fixture
def make_runner(workflow_options, no_sleep):
    def factory(model, event_listener=None, **overrides):
        session = create_session(workflow_options(model, **overrides))
        return StepRunner(session, event_listener=event_listener, sleep=no_sleep)

    return factory


def sleeps(no_sleep) -> list[float]:
    return [call.args[0] for call in no_sleep.await_args_list]


class StallingModel:
    """Model client that streams its chunks, then waits for output that never arrives."""

    provider = "anthropic"
    model_name = "anthropic/claude-sonnet-4-5"

    def __init__(self, chunks: list[ModelChunk]):
        self.chunks = chunks
        self.stalled = asyncio.Event()

    async def stream(self, request):
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk
        self.stalled.set()
        await asyncio.Event().wait()


class TestStepStreaming:
    """Tests for streaming text and tool calls within a step."""

    async def test_text_only(self, make_runner, scripted_model, chunks, recording_executor):
        """A response without invocations is returned as text."""
        runner = make_runner(scripted_model([chunks("Hello, ", "world.")]))
        result = await runner.run(1)

        assert result.text == "Hello, world."
        assert result.tool_calls == []
        assert result.reasoning == ""
        assert recording_executor.calls == []

    async def test_tools_run_with_context(self, make_runner, scripted_model, chunks, invoke_markup, recording_executor):
        """Invocations execute with the execution context merged in."""
        model = scripted_model(
            [chunks("Opening.\n", invoke_markup("navigate", url="https://example.com"), "\nReading.")]
        )
        result = await make_runner(model).run(1)

        assert result.text == "Opening.\n\nReading."
        assert recording_executor.calls == [("navigate", {"tabId": 7, "url": "https://example.com"})]
        [call] = result.tool_calls
        assert call.id == "tc_1_1"
        assert call.status == ToolCallStatus.COMPLETED
        assert call.input == {"url": "https://example.com"}

    async def test_tools_start_before_stream_ends(self, make_runner, scripted_model, chunks, invoke_markup, recording_executor):
        """A tool executes while the model is still streaming."""
        model = scripted_model([chunks(invoke_markup("read_page"), "Still ", "typing.")])
        recording_executor.results["read_page"] = lambda params: {"chunks_seen": model.yielded}

        result = await make_runner(model).run(1)

        [call] = result.tool_calls
        assert call.result["chunks_seen"] < model.yielded

    async def test_invocation_split_across_chunks(self, make_runner, scripted_model, chunks, recording_executor):
        """An invocation spread over several chunks is still executed."""
        model = scripted_model(
            [chunks('<invoke name="navig', 'ate">\n<parameter name="url">https://exa', "mple.com</parameter>\n</inv", "oke>")]
        )
        result = await make_runner(model).run(1)

        assert result.text == ""
        assert recording_executor.calls == [("navigate", {"tabId": 7, "url": "https://example.com"})]

    async def test_call_ids_use_step_number(self, make_runner, scripted_model, chunks, invoke_markup):
        """Call ids are prefixed with the step number."""
        model = scripted_model([chunks(invoke_markup("read_page"), invoke_markup("read_page"))])
        result = await make_runner(model).run(3)
        assert [call.id for call in result.tool_calls] == ["tc_3_1", "tc_3_2"]

    async def test_tool_error_does_not_fail_step(self, make_runner, scripted_model, chunks, invoke_markup, recording_executor):
        """A failing tool is reported in the step result."""
        recording_executor.results["read_page"] = {"error": "Tab closed"}
        result = await make_runner(scripted_model([chunks(invoke_markup("read_page"), "Hmm.")])).run(1)

        [call] = result.tool_calls
        assert call.status == ToolCallStatus.ERROR
        assert call.error == "Tab closed"

    async def test_settle_pause_after_navigation(self, make_runner, scripted_model, chunks, invoke_markup, no_sleep):
        """Page-changing tools are followed by the settle pause."""
        model = scripted_model([chunks(invoke_markup("navigate", url="https://example.com"), invoke_markup("read_page"))])
        await make_runner(model).run(1)
        assert sleeps(no_sleep) == [0.5]


class TestStepReasoning:
    """Tests for reasoning chunks and provider options."""

    async def test_reasoning_is_collected(self, make_runner, scripted_model):
        """Reasoning chunks are accumulated separately from text."""
        deltas, done = [], []
        model = scripted_model(
            [
                [
                    ModelChunk(kind=ModelChunkKind.REASONING, text="The user wants "),
                    ModelChunk(kind=ModelChunkKind.REASONING, text="a page."),
                    ModelChunk(kind=ModelChunkKind.TEXT, text="Sure."),
                    ModelChunk(kind=ModelChunkKind.FINISH, finish_reason="stop"),
                ]
            ]
        )
        callbacks = AgentCallbacks(on_reasoning_delta=deltas.append, on_reasoning_done=done.append)
        result = await make_runner(model, callbacks=callbacks).run(1)

        assert result.reasoning == "The user wants a page."
        assert result.text == "Sure."
        assert deltas == ["The user wants ", "a page."]
        assert done == ["The user wants a page."]

    async def test_request_carries_reasoning_options(self, make_runner, scripted_model, chunks):
        """Reasoning options are sent with the model request."""
        model = scripted_model([chunks("ok")])
        await make_runner(model, reasoning_enabled=True).run(1)

        [request] = model.requests
        assert request.provider_options == {"thinking": {"type": "enabled", "budget_tokens": 16000}}
        assert request.system_prompt.startswith("You can call tools")


class TestStepRetry:
    """Tests for rate-limit retries."""

    async def test_retries_after_rate_limit(self, make_runner, scripted_model, chunks, no_sleep):
        """A rate-limited call is retried after the base delay."""
        model = scripted_model([ModelRateLimitError(), chunks("Recovered.")])
        result = await make_runner(model).run(1)

        assert result.text == "Recovered."
        assert len(model.requests) == 2
        assert sleeps(no_sleep) == [2.0]

    async def test_backoff_doubles_until_exhausted(self, make_runner, scripted_model, no_sleep):
        """Delays double and the last error is raised after max attempts."""
        model = scripted_model([ModelRateLimitError(), ModelRateLimitError(), ModelRateLimitError("still limited")])

        with pytest.raises(ModelRateLimitError, match="still limited"):
            await make_runner(model).run(1)

        assert len(model.requests) == 3
        assert sleeps(no_sleep) == [2.0, 4.0]

    async def test_other_errors_are_not_retried(self, make_runner, scripted_model, no_sleep):
        """Errors other than rate limits propagate immediately."""
        model = scripted_model([ValueError("invalid request"), []])

        with pytest.raises(ValueError, match="invalid request"):
            await make_runner(model).run(1)

        assert len(model.requests) == 1
        no_sleep.assert_not_awaited()

    async def test_retry_starts_from_clean_state(self, make_runner, scripted_model, chunks, invoke_markup, recording_executor):
        """A failed attempt's text and calls are not part of the retried result."""
        model = scripted_model(
            [
                [ModelChunk(kind=ModelChunkKind.TEXT, text="Partial " + invoke_markup("read_page")), ModelRateLimitError()],
                chunks("Fresh answer."),
            ]
        )
        result = await make_runner(model).run(1)

        assert result.text == "Fresh answer."
        assert result.tool_calls == []
        assert [name for name, _ in recording_executor.calls] == ["read_page"]

    async def test_no_retry_when_aborted(self, make_runner, scripted_model, chunks):
        """A rate limit after cancellation is raised without retrying."""
        model = scripted_model([ModelRateLimitError(), chunks("never")])
        runner = make_runner(model)
        runner._session.abort()

        with pytest.raises(ModelRateLimitError):
            await runner.run(1)
        assert len(model.requests) == 1


class TestStepEvents:
    """Tests for the stream event listener."""

    async def test_event_sequence(self, make_runner, scripted_model, chunks, invoke_markup):
        """Listeners see start, text, tool and done events in order."""
        events = []
        model = scripted_model([chunks("Hi ", invoke_markup("read_page"))])
        await make_runner(model, event_listener=events.append).run(1)

        assert [event.type for event in events] == [
            StreamEventType.STREAM_START,
            StreamEventType.TEXT_DELTA,
            StreamEventType.TOOL_CALL_START,
            StreamEventType.TOOL_CALL_DONE,
            StreamEventType.TEXT_DONE,
            StreamEventType.STREAM_DONE,
        ]

    async def test_stream_error_event(self, make_runner, scripted_model):
        """A failing stream emits STREAM_ERROR with the exception."""
        events = []
        error = ValueError("boom")
        model = scripted_model([error])

        with pytest.raises(ValueError):
            await make_runner(model, event_listener=events.append).run(1)

        assert events[-1].type == StreamEventType.STREAM_ERROR
        assert events[-1].data is error

    async def test_stops_reading_when_cancelled(self, make_runner, scripted_model, chunks, invoke_markup, recording_executor):
        """Chunks after cancellation are ignored."""
        cancellation_holder = {}

        def on_text_delta(text):
            cancellation_holder["session"].abort()

        model = scripted_model([chunks("Hello", invoke_markup("read_page"), "ignored")])
        runner = make_runner(model, callbacks=AgentCallbacks(on_text_delta=on_text_delta))
        cancellation_holder["session"] = runner._session

        result = await runner.run(1)

        assert result.text == "Hello"
        assert result.tool_calls == []
        assert recording_executor.calls == []


class TestStepTaskCancellation:
    """Tests for cancelling the task that runs a step."""

    async def test_cancelled_mid_stream_stops_tools(self, make_runner, invoke_markup):
        """Calls queued behind the running one never execute once the task is cancelled."""
        started = asyncio.Event()
        release = asyncio.Event()
        calls = []

        async def executor(name, params):
            calls.append(name)
            started.set()
            await release.wait()
            return {"success": True}

        text = invoke_markup("read_page") + invoke_markup("navigate", url="https://example.com")
        model = StallingModel([ModelChunk(kind=ModelChunkKind.TEXT, text=text)])
        task = asyncio.create_task(make_runner(model, tool_executor=executor).run(1))
        await started.wait()
        await model.stalled.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        release.set()
        for _ in range(5):
            await asyncio.sleep(0)
        assert calls == ["read_page"]
