"""Agent-level Prometheus metrics.

This module provides label NamedTuples, metric objects and helpers for
recording workflow runs, steps, model retries and tool calls.
"""

from time import monotonic
from typing import NamedTuple

import prometheus_client

from bouno_agent.platform.observability.metrics import setup_metrics_factory


class AgentMetricsLabels(NamedTuple):
    agent: str


class ToolMetricsLabels(NamedTuple):
    agent: str
    tool_name: str


tool_call_histogram = setup_metrics_factory(
    prometheus_client.REGISTRY,
    name="agent_tool_call_duration_seconds",
    documentation="Tool call duration (seconds)",
    labelnames=(*ToolMetricsLabels._fields, "status"),
)

workflow_histogram = setup_metrics_factory(
    prometheus_client.REGISTRY,
    name="agent_workflow_duration_seconds",
    documentation="Workflow run duration (seconds)",
    labelnames=(*AgentMetricsLabels._fields, "status"),
)

workflow_in_progress = prometheus_client.Gauge(
    "agent_workflow_in_progress",
    "Workflow runs currently executing",
    labelnames=AgentMetricsLabels._fields,
)

workflow_runs_counter = prometheus_client.Counter(
    "agent_workflow_runs_total",
    "Finished workflow runs by finish reason",
    labelnames=(*AgentMetricsLabels._fields, "finish_reason"),
)

workflow_steps_counter = prometheus_client.Counter(
    "agent_workflow_steps_total",
    "Executed model steps",
    labelnames=AgentMetricsLabels._fields,
)

model_retries_counter = prometheus_client.Counter(
    "agent_model_retries_total",
    "Model calls retried after rate limiting",
    labelnames=(*AgentMetricsLabels._fields, "provider"),
)


def record_tool_call(labels: ToolMetricsLabels, duration: float, error: bool = False) -> None:
    """Record one tool call duration.

    Args:
        labels: Agent and tool name
        duration: Execution time in seconds
        error: Whether the tool reported an error
    """
    status = "error" if error else "success"
    tool_call_histogram.labels(*labels, status).observe(duration)


def record_step(labels: AgentMetricsLabels) -> None:
    workflow_steps_counter.labels(*labels).inc()


def record_run(labels: AgentMetricsLabels, finish_reason: str) -> None:
    workflow_runs_counter.labels(*labels, finish_reason).inc()


def record_model_retry(labels: AgentMetricsLabels, provider: str) -> None:
    model_retries_counter.labels(*labels, provider).inc()


class collect_run_metrics:
    """Async context manager timing a workflow run.

    Tracks in-progress runs and records the run duration with a success or
    error status. Exceptions are never suppressed.

    Usage:
        ```
        async with collect_run_metrics(AgentMetricsLabels(agent="browser")):
            ...
        ```
    """

    def __init__(self, labels: AgentMetricsLabels):
        self.labels = labels
        self._start = 0.0

    async def __aenter__(self):
        self._start = monotonic()
        workflow_in_progress.labels(*self.labels).inc()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        workflow_in_progress.labels(*self.labels).dec()
        status = "error" if exc_type is not None else "success"
        workflow_histogram.labels(*self.labels, status).observe(monotonic() - self._start)
        return False
