"""Streaming browser agent engine.

Runs a multi-step loop in which a language model streams text containing
inline tool invocations, the invocations execute as soon as they are
parsed, and the results are fed back until the model answers.
"""

from bouno_agent.agents.browser import BrowserAgent, BrowserAgentBuilder
from bouno_agent.platform.agent import (
    AgentCallbacks,
    AgentResult,
    FinishReason,
    Message,
    WorkflowOptions,
    run_workflow,
)

__all__ = [
    "AgentCallbacks",
    "AgentResult",
    "BrowserAgent",
    "BrowserAgentBuilder",
    "FinishReason",
    "Message",
    "WorkflowOptions",
    "run_workflow",
]
