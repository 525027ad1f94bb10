"""Browser agent builder module.

This module assembles the browser agent: a LiteLLM model client, a tool
relay executor, the browser tool catalog and settle policy, and the tracer.
"""

import asyncio
from collections.abc import Sequence
from typing import Any, Self

from bouno_agent.agents.browser.prompt import build_system_prompt
from bouno_agent.agents.browser.tools import browser_settle_policy, browser_tool_catalog
from bouno_agent.platform.agent.config import AgentConfig, LlmConfig, RetryConfig, SettleDelayConfig
from bouno_agent.platform.agent.llm_client import LiteLLMModelClient
from bouno_agent.platform.agent.messages import AgentResult, Message
from bouno_agent.platform.agent.protocol import AgentCallbacks, ModelClient, ToolCatalogProvider, ToolExecutor
from bouno_agent.platform.agent.session import WorkflowOptions
from bouno_agent.platform.agent.step import EventListener
from bouno_agent.platform.agent.tracing import NoopTracer, OpenTelemetryTracer, Tracer
from bouno_agent.platform.agent.workflow import run_workflow
from bouno_agent.platform.clients.relay import RelayToolExecutor
from bouno_agent.platform.settings import Settings


class BrowserAgent:
    """Browser automation agent bound to a model, executor and tool catalog."""

    def __init__(
        self,
        agent_config: AgentConfig,
        llm_config: LlmConfig,
        model: ModelClient,
        tool_executor: ToolExecutor,
        catalog: ToolCatalogProvider,
        settle: SettleDelayConfig,
        retry: RetryConfig,
        tracer: Tracer,
    ):
        self.agent_config = agent_config
        self.llm_config = llm_config
        self.model = model
        self.tool_executor = tool_executor
        self.catalog = catalog
        self.settle = settle
        self.retry = retry
        self.tracer = tracer

    @property
    def slug(self) -> str:
        return self.agent_config.slug

    async def run(
        self,
        messages: Sequence[Message],
        *,
        tab_id: int,
        group_id: int | None = None,
        cancellation: asyncio.Event | None = None,
        callbacks: AgentCallbacks | None = None,
        event_listener: EventListener | None = None,
        skill_context: str | None = None,
        max_steps: int | None = None,
    ) -> AgentResult:
        """Run the agent against a browser tab.

        Args:
            messages: Conversation, ending with the user's request
            tab_id: Tab the tools act on unless the model names another
            group_id: Tab group the agent may use
            cancellation: Set to stop the run
            callbacks: Observer hooks
            event_listener: Receives every stream event
            skill_context: Active skill instructions
            max_steps: Overrides the configured step limit

        Returns:
            Final outcome of the run
        """
        execution_context: dict[str, Any] = {"tabId": tab_id}
        if group_id is not None:
            execution_context["groupId"] = group_id

        options = WorkflowOptions.from_llm_config(
            self.llm_config,
            model=self.model,
            messages=messages,
            tool_executor=self.tool_executor,
            catalog=self.catalog,
            execution_context=execution_context,
            max_steps=max_steps or self.agent_config.max_steps,
            settle=self.settle,
            retry=self.retry,
            cancellation=cancellation,
            callbacks=callbacks,
            tracer=self.tracer,
            skill_context=skill_context,
            system_prompt_builder=build_system_prompt,
            agent=self.slug,
        )
        return await run_workflow(options, event_listener=event_listener)


class BrowserAgentBuilder:
    """Builder for constructing browser agents.

    This builder assembles all components needed for a browser agent:
    - LiteLLM model client
    - Tool relay executor
    - Browser tool catalog and settle policy
    - Tracer
    """

    SLUG = "browser"

    def __init__(
        self,
        agent_config: AgentConfig,
        llm_config: LlmConfig,
        tool_executor: ToolExecutor,
        settle: SettleDelayConfig | None = None,
        retry: RetryConfig | None = None,
        tracer: Tracer | None = None,
        model: ModelClient | None = None,
        catalog: ToolCatalogProvider | None = None,
    ) -> None:
        """Initialize the builder with configuration.

        Args:
            agent_config: Configuration for agent behavior (slug, max steps)
            llm_config: Configuration for the LLM client
            tool_executor: Executes tool calls
            settle: Post-action pause policy. Defaults to the browser policy.
            retry: Rate-limit retry policy
            tracer: Span hooks. Defaults to no tracing.
            model: Optional model client. Defaults to LiteLLM. Inject for testing.
            catalog: Optional tool catalog. Defaults to every browser tool.
        """
        self.agent_config = agent_config
        self.llm_config = llm_config
        self.tool_executor = tool_executor
        self.settle = settle or browser_settle_policy()
        self.retry = retry or RetryConfig()
        self.tracer = tracer or NoopTracer()
        self.model = model
        self.catalog = catalog or browser_tool_catalog()

    def build(self) -> BrowserAgent:
        """Build and return a configured BrowserAgent."""
        return BrowserAgent(
            agent_config=self.agent_config,
            llm_config=self.llm_config,
            model=self.model or LiteLLMModelClient(self.llm_config),
            tool_executor=self.tool_executor,
            catalog=self.catalog,
            settle=self.settle,
            retry=self.retry,
            tracer=self.tracer,
        )

    @classmethod
    def from_settings(cls, settings: Settings, tool_executor: ToolExecutor | None = None) -> Self:
        """Create a builder from application settings.

        Args:
            settings: Application settings
            tool_executor: Optional executor. Defaults to a relay executor
                for the configured relay URL.

        Returns:
            A configured BrowserAgentBuilder instance.
        """
        return cls(
            agent_config=AgentConfig(slug=cls.SLUG, max_steps=settings.workflow.max_steps),
            llm_config=settings.litellm.to_llm_config(),
            tool_executor=tool_executor
            or RelayToolExecutor(settings.tool_relay.url, timeout_seconds=settings.tool_relay.timeout),
            settle=browser_settle_policy(settings.workflow.post_action_delay),
            retry=settings.retry.to_retry_config(),
            tracer=OpenTelemetryTracer() if settings.opentelemetry.enabled else NoopTracer(),
        )
