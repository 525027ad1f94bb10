"""Unit tests for session creation and workflow options."""

import asyncio

import pytest

from bouno_agent.platform.agent.catalog import ToolCategory, ToolDefinition
from bouno_agent.platform.agent.config import LlmConfig
from bouno_agent.platform.agent.messages import Message, Role
from bouno_agent.platform.agent.session import WorkflowOptions, create_session


class TestCreateSession:
    """Tests for create_session."""

    def test_builds_session(self, workflow_options, scripted_model):
        """The session copies messages and resolves tools and prompt."""
        options = workflow_options(scripted_model([]))
        session = create_session(options)

        assert session.id.startswith("session_")
        assert session.step == 0
        assert session.messages == list(options.messages)
        assert session.messages is not options.messages
        assert [t.name for t in session.tool_catalog] == ["navigate", "read_page"]
        assert "## navigate" in session.system_prompt
        assert session.config.max_steps == 5
        assert session.config.execution_context == {"tabId": 7}
        assert session.agent == "test-agent"
        assert not session.is_aborted()

    def test_unique_ids(self, workflow_options, scripted_model):
        """Each session gets its own id."""
        options = workflow_options(scripted_model([]))
        assert create_session(options).id != create_session(options).id

    @pytest.mark.parametrize("max_steps", [0, -1])
    def test_rejects_non_positive_max_steps(self, workflow_options, scripted_model, max_steps):
        """A step limit below one is a configuration error."""
        with pytest.raises(ValueError, match="max_steps"):
            create_session(workflow_options(scripted_model([]), max_steps=max_steps))

    def test_uses_given_cancellation(self, workflow_options, scripted_model):
        """A caller's cancellation event is shared with the session."""
        cancellation = asyncio.Event()
        session = create_session(workflow_options(scripted_model([]), cancellation=cancellation))
        session.abort()
        assert cancellation.is_set()
        assert session.is_aborted()

    def test_reasoning_options(self, workflow_options, scripted_model):
        """Reasoning options are looked up from provider and model family."""
        session = create_session(workflow_options(scripted_model([]), reasoning_enabled=True))
        assert session.config.provider_options == {"thinking": {"type": "enabled", "budget_tokens": 16000}}

    def test_no_reasoning_options_for_unknown_family(self, workflow_options, scripted_model):
        """Unknown families get no provider options."""
        model = scripted_model([], provider="openai", model_name="gpt-4o")
        session = create_session(workflow_options(model, reasoning_enabled=True))
        assert session.config.provider_options == {}

    def test_custom_prompt_builder(self, workflow_options, scripted_model):
        """The prompt builder receives the resolved tools and skill context."""
        seen = {}

        def builder(tools, skill_context=None):
            seen["tools"] = [t.name for t in tools]
            seen["skill"] = skill_context
            return "custom prompt"

        session = create_session(
            workflow_options(scripted_model([]), system_prompt_builder=builder, skill_context="Check out")
        )
        assert session.system_prompt == "custom prompt"
        assert seen == {"tools": ["navigate", "read_page"], "skill": "Check out"}

    def test_skill_tools_follow_skill_context(self, workflow_options, scripted_model, test_catalog):
        """Skill tools are only offered with an active skill."""
        skill = ToolDefinition(name="invoke_skill", description="Run a skill", category=ToolCategory.SKILLS)
        test_catalog.definitions = [*test_catalog.definitions, skill]

        without = create_session(workflow_options(scripted_model([])))
        with_skill = create_session(workflow_options(scripted_model([]), skill_context="Book"))
        assert "invoke_skill" not in [t.name for t in without.tool_catalog]
        assert "invoke_skill" in [t.name for t in with_skill.tool_catalog]


class TestAgentSession:
    """Tests for session message helpers."""

    def test_append_messages(self, workflow_options, scripted_model):
        """Assistant and user turns are appended in order."""
        session = create_session(workflow_options(scripted_model([])))
        session.append_assistant_message("calling tools")
        session.append_user_message("<tool_results></tool_results>")
        assert [m.role for m in session.messages] == [Role.USER, Role.ASSISTANT, Role.USER]


class TestWorkflowOptions:
    """Tests for WorkflowOptions.from_llm_config."""

    def test_takes_reasoning_settings(self, recording_executor, test_catalog, scripted_model):
        """Reasoning flag and family come from the LLM config."""
        llm_config = LlmConfig(
            model="proxy-alias", provider="anthropic", model_family="claude", reasoning_enabled=True
        )
        options = WorkflowOptions.from_llm_config(
            llm_config,
            model=scripted_model([]),
            messages=[Message.user("hi")],
            tool_executor=recording_executor,
            catalog=test_catalog,
        )
        assert options.reasoning_enabled is True
        assert options.model_family == "claude"

    def test_explicit_values_win(self, recording_executor, test_catalog, scripted_model):
        """Explicit keyword arguments override the LLM config."""
        llm_config = LlmConfig(model="anthropic/claude-sonnet-4-5", provider="anthropic", reasoning_enabled=True)
        options = WorkflowOptions.from_llm_config(
            llm_config,
            model=scripted_model([]),
            messages=[],
            tool_executor=recording_executor,
            catalog=test_catalog,
            reasoning_enabled=False,
        )
        assert options.reasoning_enabled is False
