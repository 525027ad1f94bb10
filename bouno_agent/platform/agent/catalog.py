"""Tool definitions and catalog resolution.

A catalog provider lists every tool it knows about; a session only sees the
enabled subset, with skill tools hidden unless a skill context is active.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any


class ToolCategory(StrEnum):
    """Functional grouping of tools."""

    READING = "reading"
    INTERACTION = "interaction"
    NAVIGATION = "navigation"
    DEBUGGING = "debugging"
    MEDIA = "media"
    UI = "ui"
    SKILLS = "skills"
    MCP = "mcp"


@dataclass(frozen=True)
class ToolParameter:
    """A single tool parameter.

    Attributes:
        name: Parameter name used in the invocation markup
        type: JSON type name ("string", "number", "boolean", "array", "object")
        description: What the parameter means
        required: Whether the model must supply it
        enum: Allowed values, if restricted
        default: Value assumed when omitted
    """

    name: str
    type: str
    description: str
    required: bool = False
    enum: tuple[str, ...] | None = None
    default: Any = None


@dataclass(frozen=True)
class ToolDefinition:
    """A tool as presented to the model.

    Attributes:
        name: Unique tool name
        description: What the tool does
        parameters: Accepted parameters
        category: Functional grouping
        enabled: Whether the tool is offered to the model
    """

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = ()
    category: ToolCategory = ToolCategory.INTERACTION
    enabled: bool = True


def resolve_tool_catalog(
    definitions: Iterable[ToolDefinition], *, skill_context: str | None = None
) -> list[ToolDefinition]:
    """Select the tools a session offers to the model.

    Args:
        definitions: All known tool definitions
        skill_context: Active skill instructions; skill tools are only
            offered when this is set

    Returns:
        Enabled definitions in their original order
    """
    return [
        definition
        for definition in definitions
        if definition.enabled and (skill_context or definition.category != ToolCategory.SKILLS)
    ]


@dataclass
class StaticToolCatalog:
    """Catalog provider backed by a fixed list of definitions.

    Attributes:
        definitions: Known tools
        overrides: Per tool name, an enabled flag replacing the definition's own
    """

    definitions: Sequence[ToolDefinition]
    overrides: Mapping[str, bool] = field(default_factory=dict)

    def list_tools(self) -> list[ToolDefinition]:
        return [
            replace(definition, enabled=self.overrides[definition.name])
            if definition.name in self.overrides
            else definition
            for definition in self.definitions
        ]


def render_tool_catalog(tools: Sequence[ToolDefinition]) -> str:
    """Render tool definitions as a plain-text listing for a system prompt."""
    sections = []
    for tool in tools:
        lines = [f"## {tool.name}", tool.description]
        for param in tool.parameters:
            flag = "required" if param.required else "optional"
            line = f"- {param.name} ({param.type}, {flag}): {param.description}"
            if param.enum:
                line += f" One of: {', '.join(param.enum)}."
            if param.default is not None:
                line += f" Default: {param.default}."
            lines.append(line)
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def default_system_prompt(tools: Sequence[ToolDefinition], skill_context: str | None = None) -> str:
    """Minimal system prompt describing the invocation format and tools."""
    prompt = (
        "You can call tools by writing invocations in your reply:\n"
        '<invoke name="TOOL_NAME">\n<parameter name="PARAM">VALUE</parameter>\n</invoke>\n\n'
        f"# Tools\n\n{render_tool_catalog(tools)}"
    )
    if skill_context:
        prompt += f"\n\n# Active skill\n\n{skill_context}"
    return prompt
