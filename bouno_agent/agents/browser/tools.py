"""Browser tool catalog and settle policy.

Definitions only: the tools themselves run in the tool relay. The catalog
feeds the system prompt; the settle policy pauses after tools that change
the page so the next observation sees a settled state.
"""

from bouno_agent.platform.agent.catalog import StaticToolCatalog, ToolCategory, ToolDefinition, ToolParameter
from bouno_agent.platform.agent.config import SettleDelayConfig

TAB_ID = ToolParameter(
    name="tabId",
    type="number",
    description="Target browser tab ID. Use the starting tabId unless you intentionally switch tabs.",
    required=True,
)

COMPUTER_ACTIONS = (
    "left_click",
    "right_click",
    "double_click",
    "triple_click",
    "type",
    "key",
    "scroll",
    "scroll_to",
    "hover",
    "left_click_drag",
    "screenshot",
    "zoom",
    "wait",
)

READING_TOOLS = (
    ToolDefinition(
        name="read_page",
        description=(
            "Get the accessibility tree of the current page. Use this to understand the page "
            "structure and find element refs for interaction."
        ),
        parameters=(
            TAB_ID,
            ToolParameter(
                "filter",
                "string",
                'Filter elements: "all" for complete tree, "interactive" for clickable/input elements only',
                enum=("all", "interactive"),
                default="all",
            ),
            ToolParameter("depth", "number", "Maximum depth to traverse the DOM tree", default=15),
            ToolParameter("ref_id", "string", 'Focus on a specific element by ref (e.g., "ref_1")'),
        ),
        category=ToolCategory.READING,
    ),
    ToolDefinition(
        name="get_page_text",
        description="Extract raw text content from the page including title, URL, and body text.",
        parameters=(TAB_ID,),
        category=ToolCategory.READING,
    ),
    ToolDefinition(
        name="find",
        description="Find elements on the page using a natural language query. Returns matching elements with their refs.",
        parameters=(
            TAB_ID,
            ToolParameter(
                "query",
                "string",
                'Natural language search query (e.g., "login button", "email input field")',
                required=True,
            ),
        ),
        category=ToolCategory.READING,
    ),
)

INTERACTION_TOOLS = (
    ToolDefinition(
        name="computer",
        description="Perform mouse and keyboard actions on the page. Use refs from read_page to target elements.",
        parameters=(
            TAB_ID,
            ToolParameter("action", "string", "The action to perform", required=True, enum=COMPUTER_ACTIONS),
            ToolParameter(
                "ref",
                "string",
                'Element ref to interact with (e.g., "ref_1"). Required for click, type, hover actions',
            ),
            ToolParameter("coordinate", "array", "[x, y] viewport coordinate, used when no ref applies"),
            ToolParameter("text", "string", "Text to type or key combination to press"),
            ToolParameter("scroll_direction", "string", "Scroll direction", enum=("up", "down", "left", "right")),
            ToolParameter("scroll_amount", "number", "Number of scroll ticks", default=3),
            ToolParameter("duration", "number", "Seconds to wait for the wait action"),
        ),
        category=ToolCategory.INTERACTION,
    ),
    ToolDefinition(
        name="form_input",
        description="Set the value of a form element (input, select, checkbox) identified by ref.",
        parameters=(
            TAB_ID,
            ToolParameter("ref", "string", "Element ref of the form control", required=True),
            ToolParameter("value", "string", "Value to set; true/false for checkboxes", required=True),
        ),
        category=ToolCategory.INTERACTION,
    ),
    ToolDefinition(
        name="upload_image",
        description="Upload a previously captured image to a file input or drop target.",
        parameters=(
            TAB_ID,
            ToolParameter("imageId", "string", "ID of the captured image", required=True),
            ToolParameter("ref", "string", "Element ref of the file input"),
            ToolParameter("coordinate", "array", "[x, y] drop target, used when no ref applies"),
            ToolParameter("filename", "string", "File name to report to the page"),
        ),
        category=ToolCategory.INTERACTION,
    ),
)

NAVIGATION_TOOLS = (
    ToolDefinition(
        name="navigate",
        description=(
            'Navigate to a URL, or pass "back"/"forward" for history navigation. '
            "Refs become stale after navigation; re-read the page."
        ),
        parameters=(
            ToolParameter("tabId", "number", "Target tab ID", required=True),
            ToolParameter("url", "string", 'URL to navigate to, or "back"/"forward"', required=True),
        ),
        category=ToolCategory.NAVIGATION,
    ),
    ToolDefinition(
        name="tabs_context",
        description="List all open tabs in your group with their IDs, URLs, and titles.",
        category=ToolCategory.NAVIGATION,
    ),
    ToolDefinition(
        name="tabs_create",
        description="Create a new browser tab (opens in background). Returns the new tab ID.",
        parameters=(ToolParameter("url", "string", "URL to open"),),
        category=ToolCategory.NAVIGATION,
    ),
    ToolDefinition(
        name="resize_window",
        description="Resize the browser window.",
        parameters=(
            ToolParameter("tabId", "number", "Target tab ID", required=True),
            ToolParameter("width", "number", "Width in pixels", required=True),
            ToolParameter("height", "number", "Height in pixels", required=True),
        ),
        category=ToolCategory.NAVIGATION,
    ),
    ToolDefinition(
        name="web_fetch",
        description="Fetch raw content from a URL. Use for APIs or when you need HTML/JSON rather than the rendered page.",
        parameters=(ToolParameter("url", "string", "URL to fetch", required=True),),
        category=ToolCategory.NAVIGATION,
    ),
)

DEBUGGING_TOOLS = (
    ToolDefinition(
        name="read_console_messages",
        description="Read console messages logged by the page.",
        parameters=(
            ToolParameter("pattern", "string", "Regex filter applied to messages"),
            ToolParameter("limit", "number", "Maximum number of messages", default=100),
            ToolParameter("onlyErrors", "boolean", "Only return errors", default=False),
            ToolParameter("clear", "boolean", "Clear messages after reading", default=False),
        ),
        category=ToolCategory.DEBUGGING,
    ),
    ToolDefinition(
        name="read_network_requests",
        description="Read network requests made by the page.",
        parameters=(
            ToolParameter("pattern", "string", "Regex filter applied to request URLs"),
            ToolParameter("limit", "number", "Maximum number of requests", default=100),
            ToolParameter("clear", "boolean", "Clear requests after reading", default=False),
        ),
        category=ToolCategory.DEBUGGING,
    ),
    ToolDefinition(
        name="javascript_tool",
        description="Execute JavaScript in the page context and return the result.",
        parameters=(TAB_ID, ToolParameter("code", "string", "JavaScript code to execute", required=True)),
        category=ToolCategory.DEBUGGING,
    ),
)

MEDIA_TOOLS = (
    ToolDefinition(
        name="gif_creator",
        description="Record browser actions and export them as an animated GIF.",
        parameters=(
            ToolParameter(
                "action",
                "string",
                "Recording action",
                required=True,
                enum=("start_recording", "stop_recording", "export", "clear"),
            ),
            ToolParameter("download", "boolean", "Download the exported GIF", default=False),
            ToolParameter("filename", "string", "File name for the export"),
        ),
        category=ToolCategory.MEDIA,
    ),
)

UI_TOOLS = (
    ToolDefinition(
        name="update_plan",
        description="Share your plan with the user before acting on a multi-step task.",
        parameters=(
            ToolParameter("approach", "array", "Ordered list of steps you intend to take", required=True),
            ToolParameter("domains", "array", "Domains you expect to visit"),
        ),
        category=ToolCategory.UI,
    ),
)

SKILL_TOOLS = (
    ToolDefinition(
        name="invoke_skill",
        description=(
            "Invoke an installed skill to get specialized instructions for a task. Use this when "
            "you recognize a task that matches an available skill."
        ),
        parameters=(
            ToolParameter("skill_name", "string", 'The name of the skill to invoke (e.g., "summary")', required=True),
        ),
        category=ToolCategory.SKILLS,
    ),
)

BROWSER_TOOLS: tuple[ToolDefinition, ...] = (
    *READING_TOOLS,
    *INTERACTION_TOOLS,
    *NAVIGATION_TOOLS,
    *DEBUGGING_TOOLS,
    *MEDIA_TOOLS,
    *UI_TOOLS,
    *SKILL_TOOLS,
)

SIDE_EFFECT_TOOLS = frozenset({"navigate", "computer", "javascript_tool", "form_input", "tabs_create", "upload_image"})

READ_ONLY_ACTIONS = {"computer": frozenset({"screenshot", "zoom", "wait"})}


def browser_settle_policy(delay_seconds: float = 0.5) -> SettleDelayConfig:
    return SettleDelayConfig(
        delay_seconds=delay_seconds,
        side_effect_tools=SIDE_EFFECT_TOOLS,
        read_only_actions=READ_ONLY_ACTIONS,
    )


def browser_tool_catalog(overrides: dict[str, bool] | None = None) -> StaticToolCatalog:
    """Catalog of every browser tool, with optional per-tool enable overrides."""
    return StaticToolCatalog(definitions=BROWSER_TOOLS, overrides=overrides or {})
