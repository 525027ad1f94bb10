"""Browser automation agent."""

from bouno_agent.agents.browser.agent import BrowserAgent, BrowserAgentBuilder

__all__ = ["BrowserAgent", "BrowserAgentBuilder"]
