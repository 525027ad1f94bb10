"""Clients for external services."""

from bouno_agent.platform.clients.relay import RelayToolExecutor

__all__ = ["RelayToolExecutor"]
