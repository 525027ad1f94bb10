"""Observability infrastructure module.

This module provides monitoring:
- Structured logging with session IDs
- Prometheus metrics
"""

from bouno_agent.platform.observability.logging import (
    configure_logging,
    log_session,
    session_id_ctx,
)
from bouno_agent.platform.observability.metrics import BUCKETS, metrics

__all__ = [
    "BUCKETS",
    "configure_logging",
    "log_session",
    "metrics",
    "session_id_ctx",
]
