"""Exceptions raised by the agent engine and its adapters.

This module defines the error hierarchy and the classifiers the step runner
and workflow engine use to decide between retrying, aborting and
propagating.
"""

RATE_LIMIT_STATUS = 429
RATE_LIMIT_CODES = frozenset({"rate_limit_exceeded", "rate_limit_error", "resource_exhausted", "429"})
RATE_LIMIT_MESSAGES = ("rate limit", "rate_limit", "too many requests", "resource exhausted", "resource_exhausted")


class AgentError(Exception):
    """Base exception for agent engine errors."""


class ModelProviderError(AgentError):
    """Raised when the model provider fails to produce a response.

    Attributes:
        status_code: HTTP status code reported by the provider, if any
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ModelRateLimitError(ModelProviderError):
    """Raised when the model provider rejects a call for rate limiting."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, status_code=RATE_LIMIT_STATUS)


class RunCancelledError(AgentError):
    """Raised by a collaborator that observed the run's cancellation signal."""


class ToolRelayError(AgentError):
    """Raised when the tool relay cannot be reached or answers unexpectedly.

    Attributes:
        status_code: HTTP status code from the relay, if a response arrived
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _status_code(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    return status if isinstance(status, int) else None


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True when an exception signals provider rate limiting.

    Recognizes ModelRateLimitError, any exception carrying HTTP status 429
    (directly or on its `response`), provider error codes for rate limiting
    and the usual rate-limit wording in the message.
    """
    if isinstance(exc, ModelRateLimitError):
        return True
    if _status_code(exc) == RATE_LIMIT_STATUS:
        return True
    code = getattr(exc, "code", None)
    if code is not None and str(code).lower() in RATE_LIMIT_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RATE_LIMIT_MESSAGES)


def is_cancellation_error(exc: BaseException) -> bool:
    return isinstance(exc, RunCancelledError)
