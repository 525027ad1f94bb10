"""HTTP tool executor backed by a tool relay.

The relay is the process that can actually touch the browser (an extension
bridge or automation host). Each tool call is posted as an EXECUTE_TOOL
message; the relay answers with `{"success": bool, "result"?, "error"?}`.
"""

import logging
from typing import Any

import httpx
from opentelemetry import propagate

from bouno_agent.platform.agent.exceptions import ToolRelayError
from bouno_agent.platform.constants import USER_AGENT
from bouno_agent.platform.observability import session_id_ctx

logger = logging.getLogger(__name__)


async def _inject_trace_context(request: httpx.Request) -> None:
    """Inject OpenTelemetry trace context and the session id into each request.

    Note: Must be async because httpx AsyncClient awaits event hooks.
    """
    propagate.inject(request.headers)

    session_id = session_id_ctx.get()
    if session_id:
        request.headers["X-Session-ID"] = session_id


def parse_relay_response(body: Any) -> Any:
    """Translate a relay reply into a tool result.

    Returns:
        The result on success (`{"success": True}` when the relay sent none),
        otherwise a mapping with an "error" key

    Raises:
        ToolRelayError: If the reply is not a JSON object
    """
    if not isinstance(body, dict):
        raise ToolRelayError(f"unexpected relay response: {body!r}")
    if body.get("success"):
        result = body.get("result")
        return {"success": True} if result is None else result
    return {"error": body.get("error") or "Tool execution failed"}


class RelayToolExecutor:
    """Tool executor posting calls to a relay over HTTP.

    Transport failures are reported as `{"error": ...}` results so that a
    broken relay surfaces to the model instead of aborting the run.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 60.0,
        headers: dict[str, str] | None = None,
        httpx_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the executor.

        Args:
            url: Relay endpoint receiving EXECUTE_TOOL messages
            timeout_seconds: Per-call timeout
            headers: Extra headers sent with every call
            httpx_client: Optional pre-configured HTTP client
        """
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._headers = {"User-Agent": USER_AGENT, **(headers or {})}
        self._httpx_client = httpx_client
        self._owns_httpx_client = httpx_client is None

    def _client(self) -> httpx.AsyncClient:
        if self._httpx_client is None:
            self._httpx_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_seconds),
                event_hooks={"request": [_inject_trace_context]},
            )
            self._owns_httpx_client = True
        return self._httpx_client

    async def close(self) -> None:
        """Close the HTTP client if this executor created it."""
        if self._owns_httpx_client and self._httpx_client is not None:
            await self._httpx_client.aclose()
            self._httpx_client = None

    async def __aenter__(self) -> "RelayToolExecutor":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def send(self, name: str, params: dict[str, Any]) -> Any:
        """Post one tool call and return the relay's parsed reply.

        Raises:
            ToolRelayError: If the relay is unreachable, answers with an HTTP
                error or sends an unexpected body
        """
        payload = {"type": "EXECUTE_TOOL", "tool": name, "params": params}
        try:
            response = await self._client().post(self._url, json=payload, headers=self._headers)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise ToolRelayError(str(e), status_code=e.response.status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ToolRelayError(str(e) or type(e).__name__) from e
        return parse_relay_response(body)

    async def __call__(self, name: str, params: dict[str, Any]) -> Any:
        try:
            return await self.send(name, params)
        except ToolRelayError as e:
            logger.warning("Tool relay call failed for %s: %s", name, e)
            return {"error": str(e)}
