"""Entry point when the package is executed as a module."""

import asyncio
import sys

import click

from .agents.browser import BrowserAgent, BrowserAgentBuilder
from .platform.agent import AgentCallbacks, AgentResult, Message, ToolCallInfo
from .platform.clients.relay import RelayToolExecutor
from .platform.observability import configure_logging, metrics
from .platform.settings import Settings


async def _run(agent: BrowserAgent, prompt: str, callbacks: AgentCallbacks, **kwargs) -> AgentResult:
    try:
        return await agent.run([Message.user(prompt)], callbacks=callbacks, **kwargs)
    finally:
        if isinstance(agent.tool_executor, RelayToolExecutor):
            await agent.tool_executor.close()


def _echo_tool(call: ToolCallInfo) -> None:
    click.echo(f"\n[{call.name}] {call.status}", err=True)


@click.command()
@click.argument("prompt")
@click.option("--tab-id", type=int, required=True, help="Browser tab the agent works in.")
@click.option("--group-id", type=int, default=None, help="Tab group the agent may use.")
@click.option("--max-steps", type=click.IntRange(min=1), default=None, help="Override WORKFLOW__MAX_STEPS.")
@click.option("--reasoning/--no-reasoning", default=None, help="Override LITELLM__REASONING_ENABLED.")
@click.option("--print-metrics", is_flag=True, help="Dump Prometheus metrics to stderr when done.")
def main(prompt, tab_id, group_id, max_steps, reasoning, print_metrics):
    settings = Settings()
    if reasoning is not None:
        settings.litellm.reasoning_enabled = reasoning

    json_output = settings.app.log_json if settings.app.log_json is not None else not sys.stderr.isatty()
    configure_logging(settings.app.log_level, json_output=json_output)

    agent = BrowserAgentBuilder.from_settings(settings).build()
    callbacks = AgentCallbacks(
        on_text_delta=lambda text: click.echo(text, nl=False),
        on_tool_done=_echo_tool,
    )
    try:
        result = asyncio.run(
            _run(agent, prompt, callbacks, tab_id=tab_id, group_id=group_id, max_steps=max_steps)
        )
    except Exception as e:
        raise click.ClickException(str(e) or type(e).__name__) from e

    click.echo()
    click.echo(f"[{result.finish_reason} after {result.steps} step(s)]", err=True)
    if print_metrics:
        body, _ = metrics()
        click.echo(body.decode(), err=True)


if __name__ == "__main__":
    sys.exit(main())
