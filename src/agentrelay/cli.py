"""Command line entry points for agentrelay."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from slack_sdk.web.async_client import AsyncWebClient

from agentrelay.agent_client import AgentClient, AgentInfo
from agentrelay.config import Settings, load_settings
from agentrelay.dispatch import (
    Installation,
    RelayRequest,
    SlackDispatcher,
    StaticInstallations,
    post_reply,
    run_relay,
)
from agentrelay.errors import ConfigurationError, RelayError
from agentrelay.logging_utils import configure_logging
from agentrelay.relay import fetch_tool_map, format_tool_name

app = typer.Typer(
    name="agentrelay",
    help="Relay agent responses into live-updating Slack messages.",
    add_completion=False,
)

AgentOption = Annotated[str | None, typer.Option("--agent", "-a", help="Agent name (defaults to RELAY_AGENT_NAME)")]


def _settings(**overrides: object) -> Settings:
    settings = load_settings(**overrides)
    configure_logging(level=settings.log_level, profile="cli")
    return settings


def _require(value: str | None, name: str) -> str:
    if not value:
        raise ConfigurationError(f"{name} is not configured")
    return value


def _installation(settings: Settings) -> Installation:
    return Installation(
        team_id=settings.slack_team_id or "",
        bot_token=_require(settings.slack_bot_token, "RELAY_SLACK_BOT_TOKEN"),
        agent_name=_require(settings.agent_name, "RELAY_AGENT_NAME"),
    )


def _agent_client(settings: Settings) -> AgentClient:
    return AgentClient(settings.agent_api_url, timeout=settings.request_timeout_seconds)


@app.command()
def run(
    message: Annotated[str, typer.Argument(help="Message to send to the agent")],
    channel: Annotated[str, typer.Option("--channel", "-c", help="Slack channel id")],
    thread_ts: Annotated[str | None, typer.Option("--thread-ts", help="Reply inside this thread")] = None,
    agent: AgentOption = None,
    no_stream: Annotated[
        bool, typer.Option("--no-stream", help="Post the complete answer once instead of streaming")
    ] = False,
) -> None:
    """Relay one message and show the agent's answer in Slack."""
    settings = _settings(agent_name=agent)

    async def _run() -> str:
        installation = _installation(settings)
        request = RelayRequest(
            team_id=installation.team_id,
            user_id="cli",
            channel=channel,
            thread_ts=thread_ts or "",
            text=message,
        )
        client = AsyncWebClient(token=installation.bot_token)
        async with _agent_client(settings) as agent_client:
            if no_stream:
                return await post_reply(request, installation=installation, agent_client=agent_client, client=client)
            result = await run_relay(
                request,
                installation=installation,
                agent_client=agent_client,
                settings=settings,
                client=client,
            )
        return result.text

    try:
        text = asyncio.run(_run())
    except RelayError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(text)


@app.command()
def tools(agent: AgentOption = None) -> None:
    """Show how the agent's tool references will be displayed."""
    settings = _settings(agent_name=agent)
    try:
        agent_name = _require(settings.agent_name, "RELAY_AGENT_NAME")
    except ConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc

    async def _fetch() -> dict[str, str]:
        async with _agent_client(settings) as agent_client:
            return await fetch_tool_map(agent_client, agent_name)

    tool_map = asyncio.run(_fetch())
    if not tool_map:
        typer.echo(f"no tools found for {agent_name}")
        return
    for ref, tool_id in sorted(tool_map.items()):
        typer.echo(f"{ref}\t{tool_id}\t{format_tool_name(tool_id)}")


@app.command()
def info(agent: AgentOption = None) -> None:
    """Show the agent's description, instructions and model."""
    settings = _settings(agent_name=agent)
    try:
        agent_name = _require(settings.agent_name, "RELAY_AGENT_NAME")
    except ConfigurationError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc

    async def _fetch() -> AgentInfo:
        async with _agent_client(settings) as agent_client:
            return await agent_client.agent_info(agent_name)

    agent_info = asyncio.run(_fetch())
    typer.echo(f"name: {agent_info.name}")
    typer.echo(f"description: {agent_info.description}")
    typer.echo(f"instructions: {agent_info.instructions}")
    typer.echo(f"model: {agent_info.model}")


@app.command()
def dispatch(
    payload: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Slack event callback JSON")],
    agent: AgentOption = None,
) -> None:
    """Replay a stored Slack event callback through the dispatcher."""
    settings = _settings(agent_name=agent)
    try:
        data = json.loads(payload.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        typer.echo(f"error: cannot read {payload}: {exc}", err=True)
        raise typer.Exit(1) from exc
    if not isinstance(data, dict):
        typer.echo(f"error: {payload} does not hold a JSON object", err=True)
        raise typer.Exit(1)

    async def _dispatch() -> dict[str, object]:
        installation = _installation(settings)
        if not installation.team_id:
            installation = Installation(str(data.get("team_id") or ""), installation.bot_token, installation.agent_name)
        async with _agent_client(settings) as agent_client:
            dispatcher = SlackDispatcher(StaticInstallations([installation]), agent_client, settings)
            response = dispatcher.handle(data)
            await dispatcher.wait()
        return response

    try:
        response = asyncio.run(_dispatch())
    except RelayError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(1) from exc
    typer.echo(json.dumps(response))
