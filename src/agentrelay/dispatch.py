"""Route inbound Slack events to background relays."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from loguru import logger
from slack_sdk.web.async_client import AsyncWebClient

from agentrelay.agent_client import AgentClient
from agentrelay.config import Settings
from agentrelay.errors import InstallationNotFound, TransportFailure
from agentrelay.relay import Relay, RelayResult, ToolNameResolver, fetch_tool_map
from agentrelay.sink import SlackOutputSink

MENTION_PATTERN = re.compile(r"<@[A-Z0-9]+>")
HANDLED_EVENT_TYPES = frozenset({"app_mention", "message"})

ClientFactory = Callable[[str], AsyncWebClient]


@dataclass(frozen=True)
class Installation:
    """The bot identity and agent serving one Slack team."""

    team_id: str
    bot_token: str
    agent_name: str


class InstallationLookup(Protocol):
    def get_installation(self, team_id: str) -> Installation | None: ...


class StaticInstallations:
    """In-memory installation lookup."""

    def __init__(self, installations: list[Installation] | None = None) -> None:
        self._by_team = {item.team_id: item for item in installations or []}

    def add(self, installation: Installation) -> None:
        self._by_team[installation.team_id] = installation

    def get_installation(self, team_id: str) -> Installation | None:
        return self._by_team.get(team_id)


@dataclass(frozen=True)
class RelayRequest:
    """One user message to relay to the agent."""

    team_id: str
    user_id: str
    channel: str
    thread_ts: str
    text: str

    @property
    def resource(self) -> str:
        return f"slack-{self.team_id}-{self.user_id}"

    @property
    def thread(self) -> str:
        return f"slack-{self.channel}-{self.thread_ts}"


def strip_mentions(text: str) -> str:
    return MENTION_PATTERN.sub("", text).strip()


def parse_event(payload: Mapping[str, Any]) -> RelayRequest | None:
    """Extract a relay request from an event callback, or None when it should be ignored."""
    event = payload.get("event")
    if not isinstance(event, Mapping):
        return None
    # Bot messages and edits would make the bot answer itself.
    if event.get("bot_id") or event.get("subtype"):
        return None
    if event.get("type") not in HANDLED_EVENT_TYPES:
        return None
    channel = event.get("channel")
    ts = event.get("thread_ts") or event.get("ts")
    if not channel or not ts:
        return None
    return RelayRequest(
        team_id=str(payload.get("team_id") or ""),
        user_id=str(event.get("user") or ""),
        channel=str(channel),
        thread_ts=str(ts),
        text=strip_mentions(str(event.get("text") or "")),
    )


async def run_relay(
    request: RelayRequest,
    *,
    installation: Installation,
    agent_client: AgentClient,
    settings: Settings,
    client: AsyncWebClient,
) -> RelayResult:
    """Stream one agent response into a Slack thread."""
    tool_map = await fetch_tool_map(agent_client, installation.agent_name)
    relay = Relay(
        SlackOutputSink(client, request.channel, request.thread_ts),
        resolver=ToolNameResolver(tool_map),
        interval=settings.update_interval_seconds,
        show_tool_status=settings.show_tool_status,
        max_duration=settings.max_duration_seconds,
        tool_call_timeout=settings.tool_call_timeout_seconds,
    )
    chunks = agent_client.stream(
        installation.agent_name,
        request.text,
        resource=request.resource,
        thread=request.thread,
    )
    return await relay.run(chunks)


async def post_reply(
    request: RelayRequest,
    *,
    installation: Installation,
    agent_client: AgentClient,
    client: AsyncWebClient,
) -> str:
    """Ask the agent for a complete answer and post it as one Slack message."""
    try:
        text = await agent_client.generate(
            installation.agent_name,
            request.text,
            resource=request.resource,
            thread=request.thread,
        )
    except httpx.HTTPError as exc:
        raise TransportFailure(str(exc) or type(exc).__name__) from exc
    await SlackOutputSink(client, request.channel, request.thread_ts).create(text)
    logger.info("slack.reply.posted channel={} thread={}", request.channel, request.thread)
    return text


class SlackDispatcher:
    """Accept Slack event callbacks and relay each message in the background."""

    def __init__(
        self,
        installations: InstallationLookup,
        agent_client: AgentClient,
        settings: Settings,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.installations = installations
        self.agent_client = agent_client
        self.settings = settings
        self._client_factory = client_factory or (lambda token: AsyncWebClient(token=token))
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def handle(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Answer a webhook call immediately; relays run as background tasks."""
        if payload.get("type") == "url_verification":
            logger.info("slack.dispatch.url_verification")
            return {"challenge": payload.get("challenge")}

        request = parse_event(payload)
        if request is None:
            return {"ok": True}

        installation = self.installations.get_installation(request.team_id)
        if installation is None:
            logger.error("slack.dispatch.no_installation team_id={}", request.team_id)
            raise InstallationNotFound(request.team_id)

        logger.info(
            "slack.dispatch.inbound team_id={} channel={} user={} agent={} text={}",
            request.team_id,
            request.channel,
            request.user_id,
            installation.agent_name,
            request.text[:100],
        )
        task = asyncio.get_running_loop().create_task(self._process(request, installation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return {"ok": True}

    async def _process(self, request: RelayRequest, installation: Installation) -> None:
        try:
            await run_relay(
                request,
                installation=installation,
                agent_client=self.agent_client,
                settings=self.settings,
                client=self._client_factory(installation.bot_token),
            )
        except Exception:
            logger.exception("slack.dispatch.relay_failed channel={} thread={}", request.channel, request.thread_ts)

    async def wait(self) -> None:
        """Wait for every scheduled relay to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel running relays; each one still writes its final message."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
