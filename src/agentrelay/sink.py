"""Output sinks: create one message, then keep editing it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from loguru import logger
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from agentrelay.errors import SinkWriteFailure

H = TypeVar("H")


class OutputSink(Protocol[H]):
    """Create/update contract against a chat surface."""

    async def create(self, text: str) -> H:
        """Post the initial message and return its handle."""
        ...

    async def update(self, handle: H, text: str) -> bool:
        """Replace the message text. Returns False when the update failed."""
        ...


@dataclass(frozen=True)
class SlackMessageHandle:
    channel: str
    ts: str


class SlackOutputSink:
    """Posts into a Slack thread and edits that message in place."""

    def __init__(self, client: AsyncWebClient, channel: str, thread_ts: str | None = None) -> None:
        self.client = client
        self.channel = channel
        self.thread_ts = thread_ts

    async def create(self, text: str) -> SlackMessageHandle:
        kwargs: dict[str, Any] = {"channel": self.channel, "text": text}
        if self.thread_ts:
            kwargs["thread_ts"] = self.thread_ts
        try:
            response = await self.client.chat_postMessage(**kwargs)
        except SlackApiError as exc:
            raise SinkWriteFailure(f"chat.postMessage failed: {exc.response.get('error', exc)}") from exc
        ts = response.get("ts")
        if not ts:
            raise SinkWriteFailure("chat.postMessage returned no message ts")
        channel = response.get("channel") or self.channel
        logger.info("slack.sink.created channel={} ts={}", channel, ts)
        return SlackMessageHandle(channel=channel, ts=ts)

    async def update(self, handle: SlackMessageHandle, text: str) -> bool:
        try:
            await self.client.chat_update(channel=handle.channel, ts=handle.ts, text=text)
        except SlackApiError as exc:
            logger.warning("slack.sink.update_failed ts={} error={}", handle.ts, exc.response.get("error", exc))
            return False
        return True
