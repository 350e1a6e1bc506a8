"""Resolve invocation-scoped tool references to readable names."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from loguru import logger

from agentrelay.relay.events import ToolMetadata

if TYPE_CHECKING:
    from agentrelay.agent_client import AgentClient

_SEPARATORS = re.compile(r"[-_]")


def format_tool_name(tool_id: str) -> str:
    """Convert kebab-case or snake_case ids to Title Case, e.g. `reverse-text` -> `Reverse Text`."""
    words = [word[:1].upper() + word[1:] for word in _SEPARATORS.split(tool_id) if word]
    return " ".join(words) or tool_id


def tool_map_from_agent(data: Mapping[str, Any]) -> dict[str, str]:
    """Build `{"_<ordinal>": tool_id}` from an agent metadata document."""
    tools = data.get("tools")
    if isinstance(tools, Mapping):
        items = list(tools.items())
    elif isinstance(tools, list):
        items = list(enumerate(tools))
    else:
        return {}

    tool_map: dict[str, str] = {}
    for key, tool in items:
        if not isinstance(tool, Mapping):
            continue
        tool_id = tool.get("id") or tool.get("name")
        if tool_id:
            tool_map[f"_{key}"] = str(tool_id)
    return tool_map


async def fetch_tool_map(client: AgentClient, agent_name: str) -> dict[str, str]:
    """Fetch the agent's declared tools. Failures degrade to an empty map."""
    try:
        data = await client.get_agent(agent_name)
    except Exception as exc:
        logger.warning("relay.tools.fetch_failed agent={} error={}", agent_name, exc)
        return {}
    tool_map = tool_map_from_agent(data)
    logger.debug("relay.tools.fetched agent={} tools={}", agent_name, tool_map)
    return tool_map


class ToolNameResolver:
    """Resolves tool refs using, in order: prefetched ids, stream-registered names, the raw ref.

    A stream-registered name is the tool's description, or its formatted id
    when the stream announced the tool without a description.
    """

    def __init__(self, prefetched: Mapping[str, str] | None = None) -> None:
        self._prefetched = dict(prefetched or {})
        self._registered: dict[str, str] = {}

    def register(self, metadata: ToolMetadata) -> None:
        if metadata.description:
            name = metadata.description
        elif metadata.display_id:
            name = format_tool_name(metadata.display_id)
        else:
            return
        self._registered.setdefault(metadata.internal_ref, name)

    def resolve(self, internal_ref: str) -> str:
        tool_id = self._prefetched.get(internal_ref)
        if tool_id:
            return format_tool_name(tool_id)
        registered = self._registered.get(internal_ref)
        if registered:
            return registered
        return format_tool_name(internal_ref)
