from __future__ import annotations

from typing import Any

import httpx
import pytest

from agentrelay.relay.events import ToolMetadata
from agentrelay.relay.tools import ToolNameResolver, fetch_tool_map, format_tool_name, tool_map_from_agent


class FakeAgentClient:
    def __init__(self, data: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.data = data or {}
        self.error = error
        self.calls: list[str] = []

    async def get_agent(self, agent_name: str) -> dict[str, Any]:
        self.calls.append(agent_name)
        if self.error is not None:
            raise self.error
        return self.data


def test_format_tool_name() -> None:
    assert format_tool_name("reverse-text") == "Reverse Text"
    assert format_tool_name("all_caps") == "All Caps"
    assert format_tool_name("weatherTool") == "WeatherTool"
    assert format_tool_name("_0") == "0"
    assert format_tool_name("--") == "--"


def test_prefetched_id_wins_over_stream_description() -> None:
    resolver = ToolNameResolver({"_0": "reverse-text"})
    resolver.register(ToolMetadata(internal_ref="_0", display_id=None, description="Reverses the text"))

    assert resolver.resolve("_0") == "Reverse Text"


def test_stream_description_used_without_prefetched_id() -> None:
    resolver = ToolNameResolver()
    resolver.register(ToolMetadata(internal_ref="_1", display_id=None, description="Shouts the text"))
    resolver.register(ToolMetadata(internal_ref="_1", display_id=None, description="Later description"))

    assert resolver.resolve("_1") == "Shouts the text"


def test_raw_reference_is_formatted_as_last_resort() -> None:
    assert ToolNameResolver().resolve("word-count") == "Word Count"


def test_tool_map_from_object_keyed_by_ordinal() -> None:
    data = {"tools": {"0": {"id": "reverse-text"}, "1": {"name": "all-caps"}, "2": {}, "3": "bad"}}
    assert tool_map_from_agent(data) == {"_0": "reverse-text", "_1": "all-caps"}


def test_tool_map_from_list() -> None:
    data = {"tools": [{"id": "reverse-text"}, {"id": "all-caps"}]}
    assert tool_map_from_agent(data) == {"_0": "reverse-text", "_1": "all-caps"}


def test_tool_map_without_tools() -> None:
    assert tool_map_from_agent({}) == {}
    assert tool_map_from_agent({"tools": None}) == {}


@pytest.mark.asyncio
async def test_fetch_tool_map_uses_agent_metadata() -> None:
    client = FakeAgentClient({"tools": {"0": {"id": "reverse-text"}}})

    tool_map = await fetch_tool_map(client, "reverseAgent")  # type: ignore[arg-type]

    assert tool_map == {"_0": "reverse-text"}
    assert client.calls == ["reverseAgent"]


@pytest.mark.asyncio
async def test_fetch_tool_map_degrades_to_empty_on_failure() -> None:
    client = FakeAgentClient(error=httpx.ConnectError("refused"))

    assert await fetch_tool_map(client, "reverseAgent") == {}  # type: ignore[arg-type]


def test_stream_id_used_when_description_missing() -> None:
    resolver = ToolNameResolver()
    resolver.register(ToolMetadata(internal_ref="_2", display_id="word-count", description=""))

    assert resolver.resolve("_2") == "Word Count"


def test_stream_description_preferred_over_stream_id() -> None:
    resolver = ToolNameResolver()
    resolver.register(ToolMetadata(internal_ref="_0", display_id="all-caps", description="Shouts the text"))

    assert resolver.resolve("_0") == "Shouts the text"
