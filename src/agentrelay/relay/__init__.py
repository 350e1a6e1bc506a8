"""Streaming relay engine."""

from agentrelay.relay.animator import StatusAnimator, render_status
from agentrelay.relay.decoder import EventDecoder, decode_line
from agentrelay.relay.events import RelayEvent, TextDelta, ToolCallEnd, ToolCallStart, ToolMetadata, Unknown
from agentrelay.relay.orchestrator import EMPTY_RESPONSE_TEXT, ERROR_TEXT, Relay, RelayResult
from agentrelay.relay.state import RelaySnapshot, RelayState, RelayStatus
from agentrelay.relay.tools import ToolNameResolver, fetch_tool_map, format_tool_name, tool_map_from_agent

__all__ = [
    "EMPTY_RESPONSE_TEXT",
    "ERROR_TEXT",
    "EventDecoder",
    "Relay",
    "RelayEvent",
    "RelayResult",
    "RelaySnapshot",
    "RelayState",
    "RelayStatus",
    "StatusAnimator",
    "TextDelta",
    "ToolCallEnd",
    "ToolCallStart",
    "ToolMetadata",
    "ToolNameResolver",
    "Unknown",
    "decode_line",
    "fetch_tool_map",
    "format_tool_name",
    "render_status",
    "tool_map_from_agent",
]
