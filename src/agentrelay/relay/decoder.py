"""Incremental decoder for the agent's `data:` line stream."""

from __future__ import annotations

import codecs
import json
from typing import Any

from loguru import logger

from agentrelay.relay.events import RelayEvent, TextDelta, ToolCallEnd, ToolCallStart, ToolMetadata, Unknown

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

TEXT_TYPES = frozenset({"text-delta", "text", "content"})
TOOL_START_TYPES = frozenset({"tool-call", "tool_call_start", "tool-call-start"})
TOOL_END_TYPES = frozenset({"tool-call-end", "tool-result"})
STEP_START_TYPE = "step-start"

DEFAULT_TOOL_REF = "tool"


def _first_text(*candidates: Any) -> str:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
    return ""


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _tool_metadata(payload: dict[str, Any]) -> list[RelayEvent]:
    body = _mapping(_mapping(payload.get("request")).get("body"))
    tools = body.get("tools")
    if not isinstance(tools, list):
        return []
    events: list[RelayEvent] = []
    for tool in tools:
        if not isinstance(tool, dict):
            continue
        name = tool.get("name")
        description = tool.get("description")
        display_id = tool.get("id")
        if not name or not (description or display_id):
            continue
        events.append(
            ToolMetadata(
                internal_ref=str(name),
                display_id=str(display_id) if display_id else None,
                description=str(description or ""),
            )
        )
    return events


def decode_frame(parsed: dict[str, Any]) -> list[RelayEvent]:
    """Map one parsed JSON frame to relay events."""
    event_type = parsed.get("type")
    payload = _mapping(parsed.get("payload"))

    if event_type in TEXT_TYPES:
        text = _first_text(payload.get("text"), parsed.get("text"), parsed.get("content"))
        if not text:
            return [Unknown(event_type)]
        return [TextDelta(text)]
    if event_type in TOOL_START_TYPES:
        ref = _first_text(payload.get("toolName"), parsed.get("tool_name"), parsed.get("toolName"))
        return [ToolCallStart(ref or DEFAULT_TOOL_REF)]
    if event_type in TOOL_END_TYPES:
        return [ToolCallEnd()]
    if event_type == STEP_START_TYPE:
        return _tool_metadata(payload) or [Unknown(event_type)]
    return [Unknown(event_type if isinstance(event_type, str) else None)]


def decode_line(line: str) -> list[RelayEvent]:
    """Decode one complete line. Malformed lines yield no events."""
    line = line.rstrip("\r")
    if not line.startswith(DATA_PREFIX):
        if line.strip():
            logger.debug("relay.decode.skip_line line={}", line[:100])
        return []

    data = line[len(DATA_PREFIX) :]
    if data.strip() == DONE_SENTINEL:
        return []
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as exc:
        logger.warning("relay.decode.invalid_json data={} error={}", data[:100], exc)
        return []
    if not isinstance(parsed, dict):
        logger.warning("relay.decode.not_an_object data={}", data[:100])
        return []
    return decode_frame(parsed)


class EventDecoder:
    """Turns arbitrarily split byte chunks into relay events.

    Only the undecoded tail is kept between calls: incomplete UTF-8 sequences
    and the last line when it has not been terminated yet.
    """

    def __init__(self) -> None:
        self._bytes = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[RelayEvent]:
        self._buffer += self._bytes.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        events: list[RelayEvent] = []
        for line in lines:
            events.extend(decode_line(line))
        return events

    def close(self) -> list[RelayEvent]:
        """Flush whatever is left once the transport has ended."""
        tail = self._buffer + self._bytes.decode(b"", final=True)
        self._buffer = ""
        if not tail:
            return []
        return decode_line(tail)
