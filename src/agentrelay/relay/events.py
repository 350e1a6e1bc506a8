"""Typed events decoded from an agent stream."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TextDelta:
    """A chunk of response text to append."""

    text: str


@dataclass(frozen=True)
class ToolCallStart:
    """A tool invocation began; `internal_ref` is the invocation-scoped name (e.g. `_0`)."""

    internal_ref: str


@dataclass(frozen=True)
class ToolCallEnd:
    """The running tool invocation finished."""


@dataclass(frozen=True)
class ToolMetadata:
    """A tool description announced by the stream before the tool is called."""

    internal_ref: str
    display_id: str | None
    description: str


@dataclass(frozen=True)
class Unknown:
    """Any frame the relay does not act on."""

    type: str | None = None


RelayEvent = TextDelta | ToolCallStart | ToolCallEnd | ToolMetadata | Unknown
