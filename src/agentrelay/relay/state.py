"""Mutable state shared by the relay read loop and the status animator."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum

from agentrelay.errors import RelayStateError


class RelayStatus(StrEnum):
    THINKING = "thinking"
    TOOL_CALL = "tool_call"
    RESPONDING = "responding"
    DONE = "done"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (RelayStatus.DONE, RelayStatus.ERRORED)


@dataclass(frozen=True)
class RelaySnapshot:
    status: RelayStatus
    text: str
    tool_name: str | None
    frame: int


@dataclass
class RelayState:
    """State of one relay invocation.

    `lock` orders every output write: the animator holds it while rendering and
    updating, the orchestrator holds it while entering a terminal status. A
    tick that acquires the lock after that sees the terminal status and stops.
    """

    status: RelayStatus = RelayStatus.THINKING
    text: str = ""
    tool_name: str | None = None
    frame: int = 0
    history: list[RelayStatus] = field(default_factory=lambda: [RelayStatus.THINKING])
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def snapshot(self) -> RelaySnapshot:
        return RelaySnapshot(status=self.status, text=self.text, tool_name=self.tool_name, frame=self.frame)

    def append_text(self, text: str) -> None:
        self._check_open()
        self.text += text
        self._enter(RelayStatus.RESPONDING)

    def start_tool(self, tool_name: str) -> None:
        self._check_open()
        self.tool_name = tool_name
        self._enter(RelayStatus.TOOL_CALL)

    def end_tool(self) -> None:
        # The finished tool stays visible until the next transition.
        self._check_open()
        self._enter(RelayStatus.RESPONDING, keep_tool=True)

    def finish(self) -> None:
        self._check_open()
        self._enter(RelayStatus.DONE)

    def fail(self) -> None:
        self._check_open()
        self._enter(RelayStatus.ERRORED)

    def advance_frame(self) -> int:
        self.frame += 1
        return self.frame

    def _check_open(self) -> None:
        if self.status.is_terminal:
            raise RelayStateError(f"relay already {self.status}")

    def _enter(self, status: RelayStatus, *, keep_tool: bool = False) -> None:
        changed = status != self.status or status == RelayStatus.TOOL_CALL
        if changed and not keep_tool and status != RelayStatus.TOOL_CALL:
            self.tool_name = None
        if changed:
            self.history.append(status)
        self.status = status
