"""Periodic status rendering for an in-flight relay."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any

from loguru import logger

from agentrelay.relay.state import RelaySnapshot, RelayState, RelayStatus
from agentrelay.sink import OutputSink

SPINNER = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")
TOOL_ICONS = ("🔄", "⚙️", "🔧", "⚡")


def render_status(snapshot: RelaySnapshot, *, show_tool_status: bool = True) -> str:
    """Render the status line. Partial response text is never shown."""
    spinner = SPINNER[snapshot.frame % len(SPINNER)]
    if not show_tool_status:
        return f"{spinner} Thinking..."
    if snapshot.status == RelayStatus.TOOL_CALL:
        icon = TOOL_ICONS[snapshot.frame % len(TOOL_ICONS)]
        return f"{icon} Using {snapshot.tool_name or 'tool'}..."
    if snapshot.status == RelayStatus.RESPONDING:
        return f"{spinner} Responding..."
    return f"{spinner} Thinking..."


class StatusAnimator:
    """Re-renders relay state on a fixed clock, independent of stream events."""

    def __init__(
        self,
        state: RelayState,
        sink: OutputSink,
        handle: Any,
        *,
        interval: float = 1.0,
        show_tool_status: bool = True,
    ) -> None:
        self._state = state
        self._sink = sink
        self._handle = handle
        self._interval = interval
        self._show_tool_status = show_tool_status
        self._task: asyncio.Task[None] | None = None
        self.updates = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name="relay-animator")
        logger.debug("relay.animator.start interval={}", self._interval)

    async def stop(self) -> None:
        """Cancel the ticker and wait until it can no longer write."""
        task = self._task
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("relay.animator.stopped updates={}", self.updates)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if not await self.tick():
                return

    async def tick(self) -> bool:
        """Issue one status update. Returns False once the relay is terminal."""
        async with self._state.lock:
            if self._state.is_terminal:
                return False
            self._state.advance_frame()
            text = render_status(self._state.snapshot(), show_tool_status=self._show_tool_status)
            try:
                ok = await self._sink.update(self._handle, text)
            except Exception as exc:
                logger.warning("relay.animator.update_failed error={}", exc)
                ok = False
            if ok:
                self.updates += 1
        return True
