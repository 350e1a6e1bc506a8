"""Relay orchestration: drive the stream, animate, write the final message once."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any

from loguru import logger

from agentrelay.errors import RelayTimeout, TransportFailure
from agentrelay.relay.animator import StatusAnimator, render_status
from agentrelay.relay.decoder import EventDecoder
from agentrelay.relay.events import RelayEvent, TextDelta, ToolCallEnd, ToolCallStart, ToolMetadata
from agentrelay.relay.state import RelayState, RelayStatus
from agentrelay.relay.tools import ToolNameResolver
from agentrelay.sink import OutputSink

EMPTY_RESPONSE_TEXT = "Sorry, I couldn't generate a response."
ERROR_TEXT = "❌ Sorry, I encountered an error processing your request."


@dataclass(frozen=True)
class RelayResult:
    status: RelayStatus
    text: str
    history: tuple[RelayStatus, ...]


class Relay:
    """One agent response relayed into one continuously edited message.

    A relay instance is single-use: `run` creates the message, animates it
    while the stream is drained and finishes with exactly one terminal write.
    """

    def __init__(
        self,
        sink: OutputSink,
        *,
        resolver: ToolNameResolver | None = None,
        interval: float = 1.0,
        show_tool_status: bool = True,
        max_duration: float | None = None,
        tool_call_timeout: float | None = None,
    ) -> None:
        self.sink = sink
        self.resolver = resolver or ToolNameResolver()
        self.state = RelayState()
        self.interval = interval
        self.show_tool_status = show_tool_status
        self.max_duration = max_duration
        self.tool_call_timeout = tool_call_timeout
        self._decoder = EventDecoder()
        self._handle: Any = None
        self._animator: StatusAnimator | None = None
        self._used = False

    async def run(self, chunks: AsyncIterable[bytes]) -> RelayResult:
        if self._used:
            raise RuntimeError("a relay can only run once")
        self._used = True

        initial = render_status(self.state.snapshot(), show_tool_status=self.show_tool_status)
        self._handle = await self.sink.create(initial)
        self._animator = StatusAnimator(
            self.state,
            self.sink,
            self._handle,
            interval=self.interval,
            show_tool_status=self.show_tool_status,
        )
        self._animator.start()

        try:
            await self._drain_within_deadline(chunks)
        except asyncio.CancelledError:
            logger.warning("relay.cancelled text_len={}", len(self.state.text))
            await self._terminate(RelayStatus.ERRORED)
            raise
        except Exception as exc:
            logger.opt(exception=exc).error("relay.transport.error text_len={}", len(self.state.text))
            await self._terminate(RelayStatus.ERRORED)
            if isinstance(exc, TransportFailure):
                raise
            raise TransportFailure(str(exc) or type(exc).__name__) from exc

        await self._terminate(RelayStatus.DONE)
        logger.info("relay.done text_len={} history={}", len(self.state.text), [s.value for s in self.state.history])
        return RelayResult(status=self.state.status, text=self.state.text, history=tuple(self.state.history))

    async def _drain_within_deadline(self, chunks: AsyncIterable[bytes]) -> None:
        deadline = asyncio.timeout(self.max_duration)
        try:
            async with deadline:
                await self._drain(chunks)
        except TimeoutError as exc:
            if not deadline.expired():
                raise
            logger.error("relay.timeout max_duration={}", self.max_duration)
            raise RelayTimeout(f"relay exceeded {self.max_duration}s") from exc

    async def _drain(self, chunks: AsyncIterable[bytes]) -> None:
        iterator = aiter(chunks)
        try:
            while True:
                try:
                    chunk = await self._next_chunk(iterator)
                except StopAsyncIteration:
                    break
                for event in self._decoder.feed(chunk):
                    self.apply(event)
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
        for event in self._decoder.close():
            self.apply(event)

    async def _next_chunk(self, iterator: AsyncIterator[bytes]) -> bytes:
        if self.tool_call_timeout is None or self.state.status != RelayStatus.TOOL_CALL:
            return await anext(iterator)
        deadline = asyncio.timeout(self.tool_call_timeout)
        try:
            async with deadline:
                return await anext(iterator)
        except TimeoutError as exc:
            if not deadline.expired():
                raise
            logger.error("relay.tool_call.timeout tool={} timeout={}", self.state.tool_name, self.tool_call_timeout)
            raise RelayTimeout(f"tool call {self.state.tool_name!r} exceeded {self.tool_call_timeout}s") from exc

    def apply(self, event: RelayEvent) -> None:
        """Apply one decoded event to the relay state."""
        match event:
            case TextDelta(text=text):
                self.state.append_text(text)
            case ToolCallStart(internal_ref=ref):
                name = self.resolver.resolve(ref)
                self.state.start_tool(name)
                logger.info("relay.tool_call.start ref={} name={}", ref, name)
            case ToolCallEnd():
                self.state.end_tool()
                logger.info("relay.tool_call.end")
            case ToolMetadata():
                self.resolver.register(event)
            case _:
                logger.debug("relay.event.ignored event={}", event)

    async def _terminate(self, status: RelayStatus) -> None:
        """Run the terminal sequence to completion, even if cancelled while waiting on it.

        A cancellation received meanwhile is re-raised once the final write is done.
        """
        finishing = asyncio.ensure_future(self._finish(status))
        cancelled = False
        while not finishing.done():
            try:
                await asyncio.shield(finishing)
            except asyncio.CancelledError:
                cancelled = True
        if cancelled:
            logger.warning("relay.terminate.cancelled status={}", status.value)
            raise asyncio.CancelledError
        finishing.result()

    async def _finish(self, status: RelayStatus) -> None:
        """Enter the terminal status, silence the animator, write the final text once."""
        try:
            async with self.state.lock:
                if status == RelayStatus.DONE:
                    self.state.finish()
                else:
                    self.state.fail()
        finally:
            if self._animator is not None:
                await self._animator.stop()

        if status == RelayStatus.DONE:
            text = self.state.text or EMPTY_RESPONSE_TEXT
        else:
            text = ERROR_TEXT
        await self._final_write(text)

    async def _final_write(self, text: str) -> None:
        try:
            ok = await self.sink.update(self._handle, text)
        except Exception as exc:
            logger.error("relay.final_write.failed error={}", exc)
            return
        if not ok:
            logger.error("relay.final_write.rejected")
