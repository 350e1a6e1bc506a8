"""HTTP client for the agent server."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from agentrelay.config import DEFAULT_AGENT_API_URL
from agentrelay.errors import AgentRequestError

DEFAULT_DESCRIPTION = "AI Assistant"
FALLBACK_DESCRIPTION = "AI Assistant powered by Mastra"
DEFAULT_MODEL = "openai/gpt-4o-mini"
NO_RESPONSE_TEXT = "No response from agent"


@dataclass(frozen=True)
class AgentInfo:
    name: str
    description: str
    instructions: str
    model: str

    @classmethod
    def fallback(cls, agent_name: str) -> AgentInfo:
        return cls(
            name=agent_name,
            description=FALLBACK_DESCRIPTION,
            instructions=FALLBACK_DESCRIPTION,
            model=DEFAULT_MODEL,
        )


def _message_body(message: str, resource: str, thread: str) -> dict[str, Any]:
    return {
        "messages": [{"role": "user", "content": message}],
        "memory": {"resource": resource, "thread": thread},
    }


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise AgentRequestError(response.status_code, response.reason_phrase)


class AgentClient:
    """Talks to `/api/agents/{name}` endpoints of the agent server."""

    def __init__(
        self,
        base_url: str = DEFAULT_AGENT_API_URL,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> AgentClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, agent_name: str, action: str = "") -> str:
        path = f"{self.base_url}/api/agents/{quote(agent_name, safe='')}"
        return f"{path}/{action}" if action else path

    async def get_agent(self, agent_name: str) -> dict[str, Any]:
        """Fetch the agent metadata document, including its declared tools."""
        response = await self._client.get(self._url(agent_name))
        _raise_for_status(response)
        data = response.json()
        if not isinstance(data, dict):
            raise AgentRequestError(response.status_code, "agent metadata is not an object")
        return data

    async def agent_info(self, agent_name: str) -> AgentInfo:
        try:
            data = await self.get_agent(agent_name)
        except (httpx.HTTPError, AgentRequestError, ValueError) as exc:
            logger.warning("agent.info.fallback agent={} error={}", agent_name, exc)
            return AgentInfo.fallback(agent_name)
        return AgentInfo(
            name=data.get("name") or agent_name,
            description=data.get("description") or DEFAULT_DESCRIPTION,
            instructions=data.get("instructions") or DEFAULT_DESCRIPTION,
            model=data.get("model") or DEFAULT_MODEL,
        )

    async def stream(self, agent_name: str, message: str, *, resource: str, thread: str) -> AsyncIterator[bytes]:
        """Yield raw response bytes of a streaming agent invocation."""
        request = self._client.build_request(
            "POST",
            self._url(agent_name, "stream"),
            json=_message_body(message, resource, thread),
            timeout=httpx.Timeout(self._client.timeout.connect, read=None),
        )
        response = await self._client.send(request, stream=True)
        try:
            _raise_for_status(response)
            logger.info("agent.stream.open agent={} thread={}", agent_name, thread)
            async for chunk in response.aiter_bytes():
                if chunk:
                    yield chunk
        finally:
            await response.aclose()

    async def generate(self, agent_name: str, message: str, *, resource: str, thread: str) -> str:
        """Run a non-streaming invocation and return its text."""
        response = await self._client.post(
            self._url(agent_name, "generate"),
            json=_message_body(message, resource, thread),
        )
        _raise_for_status(response)
        data = response.json()
        return data.get("text") or data.get("response") or NO_RESPONSE_TEXT
