"""Application-level exception types for agentrelay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for agentrelay."""


class ConfigurationError(RelayError):
    """Raised when settings needed for a relay are missing."""


class TransportFailure(RelayError):
    """Raised when the inbound agent stream errors or closes abnormally."""


class AgentRequestError(TransportFailure):
    """Raised when the agent server rejects a request."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"agent request failed: {status_code} {reason}".strip())
        self.status_code = status_code
        self.reason = reason


class RelayTimeout(TransportFailure):
    """Raised when a relay exceeds its configured duration limits."""


class SinkWriteFailure(RelayError):
    """Raised by output sinks when a message cannot be created."""


class RelayStateError(RelayError):
    """Raised when a terminal relay state is mutated."""


class InstallationNotFound(RelayError):
    """Raised when no installation is known for a Slack team."""
