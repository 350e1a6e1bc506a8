"""agentrelay - stream agent responses into live-updating chat messages."""

from agentrelay.relay import Relay, RelayResult, RelayStatus
from agentrelay.sink import OutputSink, SlackMessageHandle, SlackOutputSink

__version__ = "0.1.0"

__all__ = ["OutputSink", "Relay", "RelayResult", "RelayStatus", "SlackMessageHandle", "SlackOutputSink"]
