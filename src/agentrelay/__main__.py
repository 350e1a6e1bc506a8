"""agentrelay CLI bootstrap."""

from __future__ import annotations

from agentrelay.cli import app

if __name__ == "__main__":
    app()
