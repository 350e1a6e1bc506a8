"""Configuration management for agentrelay."""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_AGENT_API_URL = "http://localhost:4111"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="RELAY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Agent server
    agent_api_url: str = Field(default=DEFAULT_AGENT_API_URL, description="Base URL of the agent server")
    agent_name: str | None = Field(default=None, description="Default agent to relay messages to")
    request_timeout_seconds: float = Field(default=30.0, description="Connect/read timeout for agent requests")

    # Relay behaviour
    update_interval_seconds: float = Field(default=1.0, gt=0, description="Seconds between status updates")
    show_tool_status: bool = Field(default=True, description="Show tool names while tools run")
    max_duration_seconds: float | None = Field(default=None, gt=0, description="Upper bound for one relay")
    tool_call_timeout_seconds: float | None = Field(
        default=None, gt=0, description="Upper bound for waiting on a running tool call"
    )

    # Slack
    slack_bot_token: str | None = Field(default=None, description="Bot token used to post and update messages")
    slack_team_id: str | None = Field(default=None, description="Team served by the static installation")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")


def load_settings(**overrides: Any) -> Settings:
    """Load settings from environment and `.env`, applying non-None overrides."""
    updates = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**updates)
