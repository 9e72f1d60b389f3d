"""
Configuration management for the release notifier.

This module handles environment variables, settings validation, and configuration
management using Pydantic Settings for type safety and validation.
"""

import re
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class FirstObservationPolicy(str, Enum):
    """What to emit the first time a repository's releases are seen."""

    BASELINE = "baseline"
    LATEST = "latest"
    ALL = "all"


class PollingConfig(BaseModel):
    """Polling configuration settings."""

    interval_seconds: float = Field(
        default=3600.0, description="Polling interval in seconds"
    )
    first_observation_policy: FirstObservationPolicy = Field(
        default=FirstObservationPolicy.BASELINE,
        description="Emission policy for the first pass over a repository",
    )
    max_concurrent_queries: int = Field(
        default=1, description="Number of repositories to query concurrently"
    )
    queue_maxsize: int = Field(
        default=0, description="Notification queue bound (0 for unbounded)"
    )


class SlackConfig(BaseModel):
    """Slack webhook configuration settings."""

    hook: str = Field(default="", description="Slack incoming webhook URL")
    username: str = Field(default="GitHub Releases", description="Sender name")
    icon_emoji: str = Field(default=":github:", description="Sender icon")
    timeout_seconds: float = Field(default=10.0, description="Request timeout")


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.

    Accepts plain numbers (seconds) and duration strings such as ``90s``,
    ``30m``, ``1h`` or ``1h30m``.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration type: {type(value)}")

    text = value.strip().lower()
    try:
        return float(text)
    except ValueError:
        pass

    parts = _DURATION_PART.findall(text)
    if not text or "".join(number + unit for number, unit in parts) != text:
        raise ValueError(f"Invalid duration: {value!r}")
    return sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)


def _split_list(value: Any, field_name: str) -> list[str]:
    if isinstance(value, str):
        if not value.strip():
            return []
        return [item.strip() for item in value.split(",") if item.strip()]
    elif isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    else:
        raise ValueError(f"{field_name} must be a string or list, got {type(value)}")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GitHub configuration
    github_token: str = Field(
        default="", description="GitHub token (anonymous access when empty)"
    )
    github_api_url: str = Field(
        default="https://api.github.com", description="GitHub API URL"
    )
    releases_per_query: int = Field(
        default=10, description="Number of most recent releases fetched per query"
    )
    include_prereleases: bool = Field(
        default=True, description="Report releases flagged as prereleases"
    )

    # Slack configuration
    slack_hook: str = Field(default="", description="Slack incoming webhook URL")
    slack_username: str = Field(
        default="GitHub Releases", description="Username shown on notifications"
    )
    slack_icon_emoji: str = Field(
        default=":github:", description="Icon emoji shown on notifications"
    )
    webhook_timeout_seconds: float = Field(
        default=10.0, description="Webhook request timeout in seconds"
    )

    # Polling configuration
    interval_seconds: float = Field(
        default=3600.0,
        validation_alias=AliasChoices("interval", "interval_seconds"),
        description="Polling interval (seconds or duration such as 1h30m)",
    )
    repositories: str | list[str] = Field(
        default="",
        description="Repositories to watch (comma-separated owner/name)",
    )
    repositories_file: str = Field(
        default="repositories.txt",
        description="File listing one repository per line",
    )
    first_observation_policy: FirstObservationPolicy = Field(
        default=FirstObservationPolicy.BASELINE,
        description="First observation policy: baseline, latest, all",
    )
    max_concurrent_queries: int = Field(
        default=1, description="Number of repositories to query concurrently"
    )
    queue_maxsize: int = Field(
        default=0, description="Notification queue bound (0 for unbounded)"
    )

    # Logging configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format")

    @field_validator("interval_seconds", mode="before")
    @classmethod
    def parse_interval(cls, v: Any) -> float:
        """Parse the polling interval from seconds or a duration string."""
        return parse_duration(v)

    @field_validator("interval_seconds")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Validate the polling interval is positive."""
        if not 0 < v < float("inf"):
            raise ValueError(f"Interval must be positive, got {v}")
        return v

    @field_validator("repositories", mode="before")
    @classmethod
    def parse_repositories(cls, v: Any) -> list[str]:
        """Parse repositories from comma-separated string or list."""
        return _split_list(v, "repositories")

    @field_validator("releases_per_query", "max_concurrent_queries")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate counts that must be at least one."""
        if v < 1:
            raise ValueError(f"Value must be at least 1, got {v}")
        return v

    @field_validator("queue_maxsize")
    @classmethod
    def validate_queue_maxsize(cls, v: int) -> int:
        """Validate queue bound."""
        if v < 0:
            raise ValueError(f"queue_maxsize must not be negative, got {v}")
        return v

    @field_validator("first_observation_policy", mode="before")
    @classmethod
    def normalize_policy(cls, v: Any) -> Any:
        """Accept policy names case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() == "WARN":
            return "WARNING"
        if v.upper() not in allowed_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}")
        return v.lower()

    @property
    def repository_list(self) -> list[str]:
        """Get repositories configured through settings as a list."""
        repos = self.repositories
        if isinstance(repos, str):
            return _split_list(repos, "repositories")
        return list(repos)

    @property
    def polling_config(self) -> PollingConfig:
        """Get polling configuration."""
        return PollingConfig(
            interval_seconds=self.interval_seconds,
            first_observation_policy=self.first_observation_policy,
            max_concurrent_queries=self.max_concurrent_queries,
            queue_maxsize=self.queue_maxsize,
        )

    @property
    def slack_config(self) -> SlackConfig:
        """Get Slack webhook configuration."""
        return SlackConfig(
            hook=self.slack_hook,
            username=self.slack_username,
            icon_emoji=self.slack_icon_emoji,
            timeout_seconds=self.webhook_timeout_seconds,
        )

    @property
    def has_delivery_target(self) -> bool:
        """Check if a webhook is configured for notifications."""
        return bool(self.slack_hook.strip())
