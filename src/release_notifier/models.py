"""
Data models for the release notifier.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Release(BaseModel):
    """A single published release of a watched repository."""

    model_config = ConfigDict(frozen=True)

    repository: str = Field(..., description="Repository identifier (owner/name)")
    tag: str = Field(..., description="Release tag, unique within the repository")
    name: str = Field(default="", description="Human-readable release title")
    body: str = Field(default="", description="Release notes")
    url: str = Field(default="", description="Release page URL")
    repository_url: str = Field(default="", description="Repository page URL")
    published_at: datetime = Field(..., description="Publication timestamp")
    prerelease: bool = Field(default=False, description="Flagged as prerelease")

    @property
    def title(self) -> str:
        """Display title, falling back to the tag when the release is unnamed."""
        return self.name or self.tag

    def to_log_context(self) -> dict[str, Any]:
        """Key/value context used when logging this release."""
        return {
            "repository": self.repository,
            "tag": self.tag,
            "published_at": self.published_at.isoformat(),
        }
