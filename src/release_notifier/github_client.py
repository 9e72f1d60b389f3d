"""
GitHub API client for the release notifier.

This module provides the release query used by the poll scheduler: given a
repository identifier it returns the repository's published releases,
newest first, or raises a QueryError.
"""

import asyncio
from datetime import UTC, datetime
from itertools import islice
from typing import Any

import structlog
from github import Auth, Github, GithubException
from github.GitRelease import GitRelease

from .config import Settings
from .exceptions import QueryError
from .models import Release

logger = structlog.get_logger(__name__)


def split_repository(full_name: str) -> tuple[str, str]:
    """
    Split an ``owner/name`` identifier.

    Raises:
        QueryError: If the identifier is not of the form owner/name
    """
    owner, sep, name = full_name.strip().partition("/")
    if not sep or not owner or not name or "/" in name:
        raise QueryError(
            f"Invalid repository identifier: {full_name!r} (expected owner/name)",
            repository=full_name,
        )
    return owner, name


class GitHubClient:
    """
    GitHub API client for release queries.

    Wraps a lazily created PyGithub instance. PyGithub is synchronous, so
    queries run in a worker thread to keep the event loop responsive.
    """

    def __init__(self, settings: Settings) -> None:
        """
        Initialize the GitHub client.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self._github: Github | None = None

    def _get_github_instance(self) -> Github:
        """Get the GitHub instance, creating it on first use."""
        if self._github is None:
            kwargs: dict[str, Any] = {"base_url": self.settings.github_api_url}
            if self.settings.github_token:
                kwargs["auth"] = Auth.Token(self.settings.github_token)
                logger.info("GitHub client created (token mode)")
            else:
                logger.warning(
                    "No GitHub token configured, using anonymous access "
                    "with reduced rate limits"
                )
            self._github = Github(**kwargs)
        return self._github

    async def get_releases(self, full_name: str) -> list[Release]:
        """
        Get the most recent releases of a repository.

        Args:
            full_name: Repository full name (owner/repo)

        Returns:
            Published releases ordered newest first

        Raises:
            QueryError: If the repository cannot be queried
        """
        split_repository(full_name)
        releases = await asyncio.to_thread(self._fetch_releases, full_name)

        logger.debug(
            "Retrieved releases",
            repository=full_name,
            count=len(releases),
        )
        return releases

    def _fetch_releases(self, full_name: str) -> list[Release]:
        try:
            repo = self._get_github_instance().get_repo(full_name)
            raw_releases = list(
                islice(repo.get_releases(), self.settings.releases_per_query)
            )
            repository_url = repo.html_url
        except GithubException as e:
            raise QueryError(
                f"Failed to get releases for {full_name}: {e}",
                repository=full_name,
                status_code=e.status,
            ) from e
        except OSError as e:
            raise QueryError(
                f"Failed to reach GitHub for {full_name}: {e}",
                repository=full_name,
            ) from e

        releases = []
        for raw in raw_releases:
            release = self._to_release(full_name, repository_url, raw)
            if release is not None:
                releases.append(release)

        # The API orders by creation date; publication order is what counts.
        releases.sort(key=lambda r: r.published_at, reverse=True)
        return releases

    def _to_release(
        self, full_name: str, repository_url: str, raw: GitRelease
    ) -> Release | None:
        """Convert a PyGithub release, skipping drafts and filtered prereleases."""
        if raw.draft or raw.published_at is None:
            return None
        if raw.prerelease and not self.settings.include_prereleases:
            return None

        published_at: datetime = raw.published_at
        if published_at.tzinfo is None:
            published_at = published_at.replace(tzinfo=UTC)

        return Release(
            repository=full_name,
            tag=raw.tag_name,
            name=raw.title or "",
            body=raw.body or "",
            url=raw.html_url,
            repository_url=repository_url,
            published_at=published_at,
            prerelease=raw.prerelease,
        )

    def close(self) -> None:
        """Release the underlying HTTP session."""
        if self._github is not None:
            self._github.close()
            self._github = None
