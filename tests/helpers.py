"""
Shared builders and fakes for release notifier tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from release_notifier.exceptions import DeliveryError, QueryError
from release_notifier.models import Release

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def make_release(repository: str, index: int, **kwargs: Any) -> Release:
    """Build release number ``index``; higher numbers are published later."""
    data: dict[str, Any] = {
        "repository": repository,
        "tag": f"v{index}.0.0",
        "name": f"Release {index}",
        "url": f"https://github.com/{repository}/releases/tag/v{index}.0.0",
        "repository_url": f"https://github.com/{repository}",
        "published_at": BASE_TIME + timedelta(days=index),
    }
    data.update(kwargs)
    return Release(**data)


def newest_first(repository: str, *indexes: int) -> list[Release]:
    """Build a query result for the given release numbers, newest first."""
    return [make_release(repository, i) for i in sorted(indexes, reverse=True)]


class FakeReleaseSource:
    """Release source returning scripted results per repository.

    Each repository maps to a list of results consumed one per query; the
    last result repeats. A result is a release list or an exception.
    """

    def __init__(self, results: dict[str, list[Any]] | None = None):
        self.results = results or {}
        self.calls: list[str] = []

    async def get_releases(self, full_name: str) -> list[Release]:
        self.calls.append(full_name)
        scripted = self.results.get(full_name)
        if not scripted:
            raise QueryError(f"Unknown repository {full_name}", repository=full_name)
        result = scripted.pop(0) if len(scripted) > 1 else scripted[0]
        if isinstance(result, Exception):
            raise result
        return list(result)

    def close(self) -> None:
        pass


class RecordingNotifier:
    """Notifier that records deliveries and can fail selected tags."""

    def __init__(self, fail_tags: set[str] | None = None):
        self.fail_tags = fail_tags or set()
        self.attempted: list[Release] = []
        self.delivered: list[Release] = []
        self.closed = False

    async def send(self, release: Release) -> None:
        self.attempted.append(release)
        if release.tag in self.fail_tags:
            raise DeliveryError(f"Webhook rejected {release.tag}", status_code=500)
        self.delivered.append(release)

    async def close(self) -> None:
        self.closed = True

