"""
Release state tracker for the release notifier polling system.

This module holds the per-repository watermarks and performs change
detection: given a fresh newest-first release list it works out which
releases have not been reported yet and hands them to the emitter.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Any

import structlog

from ..config import FirstObservationPolicy
from ..models import Release

logger = structlog.get_logger(__name__)

EmitCallback = Callable[[Release], Awaitable[None]]


class Watermark:
    """Newest release already reported for one repository."""

    def __init__(self, repository: str):
        self.repository = repository
        self.tag: str | None = None
        self.published_at: datetime | None = None
        self.emitted_tags: set[str] = set()

    @property
    def is_empty(self) -> bool:
        """True until the repository has been observed once."""
        return self.tag is None

    def advance(self, release: Release, emitted: bool = True) -> None:
        """Move the watermark forward to a release; never moves backwards."""
        if emitted:
            self.emitted_tags.add(release.tag)
        if self.published_at is not None and release.published_at < self.published_at:
            return
        self.tag = release.tag
        self.published_at = release.published_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and inspection."""
        return {
            "repository": self.repository,
            "tag": self.tag,
            "published_at": (
                self.published_at.isoformat() if self.published_at else None
            ),
            "emitted_count": len(self.emitted_tags),
        }


class WatermarkStore:
    """
    Explicitly owned map of repository watermarks.

    Watermarks are created lazily on first access. Each repository has its
    own lock so evaluations of the same repository never overlap, while
    different repositories proceed independently.
    """

    def __init__(self) -> None:
        self._watermarks: dict[str, Watermark] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, repository: str) -> Watermark:
        """Get or create the watermark for a repository."""
        if repository not in self._watermarks:
            self._watermarks[repository] = Watermark(repository)
        return self._watermarks[repository]

    def lock(self, repository: str) -> asyncio.Lock:
        """Get the evaluation lock for a repository."""
        if repository not in self._locks:
            self._locks[repository] = asyncio.Lock()
        return self._locks[repository]

    def __contains__(self, repository: object) -> bool:
        return repository in self._watermarks

    def __len__(self) -> int:
        return len(self._watermarks)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Get a summary of all watermarks for monitoring."""
        return {name: mark.to_dict() for name, mark in self._watermarks.items()}


class ChangeDetector:
    """
    Filters query results down to releases that have not been reported.

    The watermark for a release is advanced only after the release has been
    handed to the emit callback, so a failure part-way through a batch can
    cause a repeat notification but never a lost one.
    """

    def __init__(
        self,
        store: WatermarkStore,
        policy: FirstObservationPolicy = FirstObservationPolicy.BASELINE,
    ):
        """
        Initialize the change detector.

        Args:
            store: Watermark store owned by the caller
            policy: What to emit on the first observation of a repository
        """
        self.store = store
        self.policy = policy

    def detect(self, repository: str, releases: Sequence[Release]) -> list[Release]:
        """
        Compute the releases newer than the repository's watermark.

        Args:
            repository: Repository identifier
            releases: Query result ordered newest first

        Returns:
            Unreported releases ordered oldest first
        """
        if not releases:
            return []

        watermark = self.store.get(repository)

        if watermark.is_empty:
            if self.policy is FirstObservationPolicy.LATEST:
                return [releases[0]]
            if self.policy is FirstObservationPolicy.ALL:
                return self._unique_oldest_first(releases, watermark)
            return []

        fresh: list[Release] = []
        for release in releases:
            if release.tag == watermark.tag:
                break
            if (
                watermark.published_at is not None
                and release.published_at <= watermark.published_at
            ):
                # Watermark release missing from this page; fall back to time.
                continue
            fresh.append(release)

        return self._unique_oldest_first(fresh, watermark)

    @staticmethod
    def _unique_oldest_first(
        releases: Sequence[Release], watermark: Watermark
    ) -> list[Release]:
        seen = set(watermark.emitted_tags)
        result = []
        for release in reversed(releases):
            if release.tag in seen:
                continue
            seen.add(release.tag)
            result.append(release)
        return result

    async def process(
        self, repository: str, releases: Sequence[Release], emit: EmitCallback
    ) -> list[Release]:
        """
        Detect new releases, emit them in order and advance the watermark.

        Args:
            repository: Repository identifier
            releases: Query result ordered newest first
            emit: Coroutine function handing a release to the emitter

        Returns:
            The releases that were emitted, oldest first
        """
        async with self.store.lock(repository):
            watermark = self.store.get(repository)
            first_observation = watermark.is_empty
            fresh = self.detect(repository, releases)

            for release in fresh:
                await emit(release)
                watermark.advance(release)

            if first_observation and releases:
                # Baseline on the newest release even when nothing was emitted.
                watermark.advance(releases[0], emitted=False)
                logger.info(
                    "Release baseline recorded",
                    repository=repository,
                    tag=watermark.tag,
                    policy=self.policy.value,
                    emitted=len(fresh),
                )
            elif fresh:
                logger.info(
                    "New releases detected",
                    repository=repository,
                    tags=[release.tag for release in fresh],
                    watermark=watermark.tag,
                )
            else:
                logger.debug(
                    "No new release for repository",
                    repository=repository,
                    watermark=watermark.tag,
                )

            return fresh
