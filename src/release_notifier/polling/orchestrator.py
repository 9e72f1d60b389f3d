"""
Polling orchestrator for the release notifier.

This module drives the periodic release query and change detection pass over
every watched repository, on a steady wall-clock interval.
"""

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog

from ..config import PollingConfig
from ..exceptions import QueryError
from ..models import Release
from .emitter import ReleaseEmitter
from .state_tracker import ChangeDetector

logger = structlog.get_logger(__name__)


class ReleaseSource(Protocol):
    """Anything able to list a repository's releases newest first."""

    async def get_releases(self, full_name: str) -> list[Release]: ...


class PassResult:
    """Outcome of one polling pass."""

    def __init__(self, started_at: datetime):
        self.started_at = started_at
        self.repositories = 0
        self.failed: list[str] = []
        self.emitted: list[Release] = []
        self.duration_seconds = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "repositories": self.repositories,
            "failed": len(self.failed),
            "emitted": len(self.emitted),
            "duration_seconds": round(self.duration_seconds, 3),
        }


class PollingOrchestrator:
    """
    Orchestrates polling passes across the watched repositories.

    The first pass runs immediately. Later passes start on a fixed grid
    anchored at the first pass start, so a slow pass delays at most one tick;
    ticks missed while a pass was running collapse into a single pass.
    """

    def __init__(
        self,
        source: ReleaseSource,
        detector: ChangeDetector,
        emitter: ReleaseEmitter,
        repositories: Sequence[str],
        config: PollingConfig,
        shutdown_event: asyncio.Event | None = None,
    ):
        """
        Initialize the polling orchestrator.

        Args:
            source: Release query client
            detector: Change detector owning the watermarks
            emitter: Conduit new releases are emitted onto
            repositories: Repository identifiers to watch
            config: Polling configuration
            shutdown_event: Event that stops scheduling new passes when set
        """
        self.source = source
        self.detector = detector
        self.emitter = emitter
        self.repositories = tuple(repositories)
        self.config = config
        self.shutdown_event = shutdown_event or asyncio.Event()

        self.is_running_flag = False
        self.pass_count = 0
        self.last_pass: PassResult | None = None

    def is_running(self) -> bool:
        """Check if polling is currently active."""
        return self.is_running_flag

    def stop(self) -> None:
        """Stop scheduling new passes; a pass in progress is allowed to finish."""
        self.shutdown_event.set()

    async def run(self) -> None:
        """Run polling passes until the shutdown event is set."""
        if self.is_running_flag:
            logger.warning("Polling already running")
            return

        self.is_running_flag = True
        logger.info(
            "Starting polling orchestrator",
            interval_seconds=self.config.interval_seconds,
            repositories=len(self.repositories),
            first_observation_policy=self.config.first_observation_policy.value,
            max_concurrent_queries=self.config.max_concurrent_queries,
        )
        if not self.repositories:
            logger.warning("No repositories configured for polling")

        try:
            await self._polling_loop()
        except asyncio.CancelledError:
            logger.info("Polling cancelled")
            raise
        finally:
            self.is_running_flag = False
            logger.info(
                "Polling orchestrator stopped",
                passes=self.pass_count,
                watermarks=self.detector.store.snapshot(),
            )

    async def _polling_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.config.interval_seconds
        next_tick = loop.time()

        while not self.shutdown_event.is_set():
            try:
                await self.run_pass()
            except Exception as e:
                logger.error("Error in polling pass", error=str(e), exc_info=True)

            now = loop.time()
            next_tick += interval
            if next_tick <= now:
                skipped = int((now - next_tick) // interval)
                next_tick += skipped * interval
                logger.warning(
                    "Polling pass overran interval, coalescing ticks",
                    skipped_ticks=skipped,
                    interval_seconds=interval,
                )

            delay = max(0.0, next_tick - now)
            if await self._wait_for_shutdown(delay):
                break

    async def _wait_for_shutdown(self, delay: float) -> bool:
        """Sleep until the next tick; return True if shutdown was requested."""
        try:
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def run_pass(self) -> PassResult:
        """Query every repository once and emit newly detected releases."""
        loop = asyncio.get_running_loop()
        started = loop.time()
        result = PassResult(datetime.now(UTC))
        result.repositories = len(self.repositories)

        logger.info(
            "Polling pass started",
            timestamp=result.started_at.isoformat(),
            repositories=result.repositories,
        )

        semaphore = asyncio.Semaphore(self.config.max_concurrent_queries)

        async def poll_single_repo(repo_name: str) -> None:
            async with semaphore:
                await self._poll_repository(repo_name, result)

        if self.repositories:
            await asyncio.gather(
                *(poll_single_repo(repo_name) for repo_name in self.repositories)
            )

        result.duration_seconds = loop.time() - started
        self.pass_count += 1
        self.last_pass = result

        logger.info("Polling pass completed", **result.to_dict())
        return result

    async def _poll_repository(self, repo_name: str, result: PassResult) -> None:
        """Query one repository and hand its releases to the change detector."""
        try:
            releases = await self.source.get_releases(repo_name)
        except QueryError as e:
            logger.warning(
                "Failed to query releases",
                repository=repo_name,
                status_code=e.status_code,
                error=str(e),
            )
            result.failed.append(repo_name)
            return
        except Exception as e:
            logger.error(
                "Unexpected error querying releases",
                repository=repo_name,
                error=str(e),
                exc_info=True,
            )
            result.failed.append(repo_name)
            return

        try:
            emitted = await self.detector.process(
                repo_name, releases, self.emitter.emit
            )
        except Exception as e:
            logger.error(
                "Failed to process releases",
                repository=repo_name,
                error=str(e),
                exc_info=True,
            )
            result.failed.append(repo_name)
            return

        result.emitted.extend(emitted)
