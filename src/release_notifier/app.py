"""
Application wiring for the release notifier daemon.

The app runs two tasks: the polling orchestrator, which emits newly
detected releases, and the delivery loop, which sends each emitted release
to the notifier in emission order.
"""

import asyncio
import signal

import structlog

from .config import Settings
from .exceptions import ConfigurationError, DeliveryError
from .github_client import GitHubClient
from .notifier import Notifier, SlackNotifier
from .polling import ChangeDetector, PollingOrchestrator, ReleaseEmitter, WatermarkStore
from .repositories import load_repositories

logger = structlog.get_logger(__name__)


class ReleaseNotifierApp:
    """Main application class."""

    def __init__(
        self,
        settings: Settings,
        github_client: GitHubClient | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        """
        Initialize the application.

        Args:
            settings: Application settings
            github_client: Release query client (created from settings if omitted)
            notifier: Delivery sink (Slack webhook if omitted)
        """
        self.settings = settings
        self.github_client = github_client
        self.notifier = notifier
        self.repositories: list[str] = []
        self.watermarks = WatermarkStore()
        self.emitter: ReleaseEmitter | None = None
        self.polling_orchestrator: PollingOrchestrator | None = None
        self._shutdown_event = asyncio.Event()
        self.delivered_count = 0
        self.failed_delivery_count = 0

    def initialize(self) -> None:
        """Initialize all application components."""
        logger.info("Initializing release notifier")

        self.repositories = load_repositories(
            self.settings.repository_list, self.settings.repositories_file
        )
        logger.info(
            "Repository registry loaded",
            count=len(self.repositories),
            repositories=self.repositories,
        )

        if not self.settings.has_delivery_target:
            error = ConfigurationError(
                "Missing Slack webhook URL; cannot create Slack notifications"
            )
            logger.error(str(error), code=error.code)

        if self.github_client is None:
            self.github_client = GitHubClient(self.settings)
        if self.notifier is None:
            self.notifier = SlackNotifier(self.settings.slack_config)

        config = self.settings.polling_config
        self.emitter = ReleaseEmitter(maxsize=config.queue_maxsize)
        detector = ChangeDetector(self.watermarks, config.first_observation_policy)
        self.polling_orchestrator = PollingOrchestrator(
            source=self.github_client,
            detector=detector,
            emitter=self.emitter,
            repositories=self.repositories,
            config=config,
            shutdown_event=self._shutdown_event,
        )

    async def run(self) -> None:
        """Run polling and delivery until shutdown, then drain pending releases."""
        if self.polling_orchestrator is None or self.emitter is None:
            raise RuntimeError("Application not initialized")

        consumer = asyncio.create_task(self.deliver_releases())
        try:
            await self.polling_orchestrator.run()
        finally:
            await self.emitter.close()
            await consumer
            await self._close_resources()

        logger.info(
            "Release notifier stopped",
            delivered=self.delivered_count,
            failed=self.failed_delivery_count,
        )

    async def deliver_releases(self) -> None:
        """Consume emitted releases and deliver them one at a time."""
        if self.emitter is None or self.notifier is None:
            raise RuntimeError("Application not initialized")

        logger.info("Waiting for new releases")
        async for release in self.emitter:
            try:
                await self.notifier.send(release)
                self.delivered_count += 1
            except DeliveryError as e:
                self.failed_delivery_count += 1
                logger.warning(
                    "Failed to send release to messenger",
                    error=str(e),
                    status_code=e.status_code,
                    **release.to_log_context(),
                )
            except Exception as e:
                self.failed_delivery_count += 1
                logger.error(
                    "Unexpected error sending release",
                    error=str(e),
                    exc_info=True,
                    **release.to_log_context(),
                )

    def stop(self) -> None:
        """Request shutdown: no new passes start, pending releases are drained."""
        if not self._shutdown_event.is_set():
            logger.info("Shutdown requested")
        self._shutdown_event.set()

    def setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, self.stop)

    async def _close_resources(self) -> None:
        if self.notifier is not None:
            try:
                await self.notifier.close()
            except Exception as e:
                logger.warning("Error closing notifier", error=str(e))
        if self.github_client is not None:
            self.github_client.close()
