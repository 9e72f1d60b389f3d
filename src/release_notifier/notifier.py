"""
Notification delivery for the release notifier.

Defines the delivery sink interface and the Slack incoming-webhook
implementation used by the consumer loop.
"""

from typing import Protocol, runtime_checkable

import httpx
import structlog

from .config import SlackConfig
from .exceptions import DeliveryError
from .models import Release

logger = structlog.get_logger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Interface every delivery sink implements."""

    async def send(self, release: Release) -> None:
        """
        Deliver a single release notification.

        Raises:
            DeliveryError: If the notification could not be delivered
        """
        ...

    async def close(self) -> None:
        """Release any resources held by the sink."""
        ...


class SlackNotifier:
    """Delivers releases to a Slack incoming webhook."""

    def __init__(
        self, config: SlackConfig, client: httpx.AsyncClient | None = None
    ) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    def build_payload(self, release: Release) -> dict[str, str]:
        """Build the webhook payload for a release."""
        repository_url = (
            release.repository_url or f"https://github.com/{release.repository}"
        )
        release_url = release.url or repository_url
        return {
            "username": self.config.username,
            "icon_emoji": self.config.icon_emoji,
            "text": (
                f"<{repository_url}|{release.repository}>: "
                f"<{release_url}|{release.title}> released"
            ),
        }

    async def send(self, release: Release) -> None:
        """Post a release to the webhook."""
        if not self.config.hook:
            raise DeliveryError(
                "No Slack webhook configured",
                context=release.to_log_context(),
            )

        try:
            response = await self._get_client().post(
                self.config.hook, json=self.build_payload(release)
            )
        except httpx.HTTPError as e:
            raise DeliveryError(
                f"Failed to reach Slack webhook: {e}",
                context=release.to_log_context(),
            ) from e

        if not response.is_success:
            raise DeliveryError(
                f"Slack webhook responded with {response.status_code}: "
                f"{response.text}",
                status_code=response.status_code,
                context=release.to_log_context(),
            )

        logger.info("Release notification sent", **release.to_log_context())

    async def close(self) -> None:
        """Close the HTTP client if this notifier created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
