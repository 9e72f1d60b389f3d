"""
Notification emitter for the release notifier polling system.

An ordered conduit between the poll scheduler (producer) and the delivery
loop (consumer). Nothing placed on the conduit is ever dropped: a bounded
conduit blocks producers until the consumer catches up.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import cast

import structlog

from ..models import Release

logger = structlog.get_logger(__name__)

_CLOSED = object()


class EmitterClosedError(RuntimeError):
    """Raised when emitting onto a closed emitter."""


class ReleaseEmitter:
    """Ordered, single-consumer conduit of newly detected releases."""

    def __init__(self, maxsize: int = 0):
        """
        Initialize the emitter.

        Args:
            maxsize: Maximum number of pending releases (0 for unbounded)
        """
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._drained = False
        self.emitted_count = 0

    def pending(self) -> int:
        """Number of releases emitted but not yet consumed."""
        return self._queue.qsize()

    async def emit(self, release: Release) -> None:
        """Place a release on the conduit, waiting for room if bounded."""
        if self._closed:
            raise EmitterClosedError("Cannot emit onto a closed emitter")
        await self._queue.put(release)
        self.emitted_count += 1
        logger.debug("Release emitted", **release.to_log_context())

    async def close(self) -> None:
        """Mark end of stream; the consumer drains pending releases first."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    async def get(self) -> Release | None:
        """Wait for the next release, or None once the stream is closed."""
        if self._drained:
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            self._drained = True
            return None
        return cast(Release, item)

    async def __aiter__(self) -> AsyncIterator[Release]:
        while True:
            release = await self.get()
            if release is None:
                return
            yield release
