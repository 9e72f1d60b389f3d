"""
Tests for the polling orchestrator.

Covers pass behaviour (failure isolation, emission) and the scheduling
loop (immediate first pass, fixed-rate interval, tick coalescing, shutdown).
"""

import asyncio

import pytest

from helpers import FakeReleaseSource, newest_first
from release_notifier.config import PollingConfig
from release_notifier.exceptions import QueryError
from release_notifier.polling import (
    ChangeDetector,
    PollingOrchestrator,
    ReleaseEmitter,
    WatermarkStore,
)

ALPHA = "octo/alpha"
BETA = "octo/beta"


def build_orchestrator(source, repositories, config=None, store=None):
    store = store or WatermarkStore()
    emitter = ReleaseEmitter()
    orchestrator = PollingOrchestrator(
        source=source,
        detector=ChangeDetector(store),
        emitter=emitter,
        repositories=repositories,
        config=config or PollingConfig(interval_seconds=60),
    )
    return orchestrator, emitter, store


def drain(emitter):
    releases = []
    while emitter.pending():
        releases.append(emitter._queue.get_nowait())
    return releases


class TimedSource:
    """Source that records when each pass reaches it and can be slow."""

    def __init__(self, delays=None):
        self.delays = list(delays or [])
        self.starts = []
        self.ends = []

    async def get_releases(self, full_name):
        loop = asyncio.get_running_loop()
        self.starts.append(loop.time())
        delay = self.delays.pop(0) if self.delays else 0
        if delay:
            await asyncio.sleep(delay)
        self.ends.append(loop.time())
        return []


async def run_until(orchestrator, predicate, timeout=2.0):
    task = asyncio.create_task(orchestrator.run())
    try:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.005)
    finally:
        orchestrator.stop()
        await asyncio.wait_for(task, timeout=timeout)


class TestPollingPass:
    """Test a single polling pass."""

    @pytest.mark.asyncio
    async def test_detects_new_releases_on_second_pass(self):
        source = FakeReleaseSource(
            {ALPHA: [newest_first(ALPHA, 3, 2, 1), newest_first(ALPHA, 5, 4, 3, 2, 1)]}
        )
        orchestrator, emitter, store = build_orchestrator(source, [ALPHA])

        first = await orchestrator.run_pass()
        assert first.emitted == []
        assert emitter.pending() == 0

        second = await orchestrator.run_pass()

        assert [r.tag for r in second.emitted] == ["v4.0.0", "v5.0.0"]
        assert [r.tag for r in drain(emitter)] == ["v4.0.0", "v5.0.0"]
        assert store.get(ALPHA).tag == "v5.0.0"

    @pytest.mark.asyncio
    async def test_query_failure_isolated_to_repository(self):
        source = FakeReleaseSource(
            {
                ALPHA: [
                    newest_first(ALPHA, 1),
                    QueryError("boom", repository=ALPHA, status_code=502),
                ],
                BETA: [newest_first(BETA, 1), newest_first(BETA, 2, 1)],
            }
        )
        orchestrator, emitter, store = build_orchestrator(source, [ALPHA, BETA])
        await orchestrator.run_pass()

        result = await orchestrator.run_pass()

        assert result.failed == [ALPHA]
        assert [r.tag for r in drain(emitter)] == ["v2.0.0"]
        assert store.get(ALPHA).tag == "v1.0.0"
        assert store.get(BETA).tag == "v2.0.0"

    @pytest.mark.asyncio
    async def test_failed_repository_retried_next_pass(self):
        source = FakeReleaseSource(
            {
                ALPHA: [
                    newest_first(ALPHA, 1),
                    QueryError("timeout", repository=ALPHA),
                    newest_first(ALPHA, 2, 1),
                ]
            }
        )
        orchestrator, emitter, _ = build_orchestrator(source, [ALPHA])

        await orchestrator.run_pass()
        await orchestrator.run_pass()
        result = await orchestrator.run_pass()

        assert result.failed == []
        assert [r.tag for r in drain(emitter)] == ["v2.0.0"]
        assert source.calls == [ALPHA, ALPHA, ALPHA]

    @pytest.mark.asyncio
    async def test_unexpected_error_does_not_abort_pass(self):
        source = FakeReleaseSource(
            {ALPHA: [ValueError("malformed")], BETA: [newest_first(BETA, 1)]}
        )
        orchestrator, _, store = build_orchestrator(source, [ALPHA, BETA])

        result = await orchestrator.run_pass()

        assert result.failed == [ALPHA]
        assert store.get(BETA).tag == "v1.0.0"

    @pytest.mark.asyncio
    async def test_concurrent_queries(self):
        source = FakeReleaseSource(
            {ALPHA: [newest_first(ALPHA, 1)], BETA: [newest_first(BETA, 1)]}
        )
        config = PollingConfig(interval_seconds=60, max_concurrent_queries=2)
        orchestrator, _, store = build_orchestrator(source, [ALPHA, BETA], config)

        result = await orchestrator.run_pass()

        assert result.failed == []
        assert sorted(source.calls) == [ALPHA, BETA]
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_empty_registry(self):
        source = FakeReleaseSource()
        orchestrator, emitter, _ = build_orchestrator(source, [])

        result = await orchestrator.run_pass()

        assert result.repositories == 0
        assert result.failed == []
        assert emitter.pending() == 0
        assert source.calls == []


class TestPollingLoop:
    """Test scheduling behaviour of the polling loop."""

    @pytest.mark.asyncio
    async def test_first_pass_runs_immediately(self):
        source = TimedSource()
        orchestrator, _, _ = build_orchestrator(
            source, [ALPHA], PollingConfig(interval_seconds=60)
        )
        loop = asyncio.get_running_loop()
        started = loop.time()

        await run_until(orchestrator, lambda: len(source.starts) >= 1)

        assert source.starts[0] - started < 0.5
        assert orchestrator.pass_count == 1
        assert not orchestrator.is_running()

    @pytest.mark.asyncio
    async def test_interval_measured_from_pass_start(self):
        interval = 0.2
        source = TimedSource(delays=[0.1])
        orchestrator, _, _ = build_orchestrator(
            source, [ALPHA], PollingConfig(interval_seconds=interval)
        )

        await run_until(orchestrator, lambda: len(source.starts) >= 2)

        gap = source.starts[1] - source.starts[0]
        assert gap >= interval - 0.01
        # Sleeping a full interval after the slow pass would give ~0.3s.
        assert gap < interval + 0.08

    @pytest.mark.asyncio
    async def test_missed_ticks_are_coalesced(self):
        interval = 0.05
        # First pass overruns two ticks.
        source = TimedSource(delays=[0.13])
        orchestrator, _, _ = build_orchestrator(
            source, [ALPHA], PollingConfig(interval_seconds=interval)
        )

        await run_until(orchestrator, lambda: len(source.starts) >= 3)

        # One catch-up pass straight away, then back on the grid.
        assert source.starts[1] - source.ends[0] < 0.03
        assert source.starts[2] - source.starts[0] >= 3 * interval - 0.01

    @pytest.mark.asyncio
    async def test_empty_registry_keeps_running(self):
        source = FakeReleaseSource()
        orchestrator, emitter, _ = build_orchestrator(
            source, [], PollingConfig(interval_seconds=0.01)
        )

        await run_until(orchestrator, lambda: orchestrator.pass_count >= 3)

        assert emitter.pending() == 0

    @pytest.mark.asyncio
    async def test_stop_prevents_new_passes(self):
        source = TimedSource()
        orchestrator, _, _ = build_orchestrator(
            source, [ALPHA], PollingConfig(interval_seconds=60)
        )
        orchestrator.stop()

        await asyncio.wait_for(orchestrator.run(), timeout=1)

        assert source.starts == []
        assert orchestrator.pass_count == 0

    @pytest.mark.asyncio
    async def test_failing_source_does_not_stop_loop(self):
        source = FakeReleaseSource({ALPHA: [QueryError("down", repository=ALPHA)]})
        orchestrator, _, _ = build_orchestrator(
            source, [ALPHA], PollingConfig(interval_seconds=0.01)
        )

        await run_until(orchestrator, lambda: orchestrator.pass_count >= 3)

        assert orchestrator.last_pass.failed == [ALPHA]
