from __future__ import annotations

import asyncio

import pytest

from core import RunState
from orchestrator.backlog import BacklogMonitor


class _Backlog:
    def __init__(self, counts):
        self._counts = list(counts)
        self.calls = 0

    async def count_unprocessed(self) -> int:
        self.calls += 1
        value = self._counts[min(self.calls - 1, len(self._counts) - 1)]
        if isinstance(value, Exception):
            raise value
        return value


class _SyncBacklog:
    def count_unprocessed(self) -> int:
        return 11


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_poll_once_overwrites_gauge() -> None:
    state = RunState(downloads_in_queue=99)
    monitor = BacklogMonitor(state, _Backlog([4]))

    assert await monitor.poll_once() == 4
    assert state.downloads_in_queue == 4


@pytest.mark.asyncio
async def test_poll_once_accepts_sync_count() -> None:
    state = RunState()
    monitor = BacklogMonitor(state, _SyncBacklog())

    await monitor.poll_once()

    assert state.downloads_in_queue == 11


@pytest.mark.asyncio
async def test_monitor_ticks_until_stopped() -> None:
    state = RunState()
    ticks = []
    backlog = _Backlog([5, 3, 1])
    monitor = BacklogMonitor(state, backlog, interval=0.01, on_tick=lambda: ticks.append(state.downloads_in_queue))

    monitor.start()
    assert monitor.running is True
    await _wait_for(lambda: len(ticks) >= 3)
    await monitor.stop()

    assert monitor.running is False
    assert ticks[:3] == [5, 3, 1]
    calls_after_stop = backlog.calls
    await asyncio.sleep(0.05)
    assert backlog.calls == calls_after_stop


@pytest.mark.asyncio
async def test_failed_poll_keeps_previous_value() -> None:
    state = RunState()
    seen = []
    backlog = _Backlog([6, RuntimeError("db busy"), 2])
    monitor = BacklogMonitor(state, backlog, interval=0.01, on_tick=lambda: seen.append(state.downloads_in_queue))

    monitor.start()
    await _wait_for(lambda: len(seen) >= 2)
    await monitor.stop()

    assert seen[:2] == [6, 2]
    assert backlog.calls >= 3
    assert monitor.ticks == len(seen)


@pytest.mark.asyncio
async def test_stop_without_start_is_noop() -> None:
    monitor = BacklogMonitor(RunState(), _Backlog([0]))
    await monitor.stop()
    await monitor.stop()
    assert monitor.running is False
