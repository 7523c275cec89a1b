"""Periodic backlog gauge for the active run."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from typing import Callable, Optional

from core import DownloadBacklog, RunState


logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 3.0


class BacklogMonitor:
    """Overwrites ``state.downloads_in_queue`` every ``interval`` seconds.

    Polls run sequentially inside one task, so a slow count query delays the
    next tick instead of stacking up. The gauge is stale-tolerant: a failed
    poll leaves the previous value in place.
    """

    def __init__(
        self,
        state: RunState,
        backlog: DownloadBacklog,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_tick: Optional[Callable[[], object]] = None,
    ) -> None:
        self._state = state
        self._backlog = backlog
        self._interval = float(interval)
        self._on_tick = on_tick
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the polling task on the running loop."""
        if self.running:
            return
        self.ticks = 0
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="backlog-monitor")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def poll_once(self) -> int:
        count = self._backlog.count_unprocessed()
        if inspect.isawaitable(count):
            count = await count
        self._state.downloads_in_queue = int(count or 0)
        return self._state.downloads_in_queue

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.poll_once()
            except Exception as exc:
                logger.warning("backlog_poll_failed error=%s", exc)
                continue
            self.ticks += 1
            if self._on_tick is not None:
                self._on_tick()
