"""Run orchestrator: single-flight scan-and-download lifecycle."""

from __future__ import annotations

import asyncio
import inspect
import logging
from pathlib import Path
from threading import Event, Lock, Thread
from typing import Any, List, Optional

from config import DownloaderSettings, get_downloader_settings
from core import (
    DownloadBacklog,
    DownloadCoordinator,
    DownloadIntake,
    ErrorNotifier,
    OutputRootResolver,
    ProgressSender,
    RunState,
    SessionDisposer,
    SourceGroupStore,
)
from utils.exceptions import CleanupError, RunAlreadyActiveError, RunError

from .backlog import BacklogMonitor
from .cleanup import remove_empty_directories
from .notification import Notifier
from .scanner import scan_all
from .streamer import ProgressStreamer, get_default_streamer


logger = logging.getLogger(__name__)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class RunOrchestrator:
    """Starts at most one scan-and-download run at a time and always finalizes it.

    ``start_run`` admits the run synchronously and returns the live RunState;
    the body runs detached, as a task on the caller's loop when there is one,
    otherwise on a daemon thread with its own loop.
    """

    def __init__(
        self,
        *,
        store: SourceGroupStore,
        downloader: DownloadCoordinator,
        intake: DownloadIntake,
        backlog: DownloadBacklog,
        session: Optional[SessionDisposer] = None,
        notifier: Optional[ErrorNotifier] = None,
        output_root: Optional[OutputRootResolver] = None,
        streamer: Optional[ProgressStreamer] = None,
        settings: Optional[DownloaderSettings] = None,
    ) -> None:
        self._settings = settings or get_downloader_settings()
        self._streamer = streamer or get_default_streamer()
        self._store = store
        self._downloader = downloader
        self._intake = intake
        self._session = session
        self._notifier = notifier or Notifier()
        self._output_root = output_root or (lambda: self._settings.output_dir)
        self._monitor = BacklogMonitor(
            self._streamer.state,
            backlog,
            interval=self._settings.backlog_poll_interval,
            on_tick=self._streamer.publish,
        )
        self._admission = Lock()
        self._done = Event()
        self._done.set()
        self._task: Optional[asyncio.Task] = None
        self._thread: Optional[Thread] = None

    @property
    def state(self) -> RunState:
        return self._streamer.state

    @property
    def monitor(self) -> BacklogMonitor:
        return self._monitor

    def is_running(self) -> bool:
        return self.state.is_running()

    def start_run(self, progress_sender: Optional[ProgressSender] = None) -> RunState:
        """Admit and launch a run. Raises RunAlreadyActiveError if one is active."""
        state = self.state
        with self._admission:
            if not state.try_begin_run():
                raise RunAlreadyActiveError()
            # Each run owns its completion event; a finishing body never signals a newer run.
            done = Event()
            self._done = done

        logger.debug("Starting scan & download!")
        try:
            self._streamer.set_sender(progress_sender)
            self._intake.set_accepting_new_items(True)
            if self._session is not None:
                self._session.reset_session()
        except Exception as exc:
            state.last_error = str(exc)
            state.finalize()
            done.set()
            raise RunError(f"Run setup failed: {exc}") from exc

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            self._thread = None
            self._task = loop.create_task(self._run(done), name="scan-and-download")
        else:
            self._task = None
            self._thread = Thread(target=asyncio.run, args=(self._run(done),), name="scan-and-download", daemon=True)
            self._thread.start()
        return state

    def request_stop(self) -> bool:
        """Ask the active run to stop at its next check point."""
        if not self.is_running():
            return False
        self.state.request_stop()
        logger.info("Stop requested for the active run.")
        return True

    async def join(self) -> None:
        """Wait until the current run (if any) has finalized."""
        task = self._task
        if task is not None:
            await task
            return
        await asyncio.to_thread(self._done.wait)

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    async def _run(self, done: Event) -> None:
        state = self.state
        try:
            self._monitor.start()
            self._streamer.publish()
            results = await asyncio.gather(
                self._scan_then_close_intake(state),
                self._downloader.download_all(state),
                return_exceptions=True,
            )
            errors: List[BaseException] = [item for item in results if isinstance(item, BaseException)]
            for exc in errors:
                await self._report_run_error(state, exc)
        finally:
            await self._finalize(state, done)

    async def _scan_then_close_intake(self, state: RunState) -> None:
        try:
            await scan_all(state, self._store, notifier=self._notifier, settings=self._settings)
        finally:
            # No more newly discovered items; the downloader drains what it has.
            self._intake.set_accepting_new_items(False)

    async def _report_run_error(self, state: RunState, exc: BaseException) -> None:
        error = RunError(f"Scan and download failed: {exc}", cause=type(exc).__name__)
        state.last_error = error.message
        logger.error("run_failed error=%s", exc, exc_info=exc)
        await asyncio.to_thread(self._notifier.report_error, error)

    async def _prune_output(self) -> None:
        root: Optional[Path] = None
        try:
            root = Path(await _maybe_await(self._output_root()))
            removed = await remove_empty_directories(root, verbose=self._settings.test_mode)
            logger.debug("Removed %s empty directories under %s", removed, root)
        except Exception as exc:
            error = CleanupError(f"Failed removing empty directories: {exc}", path=str(root) if root else None)
            logger.error("cleanup_failed path=%s error=%s", root, exc)
            await asyncio.to_thread(self._notifier.report_error, error)

    async def _finalize(self, state: RunState, done: Event) -> None:
        await self._prune_output()
        try:
            await self._monitor.stop()
        finally:
            state.finalize()
            self._streamer.publish()
            done.set()
        logger.info(
            "run_finished new_posts=%s error=%s",
            state.new_posts_scanned,
            state.last_error or "-",
        )
