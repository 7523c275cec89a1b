"""Run state model and collaborator contracts for scan-and-download runs."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Union
from pathlib import Path

from pydantic import BaseModel, Field, PrivateAttr


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunPhase(str, Enum):
    """Lifecycle phase of the process-wide run."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


class SourceRef(BaseModel):
    """Name and id of the source group currently being scanned."""

    id: str
    name: str


class DownloadSlot(BaseModel):
    """One in-flight download, as exposed to observers."""

    item_id: str
    label: str = ""
    progress: float = 0.0
    started_at: datetime = Field(default_factory=_utcnow)


class RunState(BaseModel):
    """Mutable record of the current run.

    A single instance lives for the whole process and is mutated in place by
    every run, so observers holding a reference always see live data. Field
    ownership: the scanner writes ``new_posts_scanned``, ``finished_scanning``
    and ``current_source``; the download coordinator writes
    ``active_downloads``; the backlog monitor writes ``downloads_in_queue``;
    the orchestrator owns ``phase`` and finalize. ``should_stop`` may be set
    by anyone at any time.
    """

    phase: RunPhase = RunPhase.IDLE
    should_stop: bool = False
    finished_scanning: bool = False
    new_posts_scanned: int = 0
    downloads_in_queue: int = 0
    current_source: Optional[SourceRef] = None
    active_downloads: List[Optional[DownloadSlot]] = Field(default_factory=list)
    last_error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    _lock: Lock = PrivateAttr(default_factory=Lock)

    @classmethod
    def with_slots(cls, capacity: int) -> "RunState":
        return cls(active_downloads=[None] * max(1, int(capacity)))

    def is_running(self) -> bool:
        return self.phase == RunPhase.RUNNING

    def try_begin_run(self) -> bool:
        """Atomically move into RUNNING. Returns False, touching nothing, if already running."""
        with self._lock:
            if self.phase == RunPhase.RUNNING:
                return False
            self.phase = RunPhase.RUNNING
            self.should_stop = False
            self.last_error = None
            self.started_at = _utcnow()
            self.finished_at = None
            return True

    def request_stop(self) -> None:
        self.should_stop = True

    def set_current_source(self, group_id: Any, name: Any) -> None:
        self.current_source = SourceRef(id=str(group_id), name=str(name))

    def finalize(self) -> None:
        """Reset to the terminal state after a run, successful or not."""
        with self._lock:
            self.phase = RunPhase.FINISHED
            self.current_source = None
            self.downloads_in_queue = 0
            self.active_downloads = [None] * len(self.active_downloads)
            self.finished_at = _utcnow()

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready copy for observers."""
        with self._lock:
            return self.model_dump(mode="json")


class Item(Protocol):
    """A discovered item. ``persist`` is idempotent per the item's own dedup rules."""

    id: str

    async def persist(self) -> Any:
        ...


class SourceGroup(Protocol):
    id: str
    name: str

    def get_item_generator(self, state: RunState) -> AsyncIterator[Item]:
        ...


class SourceGroupStore(Protocol):
    async def fetch_all(self) -> Sequence[SourceGroup]:
        ...


class DownloadBacklog(Protocol):
    async def count_unprocessed(self) -> int:
        ...


class DownloadIntake(Protocol):
    def set_accepting_new_items(self, accepting: bool) -> None:
        ...


class DownloadCoordinator(Protocol):
    async def download_all(self, state: RunState) -> None:
        ...


class SessionDisposer(Protocol):
    def reset_session(self) -> None:
        ...


class ErrorNotifier(Protocol):
    def report_error(self, error: BaseException) -> Any:
        ...


ProgressSender = Callable[[Dict[str, Any]], Any]
OutputRootResolver = Callable[[], Union[str, Path, Awaitable[Union[str, Path]]]]
