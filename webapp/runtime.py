"""Shared runtime singletons for web/CLI entrypoints."""

from __future__ import annotations

from collections import deque
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

from config import get_settings
from orchestrator.notification import Notifier
from orchestrator.service import RunOrchestrator
from orchestrator.streamer import get_default_streamer
from sources import UpstreamSession, build_item_fetcher
from storage.memory import InMemoryDownloadQueue, InMemorySourceGroupStore, load_manifest
from utils.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


class EventLog:
    """Bounded buffer of progress snapshots, used as the run's progress sender."""

    def __init__(self, maxlen: int = 200) -> None:
        self._events: Deque[Dict[str, Any]] = deque(maxlen=max(1, int(maxlen)))
        self._lock = Lock()

    def __call__(self, snapshot: Dict[str, Any]) -> None:
        with self._lock:
            self._events.append(dict(snapshot))

    def list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(item) for item in self._events]


_SETTINGS = get_settings()
_SESSION = UpstreamSession(_SETTINGS.upstream)
_QUEUE = InMemoryDownloadQueue(fetch=build_item_fetcher(_SETTINGS.downloader.output_dir, _SESSION))
_STORE = InMemorySourceGroupStore()
_NOTIFIER = Notifier(out_dir=_SETTINGS.notification.out_dir, history_size=_SETTINGS.notification.history_size)
_EVENTS = EventLog(maxlen=_SETTINGS.web.event_buffer)
_ORCHESTRATOR = RunOrchestrator(
    store=_STORE,
    downloader=_QUEUE,
    intake=_QUEUE,
    backlog=_QUEUE,
    session=_SESSION,
    notifier=_NOTIFIER,
    streamer=get_default_streamer(),
    settings=_SETTINGS.downloader,
)


def load_groups(
    path: str | Path,
    *,
    store: Optional[InMemorySourceGroupStore] = None,
    queue: Optional[InMemoryDownloadQueue] = None,
) -> int:
    """Register the source groups of a JSON manifest with the served store."""
    manifest = Path(path)
    if not manifest.is_file():
        raise ConfigurationError("Manifest file not found", {"path": str(manifest)})
    target = store if store is not None else _STORE
    before = len(target)
    load_manifest(manifest, queue if queue is not None else _QUEUE, target)
    added = len(target) - before
    logger.info("manifest_loaded path=%s groups=%s", manifest, added)
    return added


if _SETTINGS.web.manifest:
    load_groups(_SETTINGS.web.manifest)


def get_orchestrator() -> RunOrchestrator:
    return _ORCHESTRATOR


def get_notifier() -> Notifier:
    return _NOTIFIER


def get_event_log() -> EventLog:
    return _EVENTS


def get_store() -> InMemorySourceGroupStore:
    return _STORE


def get_queue() -> InMemoryDownloadQueue:
    return _QUEUE
