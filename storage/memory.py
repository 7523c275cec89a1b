"""In-memory source groups, item store and download queue."""

from __future__ import annotations

import asyncio
from collections import OrderedDict, deque
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, AsyncIterator, Awaitable, Callable, Deque, Dict, List, Optional, Set

from core import DownloadSlot, RunState
from utils.exceptions import StorageError


logger = logging.getLogger(__name__)

FetchFunc = Callable[["MemoryItem"], Awaitable[Any]]


@dataclass
class MemoryItem:
    """Discovered item persisted into an InMemoryDownloadQueue."""

    id: str
    group_id: str
    title: str = ""
    url: str = ""
    queue: Optional["InMemoryDownloadQueue"] = field(default=None, repr=False, compare=False)

    async def persist(self) -> bool:
        """Save once. Returns True when newly stored, False for a duplicate."""
        if self.queue is None:
            raise StorageError("Item has no backing store", {"item_id": self.id})
        return self.queue.save(self)


class InMemoryDownloadQueue:
    """Item store, download intake toggle, backlog query and reference downloader.

    Saved items stay unprocessed until downloaded. Items saved while intake is
    on are fed to a running ``download_all``; everything still unprocessed at
    the start of ``download_all`` is downloaded as the existing backlog.
    """

    def __init__(self, *, fetch: Optional[FetchFunc] = None, idle_poll: float = 0.25) -> None:
        self._items: "OrderedDict[str, MemoryItem]" = OrderedDict()
        self._processed: Set[str] = set()
        self._failed: Dict[str, str] = {}
        self._pending: Deque[str] = deque()
        self._queued: Set[str] = set()
        self._accepting = False
        self._fetch = fetch
        self._idle_poll = float(idle_poll)
        self._lock = Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wakeup: Optional[asyncio.Event] = None

    @property
    def accepting(self) -> bool:
        return self._accepting

    def save(self, item: MemoryItem) -> bool:
        with self._lock:
            if item.id in self._items:
                return False
            self._items[item.id] = item
            if self._accepting:
                self._enqueue_locked(item.id)
        self._notify()
        return True

    def set_accepting_new_items(self, accepting: bool) -> None:
        self._accepting = bool(accepting)
        self._notify()

    async def count_unprocessed(self) -> int:
        with self._lock:
            return sum(1 for item_id in self._items if item_id not in self._processed)

    def processed_ids(self) -> List[str]:
        with self._lock:
            return [item_id for item_id in self._items if item_id in self._processed]

    def failed(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._failed)

    def saved_ids(self) -> List[str]:
        with self._lock:
            return list(self._items)

    async def download_all(self, state: RunState) -> None:
        """Download the existing backlog plus newly saved items until intake closes."""
        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        with self._lock:
            for item_id in self._items:
                if item_id not in self._processed:
                    self._enqueue_locked(item_id)

        slots = max(1, len(state.active_downloads))
        try:
            await asyncio.gather(*(self._worker(state, slot) for slot in range(slots)))
        finally:
            self._loop = None
            self._wakeup = None

    def _enqueue_locked(self, item_id: str) -> None:
        if item_id in self._queued or item_id in self._processed:
            return
        self._pending.append(item_id)
        self._queued.add(item_id)

    def _next(self) -> Optional[MemoryItem]:
        with self._lock:
            while self._pending:
                item_id = self._pending.popleft()
                self._queued.discard(item_id)
                if item_id not in self._processed:
                    return self._items[item_id]
            return None

    def _notify(self) -> None:
        loop, event = self._loop, self._wakeup
        if loop is None or event is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(event.set)

    async def _worker(self, state: RunState, slot: int) -> None:
        while not state.should_stop:
            item = self._next()
            if item is None:
                if not self._accepting:
                    return
                await self._wait_for_work()
                continue

            if slot < len(state.active_downloads):
                state.active_downloads[slot] = DownloadSlot(item_id=item.id, label=item.title)
            try:
                if self._fetch is not None:
                    await self._fetch(item)
            except Exception as exc:
                logger.warning("download_failed item=%s error=%s", item.id, exc)
                with self._lock:
                    self._failed[item.id] = str(exc)
            finally:
                with self._lock:
                    self._processed.add(item.id)
                if slot < len(state.active_downloads):
                    state.active_downloads[slot] = None

    async def _wait_for_work(self) -> None:
        event = self._wakeup
        if event is None:
            return
        try:
            await asyncio.wait_for(event.wait(), timeout=self._idle_poll)
        except asyncio.TimeoutError:
            return
        event.clear()


class StaticSourceGroup:
    """Source group yielding a fixed list of items."""

    def __init__(self, group_id: str, name: str, items: Optional[List[MemoryItem]] = None) -> None:
        self.id = str(group_id)
        self.name = str(name)
        self.items: List[MemoryItem] = list(items or [])

    async def get_item_generator(self, state: RunState) -> AsyncIterator[MemoryItem]:
        for item in self.items:
            if state.should_stop:
                return
            yield item
            await asyncio.sleep(0)


class InMemorySourceGroupStore:
    """Ordered collection of source groups."""

    def __init__(self, groups: Optional[List[Any]] = None) -> None:
        self._groups: List[Any] = list(groups or [])
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._groups)

    def add(self, group: Any) -> None:
        with self._lock:
            self._groups.append(group)

    async def fetch_all(self) -> List[Any]:
        with self._lock:
            return list(self._groups)


def load_manifest(
    path: str | Path,
    queue: InMemoryDownloadQueue,
    store: Optional[InMemorySourceGroupStore] = None,
) -> InMemorySourceGroupStore:
    """Build static source groups from a JSON manifest, appending to ``store`` when given.

    Format: ``{"groups": [{"id": "...", "name": "...", "items": [{"id": "...", "title": "...", "url": "..."}]}]}``
    """
    source = Path(path)
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise StorageError(f"Unable to read manifest: {exc}", {"path": str(source)}) from exc

    store = store if store is not None else InMemorySourceGroupStore()
    for index, raw_group in enumerate(payload.get("groups") or []):
        group_id = str(raw_group.get("id") or index)
        items = [
            MemoryItem(
                id=str(raw_item.get("id") or f"{group_id}_{pos}"),
                group_id=group_id,
                title=str(raw_item.get("title") or ""),
                url=str(raw_item.get("url") or ""),
                queue=queue,
            )
            for pos, raw_item in enumerate(raw_group.get("items") or [])
        ]
        store.add(StaticSourceGroup(group_id, str(raw_group.get("name") or group_id), items))
    return store
