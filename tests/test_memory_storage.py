from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import List

import pytest

from core import RunState
from storage.memory import InMemoryDownloadQueue, InMemorySourceGroupStore, MemoryItem, StaticSourceGroup, load_manifest
from utils.exceptions import StorageError


@pytest.mark.asyncio
async def test_persist_is_idempotent_per_item_id() -> None:
    queue = InMemoryDownloadQueue()
    first = MemoryItem(id="p1", group_id="g", queue=queue)
    duplicate = MemoryItem(id="p1", group_id="g", title="again", queue=queue)

    assert await first.persist() is True
    assert await duplicate.persist() is False
    assert queue.saved_ids() == ["p1"]
    assert await queue.count_unprocessed() == 1


@pytest.mark.asyncio
async def test_persist_without_store_raises() -> None:
    with pytest.raises(StorageError):
        await MemoryItem(id="orphan", group_id="g").persist()


@pytest.mark.asyncio
async def test_download_all_drains_existing_backlog_when_intake_closed() -> None:
    fetched: List[str] = []

    async def _fetch(item: MemoryItem) -> None:
        fetched.append(item.id)

    queue = InMemoryDownloadQueue(fetch=_fetch, idle_poll=0.01)
    for idx in range(3):
        await MemoryItem(id=f"p{idx}", group_id="g", queue=queue).persist()

    await queue.download_all(RunState.with_slots(1))

    assert fetched == ["p0", "p1", "p2"]
    assert queue.processed_ids() == ["p0", "p1", "p2"]
    assert await queue.count_unprocessed() == 0


@pytest.mark.asyncio
async def test_items_saved_while_accepting_are_downloaded_until_intake_closes() -> None:
    fetched: List[str] = []

    async def _fetch(item: MemoryItem) -> None:
        fetched.append(item.id)

    queue = InMemoryDownloadQueue(fetch=_fetch, idle_poll=0.01)
    state = RunState.with_slots(2)
    queue.set_accepting_new_items(True)
    worker = asyncio.create_task(queue.download_all(state))

    for idx in range(4):
        await MemoryItem(id=f"n{idx}", group_id="g", queue=queue).persist()
        await asyncio.sleep(0)
    queue.set_accepting_new_items(False)
    await asyncio.wait_for(worker, timeout=2.0)

    assert sorted(fetched) == ["n0", "n1", "n2", "n3"]
    assert state.active_downloads == [None, None]


@pytest.mark.asyncio
async def test_active_slot_is_visible_while_downloading() -> None:
    seen = []
    state = RunState.with_slots(1)

    async def _fetch(item: MemoryItem) -> None:
        seen.append(state.active_downloads[0].item_id)

    queue = InMemoryDownloadQueue(fetch=_fetch)
    await MemoryItem(id="visible", group_id="g", title="A post", queue=queue).persist()

    await queue.download_all(state)

    assert seen == ["visible"]
    assert state.active_downloads == [None]


@pytest.mark.asyncio
async def test_failed_fetch_is_recorded_and_not_retried() -> None:
    calls: List[str] = []

    async def _fetch(item: MemoryItem) -> None:
        calls.append(item.id)
        if item.id == "bad":
            raise OSError("connection reset")

    queue = InMemoryDownloadQueue(fetch=_fetch)
    for item_id in ["ok", "bad"]:
        await MemoryItem(id=item_id, group_id="g", queue=queue).persist()

    await queue.download_all(RunState.with_slots(1))
    await queue.download_all(RunState.with_slots(1))

    assert calls == ["ok", "bad"]
    assert queue.failed() == {"bad": "connection reset"}
    assert await queue.count_unprocessed() == 0


@pytest.mark.asyncio
async def test_download_all_stops_when_stop_requested() -> None:
    queue = InMemoryDownloadQueue()
    await MemoryItem(id="a", group_id="g", queue=queue).persist()
    state = RunState.with_slots(1)
    state.request_stop()

    await queue.download_all(state)

    assert await queue.count_unprocessed() == 1


@pytest.mark.asyncio
async def test_static_group_observes_stop_flag() -> None:
    state = RunState()
    group = StaticSourceGroup("g", "Group", [MemoryItem(id=str(idx), group_id="g") for idx in range(5)])
    pulled = []

    async for item in group.get_item_generator(state):
        pulled.append(item.id)
        if len(pulled) == 2:
            state.request_stop()

    assert pulled == ["0", "1"]


@pytest.mark.asyncio
async def test_store_returns_groups_in_insertion_order() -> None:
    store = InMemorySourceGroupStore([StaticSourceGroup("1", "a")])
    store.add(StaticSourceGroup("2", "b"))

    groups = await store.fetch_all()

    assert [group.id for group in groups] == ["1", "2"]


def test_load_manifest_builds_groups_bound_to_queue(tmp_path: Path) -> None:
    manifest = tmp_path / "groups.json"
    manifest.write_text(
        json.dumps(
            {
                "groups": [
                    {"id": "pics", "name": "Pictures", "items": [{"id": "p1", "title": "One", "url": "https://i.example/1.jpg"}]},
                    {"name": "Unnamed", "items": [{"title": "no id"}]},
                ]
            }
        ),
        encoding="utf-8",
    )
    queue = InMemoryDownloadQueue()

    store = load_manifest(manifest, queue)
    groups = asyncio.run(store.fetch_all())

    assert [(group.id, group.name) for group in groups] == [("pics", "Pictures"), ("1", "Unnamed")]
    assert groups[0].items[0].url == "https://i.example/1.jpg"
    assert groups[0].items[0].queue is queue
    assert groups[1].items[0].id == "1_0"


def test_load_manifest_rejects_bad_json(tmp_path: Path) -> None:
    manifest = tmp_path / "broken.json"
    manifest.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        load_manifest(manifest, InMemoryDownloadQueue())


def test_load_manifest_appends_to_existing_store(tmp_path: Path) -> None:
    manifest = tmp_path / "more.json"
    manifest.write_text(json.dumps({"groups": [{"id": "g2", "name": "Second", "items": [{"id": "x"}]}]}), encoding="utf-8")
    queue = InMemoryDownloadQueue()
    store = InMemorySourceGroupStore([StaticSourceGroup("g1", "First")])

    returned = load_manifest(manifest, queue, store)

    assert returned is store
    assert len(store) == 2
    assert asyncio.run(store.fetch_all())[1].items[0].queue is queue
