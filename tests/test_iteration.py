from __future__ import annotations

import pytest

from orchestrator.iteration import StopToken, drive_items


class _TrackedGen:
    """Async iterator recording how many items were pulled and whether it was closed."""

    def __init__(self, items, fail_at=None):
        self._items = list(items)
        self._fail_at = fail_at
        self.pulled = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._fail_at is not None and self.pulled == self._fail_at:
            raise RuntimeError("generator failed")
        if self.pulled >= len(self._items):
            raise StopAsyncIteration
        item = self._items[self.pulled]
        self.pulled += 1
        return item

    async def aclose(self):
        self.closed = True


def test_stop_token_trips_once_called() -> None:
    token = StopToken()
    assert token.tripped is False
    token.trip()
    assert token.tripped is True


@pytest.mark.asyncio
async def test_drive_items_visits_every_item_in_order() -> None:
    seen = []
    gen = _TrackedGen(["a", "b", "c"])

    count = await drive_items(gen, lambda item, index, stop: seen.append((index, item)))

    assert count == 3
    assert seen == [(0, "a"), (1, "b"), (2, "c")]
    assert gen.closed is True


@pytest.mark.asyncio
async def test_drive_items_stop_pulls_nothing_further() -> None:
    seen = []
    gen = _TrackedGen(["a", "b", "c", "d"])

    async def _handler(item, index, stop):
        seen.append(item)
        if item == "b":
            stop()

    count = await drive_items(gen, _handler)

    assert count == 2
    assert seen == ["a", "b"]
    assert gen.pulled == 2
    assert gen.closed is True


@pytest.mark.asyncio
async def test_drive_items_empty_sequence() -> None:
    gen = _TrackedGen([])
    assert await drive_items(gen, lambda item, index, stop: None) == 0


@pytest.mark.asyncio
async def test_drive_items_closes_generator_on_error() -> None:
    gen = _TrackedGen(["a", "b"], fail_at=1)

    with pytest.raises(RuntimeError, match="generator failed"):
        await drive_items(gen, lambda item, index, stop: None)

    assert gen.closed is True


@pytest.mark.asyncio
async def test_drive_items_runs_async_generator_finally_block() -> None:
    cleaned = []

    async def _gen():
        try:
            for value in range(10):
                yield value
        finally:
            cleaned.append(True)

    count = await drive_items(_gen(), lambda item, index, stop: stop() if item == 0 else None)

    assert count == 1
    assert cleaned == [True]
