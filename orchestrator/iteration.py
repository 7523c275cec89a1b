"""Controlled iteration over per-group item generators."""

from __future__ import annotations

import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar


T = TypeVar("T")

StopFn = Callable[[], None]
ItemHandler = Callable[[T, int, StopFn], Optional[Awaitable[Any]]]


class StopToken:
    """Cancellation token tripped by a handler to end iteration early."""

    def __init__(self) -> None:
        self._tripped = False

    def trip(self) -> None:
        self._tripped = True

    @property
    def tripped(self) -> bool:
        return self._tripped


async def drive_items(iterator: AsyncIterator[T], handler: ItemHandler) -> int:
    """Pull items one at a time and hand each to ``handler(item, index, stop)``.

    Calling ``stop()`` from the handler ends iteration after the current item;
    nothing further is pulled from ``iterator``. Returns the number of items
    handed to the handler, including the one that requested the stop. The
    underlying async generator is always closed, errors included.
    """
    token = StopToken()
    count = 0
    try:
        async for item in iterator:
            result = handler(item, count, token.trip)
            if inspect.isawaitable(result):
                await result
            count += 1
            if token.tripped:
                break
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
    return count
