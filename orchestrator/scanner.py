"""Scan every source group and persist newly discovered items."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Optional

from config import DownloaderSettings, get_downloader_settings
from core import ErrorNotifier, Item, RunState, SourceGroup, SourceGroupStore
from utils.exceptions import GroupScanError

from .iteration import StopFn, drive_items


logger = logging.getLogger(__name__)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def scan_group(
    group: SourceGroup,
    state: RunState,
    *,
    settings: Optional[DownloaderSettings] = None,
) -> int:
    """Persist every item the group yields until it is exhausted or a stop is requested.

    Returns the number of items pulled from the group's generator.
    """
    log_every = (settings or get_downloader_settings()).scan_log_every

    async def _handle(item: Item, index: int, stop: StopFn) -> None:
        await _maybe_await(item.persist())
        if state.should_stop:
            logger.debug("Early exit from scan, due to state flag.")
            stop()
            return
        state.new_posts_scanned += 1
        if state.new_posts_scanned % log_every == 0:
            logger.debug("Scanned %s posts so far...", state.new_posts_scanned)

    return await drive_items(group.get_item_generator(state), _handle)


async def scan_all(
    state: RunState,
    store: SourceGroupStore,
    *,
    notifier: Optional[ErrorNotifier] = None,
    settings: Optional[DownloaderSettings] = None,
) -> None:
    """Scan all source groups in the order the store returns them.

    A failing group is logged and reported, then skipped. ``should_stop``
    is checked after every persisted item and after every group.
    """
    state.finished_scanning = False
    state.new_posts_scanned = 0

    try:
        groups = list(await _maybe_await(store.fetch_all()))
        for group in groups:
            state.set_current_source(group.id, group.name)
            try:
                found = await scan_group(group, state, settings=settings)
            except Exception as exc:
                error = GroupScanError(
                    f'Failed scanning group "{group.name}-{group.id}": {exc}',
                    group_name=str(group.name),
                    group_id=str(group.id),
                )
                logger.error("group_scan_failed group=%s-%s error=%s", group.name, group.id, exc)
                if notifier is not None:
                    # Notifiers may write to disk; keep that off the loop.
                    await asyncio.to_thread(notifier.report_error, error)
                found = None
            finally:
                state.current_source = None

            if state.should_stop:
                break

            if found is not None:
                logger.info('Finished scanning group "%s-%s". Found %s new posts.', group.name, group.id, found)
    finally:
        state.finished_scanning = True
        state.current_source = None
