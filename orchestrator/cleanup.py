"""Post-run pruning of empty output directories."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
import stat
from typing import List


logger = logging.getLogger(__name__)


def _is_real_directory(path: Path) -> bool:
    # lstat so symlinks to directories are left alone
    try:
        return stat.S_ISDIR(os.lstat(path).st_mode)
    except FileNotFoundError:
        return False


def _list_children(path: Path) -> List[str]:
    try:
        return os.listdir(path)
    except FileNotFoundError:
        return []


def _rmdir(path: Path, verbose: bool) -> bool:
    try:
        os.rmdir(path)
    except FileNotFoundError:
        return False
    if verbose:
        logger.debug("Removing empty directory: %s", path)
    return True


async def remove_empty_directories(path: str | os.PathLike, *, verbose: bool = False) -> int:
    """Recursively remove every directory under ``path`` (``path`` included)
    that transitively contains no files.

    Non-directories and symlinks are ignored. A directory that vanishes
    while it is being inspected counts as already removed. Returns the
    number of directories this call removed.
    """
    target = Path(path)
    if not await asyncio.to_thread(_is_real_directory, target):
        return 0

    removed = 0
    children = await asyncio.to_thread(_list_children, target)
    if children:
        results = await asyncio.gather(
            *(remove_empty_directories(target / name, verbose=verbose) for name in children),
            return_exceptions=True,
        )
        failures = [item for item in results if isinstance(item, BaseException)]
        removed += sum(item for item in results if not isinstance(item, BaseException))
        if failures:
            # Siblings have all settled; surface the first failure to the caller.
            raise failures[0]
        # Removing subdirectories may have emptied this one.
        children = await asyncio.to_thread(_list_children, target)

    if not children and await asyncio.to_thread(_rmdir, target, verbose):
        removed += 1
    return removed

