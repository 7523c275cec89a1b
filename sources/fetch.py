"""Item fetcher used by the download queue: media over HTTP, metadata as JSON."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlparse

from .session import UpstreamSession


logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".bin"


def _media_suffix(url: str) -> str:
    return Path(urlparse(url).path).suffix or DEFAULT_SUFFIX


def _write_bytes(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


def build_item_fetcher(
    output_dir: str | Path,
    session: Optional[UpstreamSession] = None,
) -> Callable[[Any], Awaitable[Path]]:
    """Return ``fetch(item)`` writing into ``output_dir/<group_id>/``.

    Items with a URL are downloaded through the session's shared client when a
    session is given. Otherwise the item metadata is written as ``<id>.json``.
    """
    root = Path(output_dir)

    async def _fetch(item: Any) -> Path:
        group_dir = root / str(item.group_id)
        if item.url and session is not None:
            client = await session.get_client()
            response = await client.get(item.url)
            response.raise_for_status()
            target = group_dir / f"{item.id}{_media_suffix(item.url)}"
            await asyncio.to_thread(_write_bytes, target, response.content)
            logger.debug("downloaded item=%s bytes=%s", item.id, len(response.content))
            return target

        payload = {"id": item.id, "title": item.title, "url": item.url}
        target = group_dir / f"{item.id}.json"
        data = json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")
        await asyncio.to_thread(_write_bytes, target, data)
        return target

    return _fetch
