"""Cached upstream API session, reset at the start of every run."""

from __future__ import annotations

import logging
from threading import Lock
from typing import List, Optional

import httpx

from config import UpstreamSettings, get_upstream_settings


logger = logging.getLogger(__name__)


class UpstreamSession:
    """Lazily builds one ``httpx.AsyncClient`` for source generators to share.

    ``reset_session`` is synchronous so it can run during run admission; the
    retired client is closed on the next ``get_client``/``aclose`` call from
    inside an event loop.
    """

    def __init__(
        self,
        settings: Optional[UpstreamSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings or get_upstream_settings()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._retired: List[httpx.AsyncClient] = []
        self._lock = Lock()
        self.resets = 0

    @property
    def has_client(self) -> bool:
        return self._client is not None

    def reset_session(self) -> None:
        with self._lock:
            if self._client is not None:
                self._retired.append(self._client)
                self._client = None
            self.resets += 1

    async def get_client(self) -> httpx.AsyncClient:
        await self._close_retired()
        with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._settings.base_url,
                    headers={"User-Agent": self._settings.user_agent},
                    timeout=httpx.Timeout(self._settings.timeout),
                    follow_redirects=True,
                    transport=self._transport,
                )
            return self._client

    async def aclose(self) -> None:
        self.reset_session()
        await self._close_retired()

    async def _close_retired(self) -> None:
        with self._lock:
            retired, self._retired = self._retired, []
        for client in retired:
            try:
                await client.aclose()
            except (httpx.HTTPError, RuntimeError) as exc:
                logger.warning("session_close_failed error=%s", exc)
