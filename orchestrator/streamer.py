"""Progress streamer holding the process-wide run state."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, Optional

from config import get_downloader_settings
from core import ProgressSender, RunState


logger = logging.getLogger(__name__)


class ProgressStreamer:
    """Pairs the live RunState with a rebindable sender for snapshots."""

    def __init__(self, state: RunState, sender: Optional[ProgressSender] = None) -> None:
        self.state = state
        self._sender = sender

    def set_sender(self, sender: Optional[ProgressSender]) -> None:
        self._sender = sender

    def publish(self) -> Optional[Dict[str, Any]]:
        """Send one snapshot. A failing sender is logged and otherwise ignored."""
        sender = self._sender
        if sender is None:
            return None
        snapshot = self.state.snapshot()
        try:
            sender(snapshot)
        except Exception as exc:
            logger.warning("progress_send_failed error=%s", exc)
        return snapshot


_DEFAULT_STREAMER: Optional[ProgressStreamer] = None
_DEFAULT_LOCK = Lock()


def get_default_streamer() -> ProgressStreamer:
    """Lazily build the single process-wide streamer and its RunState."""
    global _DEFAULT_STREAMER
    with _DEFAULT_LOCK:
        if _DEFAULT_STREAMER is None:
            slots = get_downloader_settings().download_slots
            _DEFAULT_STREAMER = ProgressStreamer(RunState.with_slots(slots))
        return _DEFAULT_STREAMER


def get_current_state() -> RunState:
    return get_default_streamer().state
