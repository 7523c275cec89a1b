"""Error notification sink with local side effects for inspection."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

from utils.exceptions import DownloaderError


logger = logging.getLogger(__name__)

GLOBAL_ERROR = "global_error"


def _event(
    channel: str,
    payload: Dict[str, Any],
    *,
    out_dir: str | Path | None = None,
) -> Dict[str, Any]:
    entry = {
        "channel": channel,
        "payload": dict(payload or {}),
        "sent_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "status": "ok",
    }
    if out_dir:
        target = Path(out_dir)
        target.mkdir(parents=True, exist_ok=True)
        log_path = target / "notifications.jsonl"
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry, ensure_ascii=False) + "\n")
        entry["log_path"] = str(log_path)
    return entry


def _error_payload(error: BaseException) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "kind": type(error).__name__,
        "message": getattr(error, "message", None) or str(error),
    }
    if isinstance(error, DownloaderError) and error.details:
        payload["details"] = {key: str(value) for key, value in error.details.items()}
    return payload


class Notifier:
    """Fire-and-forget error broadcaster used for group and run level failures."""

    def __init__(self, *, out_dir: str | Path | None = None, history_size: int = 100) -> None:
        self._out_dir = out_dir
        self._history: Deque[Dict[str, Any]] = deque(maxlen=max(1, int(history_size)))
        self._lock = Lock()

    def report_error(self, error: BaseException) -> Optional[Dict[str, Any]]:
        """Broadcast ``error``. Never raises; a failing sink is only logged."""
        try:
            entry = _event(GLOBAL_ERROR, _error_payload(error), out_dir=self._out_dir)
        except OSError as exc:
            logger.warning("notification_write_failed error=%s", exc)
            return None
        with self._lock:
            self._history.append(entry)
        logger.info("notification_sent kind=%s", entry["payload"]["kind"])
        return entry

    def history(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(item) for item in self._history]

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
