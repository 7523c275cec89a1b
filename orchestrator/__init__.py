"""Scan-and-download run orchestration."""

from .backlog import BacklogMonitor
from .cleanup import remove_empty_directories
from .iteration import StopToken, drive_items
from .notification import Notifier
from .scanner import scan_all, scan_group
from .service import RunOrchestrator
from .streamer import ProgressStreamer, get_current_state, get_default_streamer

__all__ = [
    "BacklogMonitor",
    "Notifier",
    "ProgressStreamer",
    "RunOrchestrator",
    "StopToken",
    "drive_items",
    "get_current_state",
    "get_default_streamer",
    "remove_empty_directories",
    "scan_all",
    "scan_group",
]
