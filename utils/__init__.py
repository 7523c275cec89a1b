"""
Utils Module
Logging and error types
"""
from .logger import configure_logging, setup_logger
from .exceptions import (
    DownloaderError,
    ConfigurationError,
    RunAlreadyActiveError,
    ScanError,
    GroupScanError,
    RunError,
    CleanupError,
    StorageError,
)

__all__ = [
    "configure_logging",
    "setup_logger",
    "DownloaderError",
    "ConfigurationError",
    "RunAlreadyActiveError",
    "ScanError",
    "GroupScanError",
    "RunError",
    "CleanupError",
    "StorageError",
]
