"""
Custom Exceptions
Error taxonomy for scan-and-download runs
"""
from typing import Optional


class DownloaderError(Exception):
    """Base class for all downloader errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DownloaderError):
    """Invalid or missing configuration."""
    pass


class RunAlreadyActiveError(DownloaderError):
    """Raised synchronously when a run is started while another is active."""

    def __init__(self, message: str = "Unable to start a second scan before the first finishes.", **kwargs):
        super().__init__(message, kwargs)


class ScanError(DownloaderError):
    """Scanning error."""
    pass


class GroupScanError(ScanError):
    """A single source group failed; scanning continues with the next group."""

    def __init__(self, message: str, group_name: str = None, group_id: Optional[str] = None, **kwargs):
        super().__init__(message, kwargs)
        self.group_name = group_name
        self.group_id = group_id


class RunError(DownloaderError):
    """Failure surfacing from the joined scan + download pair."""
    pass


class CleanupError(DownloaderError):
    """Empty directory pruning failed."""

    def __init__(self, message: str, path: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.path = path


class StorageError(DownloaderError):
    """Persistence error."""
    pass
