"""
Settings Configuration
Pydantic based configuration loading and validation
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class DownloaderSettings(BaseSettings):
    """Scan-and-download run settings"""
    output_dir: str = Field(default="./download", description="Base directory for downloaded files")
    backlog_poll_interval: float = Field(default=3.0, gt=0, description="Seconds between backlog polls")
    download_slots: int = Field(default=4, ge=1, description="Number of concurrent download slots")
    scan_log_every: int = Field(default=10, ge=1, description="Debug log every N scanned items")
    test_mode: bool = Field(default=False, description="Verbose debug logging for tests")

    class Config:
        env_prefix = "RMD_"


class NotificationSettings(BaseSettings):
    """Notification sink settings"""
    out_dir: Optional[str] = Field(default=None, description="Directory for notifications.jsonl (optional)")
    history_size: int = Field(default=100, ge=1, description="Notifications kept in memory")

    class Config:
        env_prefix = "NOTIFY_"


class UpstreamSettings(BaseSettings):
    """Upstream content API session settings"""
    base_url: str = Field(default="https://oauth.reddit.com", description="Upstream API base URL")
    user_agent: str = Field(default="RMD/1.0", description="User Agent")
    timeout: float = Field(default=30.0, description="Request timeout (seconds)")

    class Config:
        env_prefix = "UPSTREAM_"


class WebSettings(BaseSettings):
    """Control API settings"""
    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=7505, description="Bind port")
    event_buffer: int = Field(default=200, ge=1, description="Progress snapshots kept for /api/events")
    manifest: Optional[str] = Field(default=None, description="JSON manifest of source groups loaded at startup")

    class Config:
        env_prefix = "WEB_"


class Settings(BaseSettings):
    """Top-level settings aggregating every section"""

    downloader: DownloaderSettings = Field(default_factory=DownloaderSettings)
    notification: NotificationSettings = Field(default_factory=NotificationSettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    web: WebSettings = Field(default_factory=WebSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings, reading ``config/.env`` into the environment first when present."""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            downloader=DownloaderSettings(),
            notification=NotificationSettings(),
            upstream=UpstreamSettings(),
            web=WebSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings singleton"""
    return Settings.load_from_env_file()


def get_downloader_settings() -> DownloaderSettings:
    return get_settings().downloader


def get_notification_settings() -> NotificationSettings:
    return get_settings().notification


def get_upstream_settings() -> UpstreamSettings:
    return get_settings().upstream


def get_web_settings() -> WebSettings:
    return get_settings().web
