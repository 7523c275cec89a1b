"""
Configuration Management Module
"""
from .settings import (
    Settings,
    DownloaderSettings,
    NotificationSettings,
    UpstreamSettings,
    WebSettings,
    get_settings,
    get_downloader_settings,
    get_notification_settings,
    get_upstream_settings,
    get_web_settings,
)

__all__ = [
    "Settings",
    "DownloaderSettings",
    "NotificationSettings",
    "UpstreamSettings",
    "WebSettings",
    "get_settings",
    "get_downloader_settings",
    "get_notification_settings",
    "get_upstream_settings",
    "get_web_settings",
]
