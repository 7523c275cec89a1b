from __future__ import annotations

import pytest
from pydantic import ValidationError

from config import DownloaderSettings, NotificationSettings, Settings, WebSettings


def test_downloader_defaults() -> None:
    settings = DownloaderSettings()
    assert settings.backlog_poll_interval == 3.0
    assert settings.scan_log_every == 10
    assert settings.download_slots >= 1


def test_env_overrides_use_section_prefix(monkeypatch) -> None:
    monkeypatch.setenv("RMD_BACKLOG_POLL_INTERVAL", "1.5")
    monkeypatch.setenv("RMD_OUTPUT_DIR", "/srv/media")
    monkeypatch.setenv("WEB_PORT", "9001")
    monkeypatch.setenv("NOTIFY_OUT_DIR", "/var/log/rmd")

    assert DownloaderSettings().backlog_poll_interval == 1.5
    assert DownloaderSettings().output_dir == "/srv/media"
    assert WebSettings().port == 9001
    assert NotificationSettings().out_dir == "/var/log/rmd"


def test_invalid_poll_interval_rejected() -> None:
    with pytest.raises(ValidationError):
        DownloaderSettings(backlog_poll_interval=0)


def test_load_from_missing_env_file_uses_defaults(tmp_path) -> None:
    settings = Settings.load_from_env_file(tmp_path / "missing.env")
    assert settings.downloader.download_slots >= 1
    assert settings.web.event_buffer >= 1


def test_web_manifest_is_optional_and_read_from_env(monkeypatch) -> None:
    assert WebSettings().manifest is None
    monkeypatch.setenv("WEB_MANIFEST", "/etc/rmd/groups.json")
    assert WebSettings().manifest == "/etc/rmd/groups.json"
