"""Shared fixtures: isolated settings and stand-in executables."""

from pathlib import Path

import pytest

from app.config import settings


@pytest.fixture
def app_settings(tmp_path, monkeypatch):
    """Point every directory at tmp_path and drop the xvfb wrapper."""
    output_dir = tmp_path / "videos"
    work_dir = tmp_path / "work"
    output_dir.mkdir()
    work_dir.mkdir()
    monkeypatch.setattr(settings, "output_dir", str(output_dir))
    monkeypatch.setattr(settings, "work_dir", str(work_dir))
    monkeypatch.setattr(settings, "video_url_prefix", "/gource_videos")
    monkeypatch.setattr(settings, "secret_key", "test-secret-key")
    monkeypatch.setattr(settings, "virtual_display_command", [])
    monkeypatch.setattr(settings, "cleanup_interval_seconds", 3600)
    return settings


@pytest.fixture
def fake_tool(tmp_path):
    """Write an executable /bin/sh script and return its path."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(name: str, body: str) -> str:
        path: Path = bin_dir / name
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(0o755)
        return str(path)

    return _make
