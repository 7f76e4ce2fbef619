"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Token decryption (shared with the web front end)
    secret_key: str = ""

    # Video storage
    output_dir: str = "/gource_videos"
    video_url_prefix: str = "/gource_videos"
    work_dir: Optional[str] = None  # parent for cloned repos, None = system temp

    # Server
    port: int = 8081
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Repository policy
    allowed_repo_host: str = "github.com"
    product_name: str = "Gitsight"
    hide_filenames_commit_threshold: int = 100

    # External tools
    git_binary: str = "git"
    gource_binary: str = "gource"
    ffmpeg_binary: str = "ffmpeg"
    virtual_display_command: List[str] = ["xvfb-run", "-a"]

    # Job processing
    render_workers: int = 4
    video_resolution: str = "1920x1200"
    output_framerate: int = 30
    clone_timeout_seconds: int = 600
    render_timeout_seconds: int = 1800

    # Retention
    video_ttl_hours: int = 24
    cleanup_interval_seconds: int = 3600

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
