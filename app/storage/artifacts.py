"""Video artifact storage with age-based cleanup."""

import logging
import os
import time
from typing import Optional

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Owns the output directory of rendered videos, one file per job."""

    def __init__(self, base_dir: str, ttl_hours: int = 24, url_prefix: str = "/gource_videos"):
        self._base_dir = base_dir
        os.makedirs(self._base_dir, exist_ok=True)
        self._ttl_seconds = ttl_hours * 3600
        self._url_prefix = url_prefix.rstrip("/")

    @property
    def base_dir(self) -> str:
        return self._base_dir

    @staticmethod
    def video_filename(job_id: str) -> str:
        return f"gource_{job_id}.mp4"

    def get_video_path(self, job_id: str) -> str:
        return os.path.join(self._base_dir, self.video_filename(job_id))

    def get_video_url(self, job_id: str) -> str:
        return f"{self._url_prefix}/{self.video_filename(job_id)}"

    def video_exists(self, job_id: str) -> bool:
        return os.path.isfile(self.get_video_path(job_id))

    def cleanup_expired(self, now: Optional[float] = None) -> int:
        """Remove files older than the TTL. Returns count of removed files.

        A file that can't be removed is logged and skipped.
        """
        now = time.time() if now is None else now
        removed = 0
        try:
            entries = list(os.scandir(self._base_dir))
        except FileNotFoundError:
            return 0
        for entry in entries:
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                if now - entry.stat(follow_symlinks=False).st_mtime <= self._ttl_seconds:
                    continue
                os.remove(entry.path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.error("Failed to delete expired video %s: %s", entry.path, exc)
                continue
            logger.info("Deleted expired video %s", entry.name)
            removed += 1
        return removed
