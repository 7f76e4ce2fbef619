"""Background retention sweep over the artifact store."""

import asyncio
import logging
from typing import Optional

from app.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Runs ArtifactStore.cleanup_expired every ``interval_seconds``."""

    def __init__(self, store: ArtifactStore, interval_seconds: float):
        self._store = store
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def sweep_once(self) -> int:
        # Directory scans and unlinks are blocking; keep them off the event loop.
        loop = asyncio.get_running_loop()
        removed = await loop.run_in_executor(None, self._store.cleanup_expired)
        if removed:
            logger.info("Retention sweep removed %d video(s)", removed)
        return removed

    async def _loop(self) -> None:
        while True:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Retention sweep failed")
            await asyncio.sleep(self._interval)
