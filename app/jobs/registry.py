"""In-memory job registry shared by the orchestrator and the API.

A single asyncio lock guards the whole map. Entries are small and every
operation is a dict lookup, so the lock is only ever held for a few
instructions and never across I/O.
"""

import asyncio
import logging
from typing import Callable, Dict, Optional

from app.jobs.models import JobRecord, ProgressStep, StopResult, utcnow

logger = logging.getLogger(__name__)

STOPPED_BY_USER = "Stopped by user"


class JobRegistry:
    """Maps job id -> JobRecord. Terminal records are never modified."""

    def __init__(self):
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = asyncio.Lock()

    async def insert(self, job: JobRecord) -> None:
        async with self._lock:
            self._jobs[job.id] = job

    async def get(self, job_id: str) -> Optional[JobRecord]:
        async with self._lock:
            return self._jobs.get(job_id)

    async def update(
        self,
        job_id: str,
        fn: Callable[[JobRecord], JobRecord],
    ) -> Optional[JobRecord]:
        """Replace a non-terminal entry with ``fn(entry)``.

        Returns the new record, or None when the job is unknown or already
        terminal (in which case nothing changes).
        """
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return None
            updated = fn(job)
            self._jobs[job_id] = updated
            return updated

    async def advance(self, job_id: str, step: ProgressStep) -> Optional[JobRecord]:
        """Move a running job forward to ``step``. Steps never go backwards."""
        return await self.update(
            job_id,
            lambda job: job.model_copy(update={"step": max(job.step, step)}),
        )

    async def complete(self, job_id: str, video_url: str) -> Optional[JobRecord]:
        return await self.update(
            job_id,
            lambda job: job.model_copy(
                update={"video_url": video_url, "completed_at": utcnow()}
            ),
        )

    async def fail(self, job_id: str, message: str) -> Optional[JobRecord]:
        return await self.update(
            job_id,
            lambda job: job.model_copy(
                update={"error": message, "completed_at": utcnow()}
            ),
        )

    async def stop(self, job_id: str) -> StopResult:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return StopResult.NOT_FOUND
            if job.is_terminal:
                return StopResult.ALREADY_TERMINAL
            self._jobs[job_id] = job.model_copy(
                update={"error": STOPPED_BY_USER, "completed_at": utcnow()}
            )
        logger.info("Job %s stopped by user", job_id)
        return StopResult.STOPPED

    async def completed_count(self) -> int:
        async with self._lock:
            return sum(1 for job in self._jobs.values() if job.video_url is not None)

    def __len__(self) -> int:
        return len(self._jobs)

