"""Runs visualization jobs in the background.

Each submitted job gets its own asyncio task that walks the pipeline:
validate URL -> decrypt token -> clone -> analyze history -> render. All
blocking work (git, gource, ffmpeg, filesystem cleanup) runs in a thread pool
so the event loop stays free to answer status polls.
"""

import asyncio
import functools
import logging
import os
import shutil
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Set

from app.auth.token_crypto import decrypt_token
from app.config import settings
from app.jobs.dispatcher import JobDispatcher
from app.jobs.errors import GourceError, TempDirCreationFailed
from app.jobs.models import JobRecord, ProgressStep, RenderSettings, StopResult
from app.jobs.registry import JobRegistry
from app.processing.pacing import calculate_seconds_per_day, should_hide_filenames
from app.processing.render import generate_visualization
from app.repository.history import clone_repository, count_days_and_commits
from app.repository.urls import redact_url, validate_repo_url
from app.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal error"
SHUTDOWN_MESSAGE = "Server shutting down"


class JobOrchestrator(JobDispatcher):
    """Spawns one detached task per job and records progress in the registry."""

    def __init__(
        self,
        registry: JobRegistry,
        store: ArtifactStore,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._registry = registry
        self._store = store
        self._executor = executor
        self._owns_executor = executor is None
        self._tasks: Set[asyncio.Task] = set()

    async def start(self) -> None:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=settings.render_workers,
                thread_name_prefix="gource-worker",
            )

    async def stop(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    async def submit(
        self,
        repo_url: str,
        access_token: Optional[str] = None,
        render_settings: Optional[RenderSettings] = None,
    ) -> str:
        job = JobRecord(repo_url=repo_url, settings=render_settings or RenderSettings())
        await self._registry.insert(job)

        task = asyncio.create_task(
            self._run(job.id, repo_url, access_token, job.settings),
            name=f"gource-job-{job.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job.id

    async def get_status(self, job_id: str) -> Optional[JobRecord]:
        return await self._registry.get(job_id)

    async def stop_job(self, job_id: str) -> StopResult:
        return await self._registry.stop(job_id)

    async def completed_count(self) -> int:
        return await self._registry.completed_count()

    async def wait_idle(self) -> None:
        """Wait for every in-flight job task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(
        self,
        job_id: str,
        repo_url: str,
        access_token: Optional[str],
        render_settings: RenderSettings,
    ) -> None:
        logger.info("Starting job %s for %s", job_id, redact_url(repo_url))
        start_time = time.monotonic()
        try:
            finished = await self._process(job_id, repo_url, access_token, render_settings)
        except GourceError as exc:
            logger.warning("Job %s failed: %s", job_id, exc)
            await self._registry.fail(job_id, str(exc))
        except asyncio.CancelledError:
            await self._registry.fail(job_id, SHUTDOWN_MESSAGE)
            raise
        except Exception:
            logger.exception("Job %s crashed", job_id)
            await self._registry.fail(job_id, INTERNAL_ERROR)
        else:
            if finished:
                logger.info("Job %s finished in %.1fs", job_id, time.monotonic() - start_time)
            else:
                logger.info("Job %s stopped by user after %.1fs", job_id, time.monotonic() - start_time)

    async def _process(
        self,
        job_id: str,
        repo_url: str,
        access_token: Optional[str],
        render_settings: RenderSettings,
    ) -> bool:
        """Run every stage. Returns False if the job was stopped part way."""
        repo_url = validate_repo_url(repo_url)
        logger.info("Validated repository URL for job %s", job_id)

        token = None
        if access_token is not None:
            token = decrypt_token(access_token, settings.secret_key)
            logger.info("Access token decrypted for job %s", job_id)

        async with self._working_directory(job_id) as work_dir:
            repo_path = os.path.join(work_dir, "repo")

            stage_start = time.monotonic()
            await self._run_blocking(clone_repository, repo_url, repo_path, token)
            logger.info("Repository cloning took %.1fs", time.monotonic() - stage_start)
            if not await self._advance(job_id, ProgressStep.ANALYZING_HISTORY):
                return False

            stage_start = time.monotonic()
            stats = await self._run_blocking(count_days_and_commits, repo_path)
            logger.info(
                "History analysis took %.1fs: %d commits over %d days",
                time.monotonic() - stage_start, stats.total_commits, stats.days_with_commits,
            )
            seconds_per_day = calculate_seconds_per_day(stats.days_with_commits)
            hide_filenames = should_hide_filenames(stats.total_commits)
            if not await self._advance(job_id, ProgressStep.GENERATING_VISUALIZATION):
                return False

            stage_start = time.monotonic()
            await self._run_blocking(
                generate_visualization,
                repo_path,
                seconds_per_day,
                hide_filenames,
                render_settings,
                self._store.get_video_path(job_id),
                repo_url,
            )
            logger.info("Gource visualization took %.1fs", time.monotonic() - stage_start)

        if await self._registry.complete(job_id, self._store.get_video_url(job_id)) is None:
            logger.info("Job %s was stopped before its video finished", job_id)
            return False
        return True

    async def _advance(self, job_id: str, step: ProgressStep) -> bool:
        if await self._registry.advance(job_id, step) is None:
            logger.info("Job %s is no longer running, skipping %s", job_id, step.label)
            return False
        return True

    async def _run_blocking(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    @asynccontextmanager
    async def _working_directory(self, job_id: str) -> AsyncIterator[str]:
        """Scratch directory for the clone, removed however the job ends."""
        try:
            path = await self._run_blocking(
                functools.partial(tempfile.mkdtemp, prefix=f"gitsight-{job_id[:8]}-", dir=settings.work_dir)
            )
        except OSError as exc:
            logger.error("Could not create working directory: %s", exc)
            raise TempDirCreationFailed()
        try:
            yield path
        finally:
            await self._run_blocking(_remove_tree, path)


def _remove_tree(path: str) -> None:
    shutil.rmtree(path, ignore_errors=True)
    if os.path.exists(path):
        logger.error("Failed to remove temporary directory %s", path)
