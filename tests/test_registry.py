"""Tests for the job registry state machine."""

import asyncio

import pytest
from pydantic import ValidationError

from app.jobs.models import JobRecord, JobState, ProgressStep, StopResult
from app.jobs.registry import STOPPED_BY_USER, JobRegistry


def _run(coro):
    return asyncio.run(coro)


def test_new_job_starts_initializing():
    async def scenario():
        registry = JobRegistry()
        job = JobRecord(repo_url="https://github.com/o/r")
        await registry.insert(job)
        return await registry.get(job.id)

    job = _run(scenario())
    assert job.step == ProgressStep.INITIALIZING_PROJECT
    assert job.status == JobState.RUNNING
    assert job.video_url is None
    assert job.error is None
    assert job.completed_at is None


def test_unknown_job():
    async def scenario():
        registry = JobRegistry()
        return (
            await registry.get("missing"),
            await registry.advance("missing", ProgressStep.ANALYZING_HISTORY),
            await registry.fail("missing", "boom"),
        )

    assert _run(scenario()) == (None, None, None)


def test_step_never_goes_backwards():
    async def scenario():
        registry = JobRegistry()
        job = JobRecord(repo_url="https://github.com/o/r")
        await registry.insert(job)
        await registry.advance(job.id, ProgressStep.GENERATING_VISUALIZATION)
        await registry.advance(job.id, ProgressStep.ANALYZING_HISTORY)
        return await registry.get(job.id)

    assert _run(scenario()).step == ProgressStep.GENERATING_VISUALIZATION


def test_entries_are_replaced_not_mutated():
    async def scenario():
        registry = JobRegistry()
        job = JobRecord(repo_url="https://github.com/o/r")
        await registry.insert(job)
        before = await registry.get(job.id)
        await registry.advance(job.id, ProgressStep.ANALYZING_HISTORY)
        return before, await registry.get(job.id)

    before, after = _run(scenario())
    assert before.step == ProgressStep.INITIALIZING_PROJECT
    assert after.step == ProgressStep.ANALYZING_HISTORY


def test_completed_job_is_frozen():
    async def scenario():
        registry = JobRegistry()
        job = JobRecord(repo_url="https://github.com/o/r")
        await registry.insert(job)
        await registry.complete(job.id, "/gource_videos/x.mp4")
        failed = await registry.fail(job.id, "late failure")
        stop = await registry.stop(job.id)
        return failed, stop, await registry.get(job.id)

    failed, stop, job = _run(scenario())
    assert failed is None
    assert stop == StopResult.ALREADY_TERMINAL
    assert job.status == JobState.COMPLETED
    assert job.video_url == "/gource_videos/x.mp4"
    assert job.error is None
    assert job.completed_at is not None


def test_failed_job_never_gets_video():
    async def scenario():
        registry = JobRegistry()
        job = JobRecord(repo_url="https://github.com/o/r")
        await registry.insert(job)
        await registry.fail(job.id, "Failed to clone repository")
        await registry.complete(job.id, "/gource_videos/x.mp4")
        await registry.advance(job.id, ProgressStep.GENERATING_VISUALIZATION)
        return await registry.get(job.id)

    job = _run(scenario())
    assert job.status == JobState.FAILED
    assert job.error == "Failed to clone repository"
    assert job.video_url is None
    assert job.step == ProgressStep.INITIALIZING_PROJECT


def test_stop_running_job():
    async def scenario():
        registry = JobRegistry()
        job = JobRecord(repo_url="https://github.com/o/r")
        await registry.insert(job)
        first = await registry.stop(job.id)
        second = await registry.stop(job.id)
        missing = await registry.stop("missing")
        return first, second, missing, await registry.get(job.id)

    first, second, missing, job = _run(scenario())
    assert first == StopResult.STOPPED
    assert second == StopResult.ALREADY_TERMINAL
    assert missing == StopResult.NOT_FOUND
    assert job.error == STOPPED_BY_USER
    assert job.status == JobState.FAILED


def test_completed_count():
    async def scenario():
        registry = JobRegistry()
        jobs = [JobRecord(repo_url="https://github.com/o/r") for _ in range(3)]
        for job in jobs:
            await registry.insert(job)
        await registry.complete(jobs[0].id, "/a.mp4")
        await registry.complete(jobs[1].id, "/b.mp4")
        await registry.fail(jobs[2].id, "nope")
        return await registry.completed_count(), len(registry)

    assert _run(scenario()) == (2, 3)


def test_step_labels():
    assert ProgressStep.INITIALIZING_PROJECT.label == "InitializingProject"
    assert ProgressStep.ANALYZING_HISTORY.label == "AnalyzingHistory"
    assert ProgressStep.GENERATING_VISUALIZATION.label == "GeneratingVisualization"


def test_returned_records_are_read_only():
    async def scenario():
        registry = JobRegistry()
        job = JobRecord(repo_url="https://github.com/o/r")
        await registry.insert(job)
        stored = await registry.get(job.id)
        with pytest.raises(ValidationError):
            stored.error = "edited outside the registry"
        return await registry.get(job.id)

    job = _run(scenario())
    assert job.error is None
    assert job.status == JobState.RUNNING
