"""Job management API: submit jobs, poll status, stop, download videos."""

import uuid
from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse
from pydantic import BaseModel
from typing import Optional

from app.jobs.models import JobRecord, RenderSettings, StopResult

router = APIRouter()

# These will be set by main.py during lifespan
_dispatcher = None
_artifact_store = None


def set_dispatcher(dispatcher):
    global _dispatcher
    _dispatcher = dispatcher


def set_artifact_store(store):
    global _artifact_store
    _artifact_store = store


class JobSubmitRequest(BaseModel):
    repo_url: str
    access_token: Optional[str] = None
    settings: Optional[RenderSettings] = None


class JobSubmitResponse(BaseModel):
    job_id: str


def job_to_response(job: JobRecord) -> dict:
    return {
        "job_id": job.id,
        "status": job.status.value,
        "step": job.step.label,
        "repo_url": job.repo_url,
        "video_url": job.video_url,
        "error": job.error,
        "settings": job.settings.model_dump(),
        "created_at": job.created_at.isoformat(),
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }


def _require_dispatcher():
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Job dispatcher not initialized")
    return _dispatcher


@router.post("/jobs", response_model=JobSubmitResponse)
async def submit_job(request: JobSubmitRequest):
    """Start a visualization job. Failures show up later in the job status."""
    dispatcher = _require_dispatcher()
    job_id = await dispatcher.submit(
        request.repo_url,
        access_token=request.access_token,
        render_settings=request.settings,
    )
    return JobSubmitResponse(job_id=job_id)


@router.get("/jobs/{job_id}")
async def get_job_status(job_id: str):
    dispatcher = _require_dispatcher()
    job = await dispatcher.get_status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job_to_response(job)


@router.api_route("/jobs/{job_id}/stop", methods=["GET", "POST"])
async def stop_job(job_id: str):
    """Mark a running job as failed. A render already in progress keeps
    running, but its result is discarded."""
    dispatcher = _require_dispatcher()
    result = await dispatcher.stop_job(job_id)
    if result == StopResult.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Job not found")
    if result == StopResult.ALREADY_TERMINAL:
        raise HTTPException(status_code=409, detail="Job already completed or errored")
    return {"job_id": job_id, "status": "stopped"}


@router.get("/jobs/{job_id}/video")
async def get_job_video(job_id: str):
    """Download the rendered MP4 while it is still retained on disk."""
    if _artifact_store is None:
        raise HTTPException(status_code=503, detail="Video store not initialized")

    # Only canonical UUIDs map to files, so nothing else can reach the filesystem.
    try:
        job_id = str(uuid.UUID(job_id))
    except ValueError:
        raise HTTPException(status_code=404, detail="Video not found")

    if not _artifact_store.video_exists(job_id):
        raise HTTPException(status_code=404, detail="Video not found")

    path = _artifact_store.get_video_path(job_id)
    return FileResponse(path, media_type="video/mp4", filename=_artifact_store.video_filename(job_id))


@router.get("/count")
async def generation_count():
    """Number of videos generated since this instance started."""
    dispatcher = _require_dispatcher()
    return {"count": await dispatcher.completed_count()}
