"""Web front end compatibility API.

Provides the paths the Gitsight front end already calls:
  POST /start-gource            start a job
  GET  /job-status/{job_id}     poll job progress
  GET|POST /gource/stop/{job_id} stop a job
  GET  /video/{job_id}          stream the finished video

This is a thin layer over the /api/v1/jobs handlers.
"""

from fastapi import APIRouter

from app.api.v1 import jobs

router = APIRouter()


@router.post("/start-gource", response_model=jobs.JobSubmitResponse)
async def start_gource(request: jobs.JobSubmitRequest):
    return await jobs.submit_job(request)


@router.get("/job-status/{job_id}")
async def job_status(job_id: str):
    return await jobs.get_job_status(job_id)


@router.api_route("/gource/stop/{job_id}", methods=["GET", "POST"])
async def stop_gource(job_id: str):
    return await jobs.stop_job(job_id)


@router.get("/video/{job_id}")
async def serve_video(job_id: str):
    return await jobs.get_job_video(job_id)
