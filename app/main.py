"""Gitsight API - FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1.router import v1_router, compat_router_root
from app.api.v1.health import router as health_root_router
from app.api.v1 import jobs as jobs_api
from app.jobs.orchestrator import JobOrchestrator
from app.jobs.registry import JobRegistry
from app.storage.artifacts import ArtifactStore
from app.storage.retention import RetentionSweeper

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info("Starting Gitsight API on port %s", settings.port)
    logger.info("Output dir: %s", settings.output_dir)

    store = ArtifactStore(
        settings.output_dir,
        ttl_hours=settings.video_ttl_hours,
        url_prefix=settings.video_url_prefix,
    )
    registry = JobRegistry()

    orchestrator = JobOrchestrator(registry, store)
    await orchestrator.start()
    logger.info("Job orchestrator started")

    sweeper = RetentionSweeper(store, interval_seconds=settings.cleanup_interval_seconds)
    await sweeper.start()
    logger.info(
        "Retention sweep every %ss, keeping videos for %sh",
        settings.cleanup_interval_seconds, settings.video_ttl_hours,
    )

    # Wire orchestrator and store into API endpoints
    jobs_api.set_dispatcher(orchestrator)
    jobs_api.set_artifact_store(store)

    yield

    # Shutdown
    logger.info("Shutting down Gitsight API")
    jobs_api.set_dispatcher(None)
    jobs_api.set_artifact_store(None)
    await sweeper.stop()
    await orchestrator.stop()


app = FastAPI(
    title="Gitsight API",
    description="Renders Git repository history as Gource videos",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

# Mount routers
app.include_router(health_root_router, tags=["health"])  # GET /health at root
app.include_router(v1_router)  # All /api/v1/* endpoints
app.include_router(compat_router_root)  # /start-gource, /job-status, /video compat layer
