"""Job record data model for async visualization jobs."""

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional
from pydantic import BaseModel, Field
import uuid


class ProgressStep(IntEnum):
    """Ordered pipeline stages. Values match what the web front end expects."""
    INITIALIZING_PROJECT = 1
    ANALYZING_HISTORY = 2
    GENERATING_VISUALIZATION = 3

    @property
    def label(self) -> str:
        return _STEP_LABELS[self]


_STEP_LABELS = {
    ProgressStep.INITIALIZING_PROJECT: "InitializingProject",
    ProgressStep.ANALYZING_HISTORY: "AnalyzingHistory",
    ProgressStep.GENERATING_VISUALIZATION: "GeneratingVisualization",
}


class JobState(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StopResult(str, Enum):
    STOPPED = "stopped"
    ALREADY_TERMINAL = "already_terminal"
    NOT_FOUND = "not_found"


class RenderSettings(BaseModel):
    """Display options passed through to the renderer."""
    show_file_extension_key: bool = False
    show_usernames: bool = True
    show_dirnames: bool = True
    dir_font_size: int = Field(default=11, ge=1, le=72)
    file_font_size: int = Field(default=10, ge=1, le=72)
    user_font_size: int = Field(default=12, ge=1, le=72)

    model_config = {"frozen": True}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRecord(BaseModel):
    """Tracks the lifecycle of one visualization job.

    ``video_url`` and ``error`` are mutually exclusive; once either is set the
    job is terminal. Records are replaced, not edited, by the registry.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    repo_url: str
    step: ProgressStep = ProgressStep.INITIALIZING_PROJECT
    video_url: Optional[str] = None
    error: Optional[str] = None
    settings: RenderSettings = Field(default_factory=RenderSettings)
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @property
    def is_terminal(self) -> bool:
        return self.video_url is not None or self.error is not None

    @property
    def status(self) -> JobState:
        if self.video_url is not None:
            return JobState.COMPLETED
        if self.error is not None:
            return JobState.FAILED
        return JobState.RUNNING
