"""Job dispatcher interface."""

from abc import ABC, abstractmethod
from typing import Optional

from app.jobs.models import JobRecord, RenderSettings, StopResult


class JobDispatcher(ABC):
    """What the API layer needs from whatever runs visualization jobs."""

    @abstractmethod
    async def submit(
        self,
        repo_url: str,
        access_token: Optional[str] = None,
        render_settings: Optional[RenderSettings] = None,
    ) -> str:
        """Register a job and start it in the background. Returns job_id."""
        ...

    @abstractmethod
    async def get_status(self, job_id: str) -> Optional[JobRecord]:
        """Get current status of a job."""
        ...

    @abstractmethod
    async def stop_job(self, job_id: str) -> StopResult:
        """Mark a running job as stopped by the user."""
        ...

    @abstractmethod
    async def completed_count(self) -> int:
        """Number of videos generated by this instance."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the dispatcher."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""
        ...
