"""Health check endpoint."""

from fastapi import APIRouter
import platform
import shutil
import sys

from app.config import settings

router = APIRouter()


def _tool_status() -> dict:
    tools = {
        "git": settings.git_binary,
        "gource": settings.gource_binary,
        "ffmpeg": settings.ffmpeg_binary,
    }
    if settings.virtual_display_command:
        tools["virtual_display"] = settings.virtual_display_command[0]
    return {name: shutil.which(binary) is not None for name, binary in tools.items()}


@router.get("/health")
async def health_check():
    """Service health and availability of the external render tools."""
    return {
        "status": "healthy",
        "tools": _tool_status(),
        "python_version": sys.version,
        "platform": platform.platform(),
    }
