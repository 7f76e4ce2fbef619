"""Video pacing: how long one day of history stays on screen."""

import logging

from app.config import settings

logger = logging.getLogger(__name__)

# Target total video length in seconds
MIN_DURATION = 60.0
MAX_DURATION = 100.0

# Histories with more commit days than this get MAX_DURATION
THRESHOLD = 1000

# Absolute bounds on the renderer's --seconds-per-day
MIN_SECONDS_PER_DAY = 0.00001
MAX_SECONDS_PER_DAY = 2.0


def calculate_seconds_per_day(days_with_commits: int) -> float:
    """Map the number of distinct commit days to a per-day duration.

    The target length grows linearly from MIN_DURATION to MAX_DURATION as the
    history approaches THRESHOLD days and stays at MAX_DURATION beyond it.
    The per-day value is clamped, so tiny histories don't linger and empty
    ones return the floor.
    """
    if days_with_commits <= 0:
        return MIN_SECONDS_PER_DAY

    if days_with_commits <= THRESHOLD:
        target_duration = MIN_DURATION + (MAX_DURATION - MIN_DURATION) * (
            days_with_commits / THRESHOLD
        )
    else:
        target_duration = MAX_DURATION

    seconds_per_day = target_duration / days_with_commits
    clamped = min(max(seconds_per_day, MIN_SECONDS_PER_DAY), MAX_SECONDS_PER_DAY)

    logger.info(
        "Calculated seconds per day: %s for %d days with commits. Target duration: %s",
        clamped, days_with_commits, target_duration,
    )
    return clamped


def should_hide_filenames(total_commits: int) -> bool:
    """Large histories render without file labels."""
    return total_commits > settings.hide_filenames_commit_threshold
