"""Clone a repository and summarize its commit history with git.

Both functions are blocking and meant to run in a worker thread.
"""

import logging
import os
import subprocess
from datetime import datetime
from typing import NamedTuple, Optional

from app.config import settings
from app.jobs.errors import CloneFailed, CommitCountFailed
from app.repository.urls import authenticated_url, redact_url

logger = logging.getLogger(__name__)


class CommitStats(NamedTuple):
    days_with_commits: int
    total_commits: int


def _git_env() -> dict:
    env = dict(os.environ)
    # Private repos without a token must fail instead of waiting on a prompt.
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def clone_repository(repo_url: str, destination: str, token: Optional[str] = None) -> None:
    """git clone ``repo_url`` into ``destination``. Raises CloneFailed."""
    logger.info("Cloning repository: %s", redact_url(repo_url))
    cmd = [settings.git_binary, "clone", "--", authenticated_url(repo_url, token), destination]
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            env=_git_env(),
            timeout=settings.clone_timeout_seconds,
        )
    except subprocess.TimeoutExpired:
        logger.error("Git clone timed out after %ss: %s", settings.clone_timeout_seconds, redact_url(repo_url))
        raise CloneFailed()
    except OSError as exc:
        logger.error("Could not run git: %s", exc)
        raise CloneFailed()

    if proc.returncode != 0:
        stderr = proc.stderr
        if token:
            stderr = stderr.replace(token, "***")
        logger.error("Git clone failed: %s", stderr.strip())
        raise CloneFailed()

    logger.info("Successfully cloned repository")


def _run_git(repo_path: str, *args: str) -> str:
    try:
        proc = subprocess.run(
            [settings.git_binary, *args],
            cwd=repo_path,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        logger.error("Could not run git %s: %s", args[0], exc)
        raise CommitCountFailed()
    if proc.returncode != 0:
        logger.error("Git %s failed: %s", args[0], proc.stderr.strip())
        raise CommitCountFailed()
    return proc.stdout


def count_days_and_commits(repo_path: str) -> CommitStats:
    """Count distinct commit dates and total commits reachable from HEAD.

    Lines of ``git log`` that are not ``YYYY-MM-DD`` dates are skipped.
    Raises CommitCountFailed if git fails or the total is not a number.
    """
    logger.info("Counting days with commits and total commits in %s", repo_path)

    count_output = _run_git(repo_path, "rev-list", "--count", "HEAD")
    try:
        total_commits = int(count_output.strip())
    except ValueError:
        logger.error("Unexpected commit count output: %r", count_output[:200])
        raise CommitCountFailed()

    log_output = _run_git(repo_path, "log", "--format=%ad", "--date=short")
    days = set()
    for line in log_output.splitlines():
        try:
            days.add(datetime.strptime(line.strip(), "%Y-%m-%d").date())
        except ValueError:
            continue

    return CommitStats(days_with_commits=len(days), total_commits=total_commits)
