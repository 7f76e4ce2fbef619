"""Repository URL validation and rewriting."""

from typing import List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

from app.config import settings
from app.jobs.errors import InvalidUrl, UnsupportedRepository


def validate_repo_url(repo_url: str) -> str:
    """Check the URL is well formed and hosted on the allowed service.

    Returns the stripped URL. Raises InvalidUrl or UnsupportedRepository.
    """
    repo_url = (repo_url or "").strip()
    try:
        parts = urlsplit(repo_url)
        host, _port = parts.hostname, parts.port
    except ValueError:
        raise InvalidUrl()

    if parts.scheme not in ("http", "https") or not host:
        raise InvalidUrl()
    if host.lower() != settings.allowed_repo_host:
        raise UnsupportedRepository()
    return repo_url


def authenticated_url(repo_url: str, token: Optional[str]) -> str:
    """Embed ``oauth2:<token>`` credentials in the URL for git clone."""
    if token is None:
        return repo_url
    parts = urlsplit(repo_url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    netloc = f"oauth2:{quote(token, safe='')}@{netloc}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def path_segments(repo_url: str) -> List[str]:
    """Non-empty path components, with a trailing ``.git`` removed."""
    try:
        path = urlsplit(repo_url).path
    except ValueError:
        return []
    segments = [s for s in path.split("/") if s]
    if segments and segments[-1].endswith(".git"):
        segments[-1] = segments[-1][: -len(".git")]
    return [s for s in segments if s]


def redact_url(repo_url: str) -> str:
    """Drop any ``user:password@`` part so the URL is safe to log."""
    try:
        parts = urlsplit(repo_url)
        host, port = parts.hostname, parts.port
    except ValueError:
        return "<unparseable url>"
    if "@" not in parts.netloc:
        return repo_url
    netloc = f"{host or ''}:{port}" if port else (host or "")
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
