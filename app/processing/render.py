"""Gource -> ffmpeg render pipeline.

The renderer writes raw PPM frames to stdout, which is connected straight to
the encoder's stdin. Nothing is buffered through an intermediate file, so the
OS pipe provides backpressure between the two processes.
"""

import logging
import os
import subprocess
import tempfile
import time
from typing import IO, List

from app.config import settings
from app.jobs.errors import GourceGenerationFailed
from app.jobs.models import RenderSettings
from app.repository.urls import path_segments

logger = logging.getLogger(__name__)

TITLE_SEPARATOR = " ⋅ "
FALLBACK_TITLE = "Git History"

# How much of each tool's stderr ends up in the log
_STDERR_TAIL_CHARS = 4000


def build_title(repo_url: str) -> str:
    """``owner/repo ⋅ Gitsight``, or a generic title for odd URLs."""
    segments = path_segments(repo_url)
    name = "/".join(segments[-2:]) if len(segments) >= 2 else FALLBACK_TITLE
    return f"{name}{TITLE_SEPARATOR}{settings.product_name}"


def hidden_elements(hide_filenames: bool, render_settings: RenderSettings) -> List[str]:
    hidden = ["progress"]
    if hide_filenames:
        hidden.append("filenames")
    if not render_settings.show_usernames:
        hidden.append("usernames")
    if not render_settings.show_dirnames:
        hidden.append("dirnames")
    return hidden


def build_gource_command(
    repo_path: str,
    seconds_per_day: float,
    hide_filenames: bool,
    render_settings: RenderSettings,
    title: str,
) -> List[str]:
    cmd = list(settings.virtual_display_command) + [
        settings.gource_binary,
        repo_path,
        f"-{settings.video_resolution}",
        "--seconds-per-day", f"{seconds_per_day:.6f}",
        "--auto-skip-seconds", "0.01",
        "--hide", ",".join(hidden_elements(hide_filenames, render_settings)),
        "--max-user-speed", "500",
        "--output-framerate", str(settings.output_framerate),
        "--multi-sampling",
        "--bloom-intensity", "0.2",
        "--user-scale", "0.75",
        "--elasticity", "0.01",
        "--background-colour", "000000",
        "--dir-font-size", str(render_settings.dir_font_size),
        "--file-font-size", str(render_settings.file_font_size),
        "--user-font-size", str(render_settings.user_font_size),
        "--title", title,
        "--stop-at-end",
    ]
    if render_settings.show_file_extension_key:
        cmd.append("--key")
    cmd += ["-o", "-"]
    return cmd


def build_ffmpeg_command(output_path: str) -> List[str]:
    return [
        settings.ffmpeg_binary,
        "-y",
        "-r", str(settings.output_framerate),
        "-f", "image2pipe",
        "-vcodec", "ppm",
        "-i", "-",
        "-vcodec", "libx264",
        "-preset", "fast",
        "-crf", "23",
        "-movflags", "+faststart",
        "-pix_fmt", "yuv420p",
        "-vf", "pad=ceil(iw/2)*2:ceil(ih/2)*2",
        "-f", "mp4",
        output_path,
    ]


def _tail(log_file: IO[bytes]) -> str:
    log_file.seek(0)
    return log_file.read().decode("utf-8", errors="replace")[-_STDERR_TAIL_CHARS:].strip()


def _kill(*procs: subprocess.Popen) -> None:
    for proc in procs:
        if proc.poll() is None:
            proc.kill()
        proc.wait()


def generate_visualization(
    repo_path: str,
    seconds_per_day: float,
    hide_filenames: bool,
    render_settings: RenderSettings,
    output_path: str,
    repo_url: str = "",
) -> None:
    """Render ``repo_path`` to an MP4 at ``output_path``.

    The encoder writes ``<output_path>.part`` which is renamed into place only
    when both processes exit cleanly. Raises GourceGenerationFailed otherwise.
    Blocking; run it in a worker thread.
    """
    gource_cmd = build_gource_command(
        repo_path, seconds_per_day, hide_filenames, render_settings, build_title(repo_url)
    )
    partial_path = f"{output_path}.part"
    ffmpeg_cmd = build_ffmpeg_command(partial_path)
    deadline = time.monotonic() + settings.render_timeout_seconds

    with tempfile.TemporaryFile() as renderer_log, tempfile.TemporaryFile() as encoder_log:
        try:
            renderer = subprocess.Popen(gource_cmd, stdout=subprocess.PIPE, stderr=renderer_log)
        except OSError as exc:
            logger.error("Could not start renderer: %s", exc)
            raise GourceGenerationFailed()

        try:
            encoder = subprocess.Popen(
                ffmpeg_cmd,
                stdin=renderer.stdout,
                stdout=subprocess.DEVNULL,
                stderr=encoder_log,
            )
        except OSError as exc:
            logger.error("Could not start encoder: %s", exc)
            renderer.stdout.close()
            _kill(renderer)
            raise GourceGenerationFailed()
        # The encoder holds its own copy; ours must go so the renderer gets
        # SIGPIPE if the encoder exits early.
        renderer.stdout.close()

        try:
            encoder_rc = encoder.wait(timeout=max(0.0, deadline - time.monotonic()))
            renderer_rc = renderer.wait(timeout=max(0.0, deadline - time.monotonic()))
        except subprocess.TimeoutExpired:
            logger.error("Render timed out after %ss", settings.render_timeout_seconds)
            _kill(renderer, encoder)
            raise GourceGenerationFailed()

        if renderer_rc != 0 or encoder_rc != 0:
            logger.error(
                "Gource generation failed (renderer exit %s, encoder exit %s)\n"
                "renderer stderr: %s\nencoder stderr: %s",
                renderer_rc, encoder_rc, _tail(renderer_log), _tail(encoder_log),
            )
            raise GourceGenerationFailed()

    try:
        os.replace(partial_path, output_path)
    except OSError as exc:
        logger.error("Could not move rendered video into place: %s", exc)
        raise GourceGenerationFailed()
