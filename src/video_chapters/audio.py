from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import ConversionError, SpawnError

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

DEFAULT_FFMPEG_COMMAND = "ffmpeg"


def _bundled_ffmpeg() -> str | None:
    try:
        import imageio_ffmpeg
    except ImportError:
        return None

    try:
        path = imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError:  # no binary shipped for this platform
        return None
    return path if path and Path(path).exists() else None


def resolve_transcoder_path(settings: Settings | None = None) -> str:
    """Return the ffmpeg executable to use.

    Resolution order: ``settings.ffmpeg_path``, an ``ffmpeg`` on ``PATH``, the
    binary bundled with ``imageio-ffmpeg``, and finally the bare command name.
    """

    override = settings.ffmpeg_path if settings is not None else None
    if override:
        return override

    on_path = shutil.which(DEFAULT_FFMPEG_COMMAND)
    if on_path:
        return on_path

    bundled = _bundled_ffmpeg()
    if bundled:
        return bundled

    return DEFAULT_FFMPEG_COMMAND


def build_ffmpeg_command(
    ffmpeg_path: str,
    input_video: Path,
    output_path: Path,
    *,
    sample_rate: int = 16000,
    audio_bitrate: str = "48k",
    audio_format: str = "mp3",
) -> list[str]:
    return [
        ffmpeg_path,
        "-y",
        "-i",
        str(input_video),
        "-vn",
        "-ac",
        "1",
        "-ar",
        str(sample_rate),
        "-b:a",
        audio_bitrate,
        "-f",
        audio_format,
        str(output_path),
    ]


def extract_audio(
    input_video: Path | str,
    output_path: Path | str,
    *,
    ffmpeg_path: str = DEFAULT_FFMPEG_COMMAND,
    sample_rate: int = 16000,
    audio_bitrate: str = "48k",
    audio_format: str = "mp3",
    timeout: float | None = None,
) -> Path:
    """Strip the video stream from ``input_video`` and write compact mono audio.

    Defaults give mono 16 kHz 48 kbps MP3, roughly 80-90 MB for four hours of
    speech. ``output_path`` is overwritten unconditionally.

    Raises:
        SpawnError: ffmpeg could not be started.
        ConversionError: ffmpeg exited with a nonzero status or hit ``timeout``.
    """

    source = Path(input_video)
    target = Path(output_path)
    command = build_ffmpeg_command(
        ffmpeg_path,
        source,
        target,
        sample_rate=sample_rate,
        audio_bitrate=audio_bitrate,
        audio_format=audio_format,
    )

    logger.info("Executing: %s", " ".join(command))

    try:
        completed = subprocess.run(
            command,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        # Partial output on timeout is bytes even with text=True.
        stderr = exc.stderr or ""
        if isinstance(stderr, bytes):
            stderr = stderr.decode(errors="replace")
        logger.warning("ffmpeg timed out after %ss: %s", timeout, stderr[-2000:])
        raise ConversionError(None, stderr) from exc
    except OSError as exc:
        raise SpawnError(ffmpeg_path, exc) from exc

    if completed.returncode != 0:
        stderr = completed.stderr or ""
        logger.warning("ffmpeg exited with code %s: %s", completed.returncode, stderr[-2000:])
        raise ConversionError(completed.returncode, stderr)

    logger.debug("ffmpeg wrote %s", target)
    return target
