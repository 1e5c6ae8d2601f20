from __future__ import annotations

import logging
import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator

from .errors import UploadTooLargeError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "video_chapters"
_COPY_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class ScratchPaths:
    """Request-scoped scratch locations for the uploaded video and its audio."""

    request_id: str
    input_path: Path
    audio_path: Path

    def existing(self) -> list[Path]:
        return [path for path in (self.input_path, self.audio_path) if path.exists()]


def allocate(
    request_id: str | None = None,
    *,
    directory: Path | str | None = None,
    prefix: str = DEFAULT_PREFIX,
    input_suffix: str = ".bin",
) -> ScratchPaths:
    """Build unique scratch paths for one request. Nothing is created on disk."""

    token = request_id or uuid.uuid4().hex
    base = Path(directory) if directory is not None else Path(tempfile.gettempdir())
    suffix = input_suffix if input_suffix.startswith(".") else f".{input_suffix}"
    return ScratchPaths(
        request_id=token,
        input_path=base / f"{prefix}_{token}_input{suffix}",
        audio_path=base / f"{prefix}_{token}_audio.mp3",
    )


def write_input(paths: ScratchPaths, stream: BinaryIO, *, max_bytes: int | None = None) -> int:
    """Copy ``stream`` into ``paths.input_path`` and return the number of bytes written."""

    written = 0
    with paths.input_path.open("wb") as target:
        while True:
            chunk = stream.read(_COPY_CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if max_bytes is not None and written > max_bytes:
                raise UploadTooLargeError(
                    f"File too large. Maximum size is {max_bytes // (1024 * 1024)} MB."
                )
            target.write(chunk)
    return written


def release(paths: ScratchPaths) -> None:
    """Delete every scratch file of ``paths``. Safe to call on absent files; never raises."""

    for path in (paths.input_path, paths.audio_path):
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove scratch file %s: %s", path, exc)


@contextmanager
def scratch_files(
    request_id: str | None = None,
    *,
    directory: Path | str | None = None,
    prefix: str = DEFAULT_PREFIX,
    input_suffix: str = ".bin",
) -> Iterator[ScratchPaths]:
    paths = allocate(request_id, directory=directory, prefix=prefix, input_suffix=input_suffix)
    logger.debug("Allocated scratch files for request %s", paths.request_id)
    try:
        yield paths
    finally:
        release(paths)
