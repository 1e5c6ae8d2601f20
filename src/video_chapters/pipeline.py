from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, BinaryIO, Optional

from .asr_client import WhisperTranscriptionClient
from .audio import extract_audio, resolve_transcoder_path
from .chapters import ChapterGenerator
from .config import Settings, get_settings
from .errors import ChapterPipelineError, ValidationError
from .replicate_client import ReplicateClient
from .scratch import scratch_files, write_input
from .transcript import TranscriptionResult, normalize

logger = logging.getLogger(__name__)

STRATEGIES = ("transcode", "direct")


def _replicate_client(settings: Settings) -> ReplicateClient:
    return ReplicateClient(
        api_token=settings.require_api_token(),
        base_url=settings.replicate_base_url,
        timeout=settings.request_timeout,
        prediction_timeout=settings.prediction_timeout,
    )


def _input_suffix(filename: str | None) -> str:
    suffix = Path(filename).suffix if filename else ""
    if len(suffix) > 1 and suffix[1:].isalnum():
        return suffix.lower()
    return ".bin"


def transcribe_media(
    stream: BinaryIO,
    *,
    settings: Optional[Settings] = None,
    transcriber: Optional[WhisperTranscriptionClient] = None,
    filename: str | None = None,
    request_id: str | None = None,
    strategy: str | None = None,
) -> TranscriptionResult:
    """Copy an uploaded video to scratch, extract its audio and transcribe it.

    The credential is checked before anything touches the disk. Scratch files
    are removed on every exit path.
    """

    settings = settings or get_settings()
    settings.require_api_token()

    chosen = (strategy or settings.transcription_strategy).lower()
    if chosen not in STRATEGIES:
        raise ValueError(f"Unsupported transcription strategy: {chosen}")

    if transcriber is None:
        transcriber = WhisperTranscriptionClient(
            client=_replicate_client(settings),
            model=settings.transcription_model,
            batch_size=settings.transcription_batch_size,
        )

    with scratch_files(
        request_id,
        directory=settings.scratch_dir,
        prefix=settings.scratch_prefix,
        input_suffix=_input_suffix(filename),
    ) as paths:
        size = write_input(paths, stream, max_bytes=settings.max_upload_bytes)
        if size == 0:
            raise ValidationError("Uploaded file is empty")
        logger.info("[%s] received %d bytes", paths.request_id, size)

        if chosen == "direct":
            logger.info("[%s] transcribing upload without transcoding", paths.request_id)
            return transcriber.transcribe(paths.input_path)

        logger.info("[%s] transcoding", paths.request_id)
        extract_audio(
            paths.input_path,
            paths.audio_path,
            ffmpeg_path=resolve_transcoder_path(settings),
            timeout=settings.transcode_timeout,
        )

        logger.info("[%s] transcribing", paths.request_id)
        return transcriber.transcribe(paths.audio_path)


def generate_chapters(
    transcript: str | None,
    *,
    settings: Optional[Settings] = None,
    generator: Optional[ChapterGenerator] = None,
) -> str:
    if not isinstance(transcript, str) or not transcript.strip():
        raise ValidationError("Transcript is required")

    settings = settings or get_settings()
    settings.require_api_token()

    if generator is None:
        generator = ChapterGenerator(
            client=_replicate_client(settings),
            model=settings.generation_model,
            max_tokens=settings.generation_max_tokens,
        )

    logger.info("generating chapters")
    return generator.generate(transcript)


def process_video(
    video_path: Path | str,
    *,
    settings: Optional[Settings] = None,
    transcriber: Optional[WhisperTranscriptionClient] = None,
    generator: Optional[ChapterGenerator] = None,
    strategy: str | None = None,
    transcript_only: bool = False,
) -> dict[str, Any]:
    """Run the end-to-end pipeline from a local video file to a chapter list."""

    video = Path(video_path)
    if not video.is_file():
        raise ValidationError(f"Video file does not exist: {video}")

    with video.open("rb") as stream:
        result = transcribe_media(
            stream,
            settings=settings,
            transcriber=transcriber,
            filename=video.name,
            strategy=strategy,
        )

    transcript = normalize(result)
    output: dict[str, Any] = {"transcript": transcript, "chapters": None}
    if transcript_only:
        return output

    try:
        output["chapters"] = generate_chapters(transcript, settings=settings, generator=generator)
    except ChapterPipelineError as exc:  # keep the transcript when chapter generation fails
        output["chapters_error"] = exc.details or exc.message
    return output
