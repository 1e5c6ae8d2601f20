from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .config import DEFAULT_TRANSCRIPTION_MODEL
from .errors import ReplicateError, TranscriptionError
from .replicate_client import ReplicateClient
from .transcript import TranscriptionResult, parse_transcription_output

logger = logging.getLogger(__name__)


class WhisperTranscriptionClient:
    """Client for the incredibly-fast-whisper model hosted on Replicate."""

    def __init__(
        self,
        *,
        client: ReplicateClient | None = None,
        api_token: str | None = None,
        model: str = DEFAULT_TRANSCRIPTION_MODEL,
        batch_size: int = 64,
        language: str = "None",
        diarise_audio: bool = False,
    ) -> None:
        self.client = client or ReplicateClient(api_token=api_token)
        self.model = model
        self.batch_size = batch_size
        self.language = language
        self.diarise_audio = diarise_audio

    def build_input(self, audio_url: str) -> dict[str, Any]:
        # "None" is the model's literal value for language auto-detection.
        return {
            "audio": audio_url,
            "task": "transcribe",
            "language": self.language,
            "timestamp": "chunk",
            "batch_size": self.batch_size,
            "diarise_audio": self.diarise_audio,
        }

    def transcribe(self, audio_path: Path | str) -> TranscriptionResult:
        path = Path(audio_path)
        try:
            audio_url = self.client.upload_file(path)
            output = self.client.run(self.model, self.build_input(audio_url))
        except (ReplicateError, OSError) as exc:
            raise TranscriptionError(str(exc) or "Transcription failed") from exc

        result = parse_transcription_output(output)
        logger.info("Transcription finished: %s", type(result).__name__)
        return result
