from __future__ import annotations


class ChapterPipelineError(RuntimeError):
    """Base class for failures surfaced to callers of the chapter pipeline."""

    status_code: int = 500

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, str]:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ChapterPipelineError):
    """Missing or wrongly typed input; the caller can correct it."""

    status_code = 400


class UploadTooLargeError(ValidationError):
    status_code = 413


class ServerMisconfiguration(ChapterPipelineError):
    """A required credential or setting is absent."""


class SpawnError(ChapterPipelineError):
    """The transcoder executable could not be started."""

    def __init__(self, executable: str, error: OSError) -> None:
        super().__init__(f"FFmpeg spawn error: {error}", details=f"executable: {executable}")
        self.executable = executable
        self.error = error


class ConversionError(ChapterPipelineError):
    """The transcoder started but did not produce the audio file."""

    def __init__(self, exit_code: int | None, stderr: str = "") -> None:
        if exit_code is None:
            message = "FFmpeg did not finish before the timeout"
        else:
            message = f"FFmpeg exited with code {exit_code}"
        super().__init__(message, details=stderr.strip() or None)
        self.exit_code = exit_code
        self.stderr = stderr


class TranscriptionError(ChapterPipelineError):
    pass


class GenerationError(ChapterPipelineError):
    pass


class ReplicateError(RuntimeError):
    """Raised when a request to the Replicate HTTP API fails."""
