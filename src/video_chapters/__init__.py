"""Video transcription and YouTube chapter generation pipeline."""

from .asr_client import WhisperTranscriptionClient
from .audio import extract_audio, resolve_transcoder_path
from .chapters import ChapterGenerator
from .config import Settings, get_settings
from .errors import (
    ChapterPipelineError,
    ConversionError,
    GenerationError,
    ServerMisconfiguration,
    SpawnError,
    TranscriptionError,
    UploadTooLargeError,
    ValidationError,
)
from .pipeline import generate_chapters, process_video, transcribe_media
from .scratch import ScratchPaths, allocate, release, scratch_files
from .transcript import (
    OpaqueTranscript,
    StructuredTranscript,
    TranscriptSegment,
    UnrecognizedTranscript,
    normalize,
    parse_transcription_output,
)

__all__ = [
    "ChapterGenerator",
    "ChapterPipelineError",
    "ConversionError",
    "GenerationError",
    "OpaqueTranscript",
    "ScratchPaths",
    "ServerMisconfiguration",
    "Settings",
    "SpawnError",
    "StructuredTranscript",
    "TranscriptSegment",
    "TranscriptionError",
    "UnrecognizedTranscript",
    "UploadTooLargeError",
    "ValidationError",
    "WhisperTranscriptionClient",
    "allocate",
    "extract_audio",
    "generate_chapters",
    "get_settings",
    "normalize",
    "parse_transcription_output",
    "process_video",
    "release",
    "resolve_transcoder_path",
    "scratch_files",
    "transcribe_media",
]
