"""Rendering of transcription service output into timestamped prompt text."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union


@dataclass(frozen=True)
class TranscriptSegment:
    start: float | None
    text: str
    end: float | None = None


@dataclass(frozen=True)
class OpaqueTranscript:
    """The service returned plain text with no timing information."""

    text: str

    @property
    def raw(self) -> str:
        return self.text


@dataclass(frozen=True)
class StructuredTranscript:
    """The service returned timed chunks."""

    segments: tuple[TranscriptSegment, ...]
    raw: Any = field(default=None, compare=False)


@dataclass(frozen=True)
class UnrecognizedTranscript:
    """Any payload without a chunk list; kept for manual inspection."""

    raw: Any


TranscriptionResult = Union[OpaqueTranscript, StructuredTranscript, UnrecognizedTranscript]


def format_timestamp(seconds: float) -> str:
    """Render ``seconds`` as ``M:SS``; minutes are not padded or wrapped into hours."""

    value = max(float(seconds), 0.0)
    minutes = math.floor(value / 60)
    secs = math.floor(value % 60)
    return f"{minutes}:{secs:02d}"


def _as_seconds(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def _parse_chunk(chunk: Any) -> TranscriptSegment:
    if not isinstance(chunk, Mapping):
        return TranscriptSegment(start=None, text="" if chunk is None else str(chunk))

    text = chunk.get("text")
    text = text if isinstance(text, str) else ""

    start = end = None
    timestamp = chunk.get("timestamp")
    if isinstance(timestamp, Sequence) and not isinstance(timestamp, str):
        if len(timestamp) > 0:
            # null start renders as 0:00
            start = 0.0 if timestamp[0] is None else _as_seconds(timestamp[0])
        if len(timestamp) > 1:
            end = _as_seconds(timestamp[1])
    return TranscriptSegment(start=start, text=text, end=end)


def parse_transcription_output(raw: Any) -> TranscriptionResult:
    """Classify a raw transcription payload. Never raises on unexpected shapes."""

    if isinstance(raw, str):
        return OpaqueTranscript(raw)
    if isinstance(raw, Mapping):
        chunks = raw.get("chunks")
        if isinstance(chunks, list):
            return StructuredTranscript(tuple(_parse_chunk(chunk) for chunk in chunks), raw=raw)
    if isinstance(raw, list) and raw and all(isinstance(chunk, Mapping) for chunk in raw):
        return StructuredTranscript(tuple(_parse_chunk(chunk) for chunk in raw), raw=raw)
    return UnrecognizedTranscript(raw)


def render_segments(segments: Sequence[TranscriptSegment]) -> str:
    lines = []
    for segment in segments:
        text = segment.text.strip()
        if segment.start is None:
            lines.append(text)
        else:
            lines.append(f"[{format_timestamp(segment.start)}] {text}")
    return "\n".join(lines)


def normalize(value: TranscriptionResult | Sequence[TranscriptSegment] | Any) -> str:
    """Produce the ``[M:SS] text`` block sent to the chapter generator.

    Accepts a parsed ``TranscriptionResult``, a sequence of segments, or a raw
    payload as accepted by ``parse_transcription_output``. Plain strings pass
    through unchanged; payloads without chunks are serialized as indented JSON.
    """

    if isinstance(value, OpaqueTranscript):
        return value.text
    if isinstance(value, StructuredTranscript):
        return render_segments(value.segments)
    if isinstance(value, UnrecognizedTranscript):
        return json.dumps(value.raw, indent=2, ensure_ascii=False, default=str)
    if isinstance(value, (list, tuple)) and all(isinstance(item, TranscriptSegment) for item in value):
        return render_segments(value)
    return normalize(parse_transcription_output(value))
