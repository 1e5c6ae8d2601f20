from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from video_chapters.audio import extract_audio, resolve_transcoder_path
from video_chapters.config import Settings
from video_chapters.errors import ConversionError, SpawnError

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="fake ffmpeg is a shell script")


@pytest.fixture
def sample_video(tmp_path: Path) -> Path:
    video = tmp_path / "sample.mp4"
    video.write_bytes(b"fake-video-bytes")
    return video


def write_fake_ffmpeg(directory: Path, body: str) -> Path:
    script = directory / "fake-ffmpeg"
    script.write_text("#!/bin/sh\n" + body + "\n")
    script.chmod(0o755)
    return script


def test_extract_audio_invokes_ffmpeg_with_fixed_arguments(sample_video: Path, tmp_path: Path) -> None:
    with patch("video_chapters.audio.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0, stderr="")
        output_path = extract_audio(sample_video, tmp_path / "out.mp3", ffmpeg_path="/opt/ffmpeg")

    assert output_path == tmp_path / "out.mp3"
    mock_run.assert_called_once()
    called_args = mock_run.call_args[0][0]
    assert called_args == [
        "/opt/ffmpeg",
        "-y",
        "-i",
        str(sample_video),
        "-vn",
        "-ac",
        "1",
        "-ar",
        "16000",
        "-b:a",
        "48k",
        "-f",
        "mp3",
        str(tmp_path / "out.mp3"),
    ]
    assert mock_run.call_args.kwargs["stderr"] == subprocess.PIPE
    assert mock_run.call_args.kwargs["timeout"] is None


def test_extract_audio_raises_spawn_error_when_binary_missing(sample_video: Path, tmp_path: Path) -> None:
    missing = tmp_path / "no-such-ffmpeg"

    with pytest.raises(SpawnError) as excinfo:
        extract_audio(sample_video, tmp_path / "out.mp3", ffmpeg_path=str(missing))

    assert excinfo.value.executable == str(missing)
    assert isinstance(excinfo.value.error, OSError)
    assert excinfo.value.status_code == 500


@posix_only
def test_extract_audio_raises_conversion_error_with_diagnostics(sample_video: Path, tmp_path: Path) -> None:
    ffmpeg = write_fake_ffmpeg(tmp_path, 'echo "Invalid data found when processing input" >&2\nexit 1')

    with pytest.raises(ConversionError) as excinfo:
        extract_audio(sample_video, tmp_path / "out.mp3", ffmpeg_path=str(ffmpeg))

    assert excinfo.value.exit_code == 1
    assert "Invalid data found" in excinfo.value.stderr
    assert excinfo.value.details == "Invalid data found when processing input"


@posix_only
def test_extract_audio_writes_output_with_fake_ffmpeg(sample_video: Path, tmp_path: Path) -> None:
    ffmpeg = write_fake_ffmpeg(tmp_path, 'for last; do :; done\nprintf "ID3" > "$last"')

    output = extract_audio(sample_video, tmp_path / "audio.mp3", ffmpeg_path=str(ffmpeg))

    assert output.read_bytes() == b"ID3"


@posix_only
def test_extract_audio_timeout_keeps_ffmpeg_diagnostics(sample_video: Path, tmp_path: Path) -> None:
    ffmpeg = write_fake_ffmpeg(tmp_path, 'echo "frame=   10 progress" >&2\nexec sleep 5')

    with pytest.raises(ConversionError) as excinfo:
        extract_audio(sample_video, tmp_path / "out.mp3", ffmpeg_path=str(ffmpeg), timeout=1)

    assert excinfo.value.exit_code is None
    assert "frame=" in excinfo.value.stderr
    assert excinfo.value.details == "frame=   10 progress"


def test_extract_audio_timeout_without_output(sample_video: Path, tmp_path: Path) -> None:
    with patch(
        "video_chapters.audio.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=1, stderr=None),
    ):
        with pytest.raises(ConversionError) as excinfo:
            extract_audio(sample_video, tmp_path / "out.mp3", timeout=1)

    assert excinfo.value.exit_code is None
    assert excinfo.value.stderr == ""
    assert excinfo.value.details is None


def test_resolve_transcoder_prefers_configured_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("video_chapters.audio.shutil.which", lambda _name: "/usr/bin/ffmpeg")

    assert resolve_transcoder_path(Settings(ffmpeg_path="/custom/ffmpeg")) == "/custom/ffmpeg"


def test_resolve_transcoder_uses_search_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("video_chapters.audio.shutil.which", lambda _name: "/usr/bin/ffmpeg")
    monkeypatch.setattr("video_chapters.audio._bundled_ffmpeg", lambda: "/bundled/ffmpeg")

    assert resolve_transcoder_path(Settings(ffmpeg_path=None)) == "/usr/bin/ffmpeg"


def test_resolve_transcoder_falls_back_to_bundled_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("video_chapters.audio.shutil.which", lambda _name: None)
    monkeypatch.setattr("video_chapters.audio._bundled_ffmpeg", lambda: "/bundled/ffmpeg")

    assert resolve_transcoder_path(Settings(ffmpeg_path=None)) == "/bundled/ffmpeg"


def test_resolve_transcoder_last_resort_is_command_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("video_chapters.audio.shutil.which", lambda _name: None)
    monkeypatch.setattr("video_chapters.audio._bundled_ffmpeg", lambda: None)

    assert resolve_transcoder_path(None) == "ffmpeg"
