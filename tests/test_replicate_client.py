from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

from video_chapters.errors import ReplicateError, ServerMisconfiguration
from video_chapters.replicate_client import ReplicateClient


def make_response(payload: Any, status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        error = requests.HTTPError(f"{status_code} error", response=response)
        response.raise_for_status.side_effect = error
    else:
        response.raise_for_status.return_value = None
    return response


class FakeSession:
    def __init__(self, responses: list[MagicMock]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> MagicMock:
        self.calls.append({"method": method, "url": url, **kwargs})
        return self.responses.pop(0)


def make_client(session: FakeSession, **kwargs: Any) -> ReplicateClient:
    return ReplicateClient(api_token="r8_token", session=session, poll_interval=0, **kwargs)  # type: ignore[arg-type]


def test_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)

    with pytest.raises(ServerMisconfiguration):
        ReplicateClient()


def test_token_falls_back_to_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPLICATE_API_TOKEN", "from-env")

    assert ReplicateClient().api_token == "from-env"


def test_run_versioned_model_returns_output_when_prediction_finishes_inline() -> None:
    session = FakeSession([make_response({"id": "p1", "status": "succeeded", "output": {"text": "hi"}})])
    client = make_client(session)

    output = client.run("owner/model:abc123", {"audio": "https://files/1"})

    assert output == {"text": "hi"}
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.replicate.com/v1/predictions"
    assert call["json"] == {"version": "abc123", "input": {"audio": "https://files/1"}}
    assert call["headers"]["Authorization"] == "Bearer r8_token"
    assert call["headers"]["Prefer"] == "wait=60"


def test_run_official_model_uses_model_endpoint_and_polls() -> None:
    session = FakeSession(
        [
            make_response({"id": "p2", "status": "starting"}),
            make_response({"id": "p2", "status": "processing"}),
            make_response({"id": "p2", "status": "succeeded", "output": ["00:00 Intro", "\n00:15 Topic"]}),
        ]
    )
    client = make_client(session)

    output = client.run("anthropic/claude-3.5-haiku", {"prompt": "x"})

    assert output == ["00:00 Intro", "\n00:15 Topic"]
    assert session.calls[0]["url"] == "https://api.replicate.com/v1/models/anthropic/claude-3.5-haiku/predictions"
    assert session.calls[0]["json"] == {"input": {"prompt": "x"}}
    assert [call["method"] for call in session.calls[1:]] == ["GET", "GET"]
    assert session.calls[1]["url"] == "https://api.replicate.com/v1/predictions/p2"


def test_run_raises_on_failed_prediction() -> None:
    session = FakeSession([make_response({"id": "p3", "status": "failed", "error": "CUDA out of memory"})])
    client = make_client(session)

    with pytest.raises(ReplicateError, match="CUDA out of memory"):
        client.run("owner/model:v", {})


def test_http_errors_include_service_detail() -> None:
    session = FakeSession([make_response({"detail": "Invalid token"}, status_code=401)])
    client = make_client(session)

    with pytest.raises(ReplicateError, match="Invalid token"):
        client.run("owner/model:v", {})


def test_network_errors_are_wrapped() -> None:
    session = MagicMock()
    session.request.side_effect = requests.ConnectionError("connection reset")
    client = ReplicateClient(api_token="t", session=session)

    with pytest.raises(ReplicateError, match="connection reset"):
        client.create_prediction("owner/model:v", {})


def test_wait_gives_up_after_prediction_timeout() -> None:
    session = FakeSession([make_response({"id": "p4", "status": "processing"}) for _ in range(5)])
    client = make_client(session, prediction_timeout=-1)

    with pytest.raises(ReplicateError, match="timed out"):
        client.wait({"id": "p4", "status": "starting"})


def test_upload_file_posts_multipart_and_returns_url(tmp_path: Path) -> None:
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"ID3audio")
    session = FakeSession([make_response({"id": "f1", "urls": {"get": "https://api.replicate.com/v1/files/f1"}})])
    client = make_client(session)

    url = client.upload_file(audio)

    assert url == "https://api.replicate.com/v1/files/f1"
    call = session.calls[0]
    assert call["url"] == "https://api.replicate.com/v1/files"
    name, _handle, content_type = call["files"]["content"]
    assert name == "clip.mp3"
    assert content_type == "audio/mpeg"


def test_upload_file_without_url_is_an_error(tmp_path: Path) -> None:
    audio = tmp_path / "clip.mp3"
    audio.write_bytes(b"ID3")
    client = make_client(FakeSession([make_response({"id": "f2"})]))

    with pytest.raises(ReplicateError):
        client.upload_file(audio)


def test_invalid_model_reference() -> None:
    client = make_client(FakeSession([]))

    with pytest.raises(ValueError):
        client.create_prediction("no-owner", {})
