from __future__ import annotations

import logging
import mimetypes
import os
import time
from pathlib import Path
from typing import Any

import requests

from .errors import ReplicateError, ServerMisconfiguration

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"succeeded", "failed", "canceled", "aborted"}


class ReplicateClient:
    """Minimal client for the Replicate predictions and files HTTP API."""

    def __init__(
        self,
        *,
        api_token: str | None = None,
        base_url: str = "https://api.replicate.com/v1",
        timeout: float = 120,
        poll_interval: float = 1.0,
        wait_seconds: int = 60,
        prediction_timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_token = api_token or os.getenv("REPLICATE_API_TOKEN")
        if not self.api_token:
            raise ServerMisconfiguration("REPLICATE_API_TOKEN is not set")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.wait_seconds = wait_seconds
        self.prediction_timeout = prediction_timeout
        self.session = session or requests.Session()

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}"}

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {**self._auth_headers, **kwargs.pop("headers", {})}
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as exc:
            detail = _response_detail(exc.response)
            raise ReplicateError(f"Replicate request to {path} failed: {detail or exc}") from exc
        except requests.RequestException as exc:
            raise ReplicateError(f"Replicate request to {path} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ReplicateError(f"Replicate returned a non-JSON response for {path}") from exc
        if not isinstance(data, dict):
            raise ReplicateError(f"Unexpected Replicate response payload for {path}")
        return data

    def upload_file(self, file_path: Path | str) -> str:
        """Upload ``file_path`` to Replicate file storage and return its URL."""

        path = Path(file_path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        with path.open("rb") as handle:
            data = self._request(
                "POST",
                "files",
                files={"content": (path.name, handle, content_type)},
            )

        url = (data.get("urls") or {}).get("get")
        if not isinstance(url, str) or not url:
            raise ReplicateError("Replicate file upload returned no URL")
        logger.debug("Uploaded %s (%s bytes) to %s", path.name, path.stat().st_size, url)
        return url

    def create_prediction(self, model: str, model_input: dict[str, Any]) -> dict[str, Any]:
        """Start a prediction for ``owner/name`` or ``owner/name:version``."""

        headers = {"Prefer": f"wait={self.wait_seconds}"} if self.wait_seconds else {}
        if ":" in model:
            _, version = model.split(":", 1)
            return self._request(
                "POST",
                "predictions",
                json={"version": version, "input": model_input},
                headers=headers,
            )

        owner, _, name = model.partition("/")
        if not owner or not name:
            raise ValueError(f"Invalid Replicate model reference: {model!r}")
        return self._request(
            "POST",
            f"models/{owner}/{name}/predictions",
            json={"input": model_input},
            headers=headers,
        )

    def wait(self, prediction: dict[str, Any]) -> dict[str, Any]:
        """Poll ``prediction`` until it reaches a terminal status."""

        started = time.monotonic()
        current = prediction
        while current.get("status") not in TERMINAL_STATUSES:
            prediction_id = current.get("id")
            if not prediction_id:
                raise ReplicateError("Replicate prediction has no id to poll")
            if self.prediction_timeout is not None and time.monotonic() - started > self.prediction_timeout:
                raise ReplicateError(f"Replicate prediction {prediction_id} timed out")

            time.sleep(self.poll_interval)
            current = self._request("GET", f"predictions/{prediction_id}")
            logger.debug("Prediction %s status: %s", prediction_id, current.get("status"))
        return current

    def run(self, model: str, model_input: dict[str, Any]) -> Any:
        """Run ``model`` to completion and return its output."""

        prediction = self.wait(self.create_prediction(model, model_input))
        status = prediction.get("status")
        if status != "succeeded":
            error = prediction.get("error") or f"prediction {status}"
            raise ReplicateError(f"Replicate prediction {prediction.get('id')} {status}: {error}")
        return prediction.get("output")


def _response_detail(response: requests.Response | None) -> str:
    if response is None:
        return ""
    try:
        payload = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(payload, dict):
        return str(payload.get("detail") or payload.get("title") or payload)
    return str(payload)
