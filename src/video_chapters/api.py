"""HTTP endpoints for transcription and chapter generation."""

from __future__ import annotations

import asyncio
import logging
import platform
import sys
import tempfile
from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .audio import resolve_transcoder_path
from .config import Settings, get_settings
from .errors import ChapterPipelineError, ValidationError
from .pipeline import generate_chapters, transcribe_media
from .transcript import normalize

logger = logging.getLogger(__name__)

router = APIRouter()

SettingsDep = Annotated[Settings, Depends(get_settings)]


class GenerateRequest(BaseModel):
    transcript: Optional[str] = None


class GenerateResponse(BaseModel):
    chapters: str


class TranscribeResponse(BaseModel):
    """Raw transcription output plus the ``[M:SS] text`` rendering used for prompting."""

    transcript: Any
    formatted: str


@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(
    settings: SettingsDep,
    file: Annotated[Optional[UploadFile], File()] = None,
) -> TranscribeResponse:
    if file is None:
        raise ValidationError("No file provided")

    logger.info("[Transcribe] file received: %s (%s)", file.filename, file.content_type)
    try:
        # Blocking subprocess and HTTP work runs in a thread to keep the event loop free.
        result = await asyncio.to_thread(
            transcribe_media,
            file.file,
            settings=settings,
            filename=file.filename,
        )
    finally:
        await file.close()

    return TranscribeResponse(transcript=result.raw, formatted=normalize(result))


@router.post("/generate", response_model=GenerateResponse)
async def generate(body: GenerateRequest, settings: SettingsDep) -> GenerateResponse:
    chapters = await asyncio.to_thread(generate_chapters, body.transcript, settings=settings)
    return GenerateResponse(chapters=chapters)


@router.get("/health")
async def health(settings: SettingsDep) -> dict[str, Any]:
    checks = {
        "transcoder": resolve_transcoder_path(settings),
        "apiTokenPresent": settings.api_token_present,
        "pythonVersion": platform.python_version(),
        "platform": sys.platform,
        "tmpDir": settings.scratch_dir or tempfile.gettempdir(),
    }
    logger.info("[Health] Checks: %s", checks)
    return {"status": "ok", "checks": checks}


@router.get("/ping")
async def ping() -> dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.post("/ping")
async def ping_upload(file: Annotated[Optional[UploadFile], File()] = None) -> dict[str, Any]:
    size = 0
    if file is not None:
        size = file.size if file.size is not None else len(await file.read())
        await file.close()
    return {"status": "ok", "fileReceived": file is not None, "fileSize": size}


async def _pipeline_error_handler(_request: Request, exc: ChapterPipelineError) -> JSONResponse:
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(level, "%s: %s", exc.__class__.__name__, exc.message)
    return JSONResponse(exc.to_payload(), status_code=exc.status_code)


async def _request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse({"error": "Invalid request", "details": str(exc.errors())}, status_code=400)


async def _unexpected_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", exc_info=exc)
    return JSONResponse({"error": "Internal server error", "details": str(exc)}, status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Video Chapters API",
        description="Transcribe uploaded videos and generate YouTube chapter timestamps",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ChapterPipelineError, _pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run("video_chapters.api:app", host="0.0.0.0", port=8000)
