"""
Transcript API Endpoint
Returns the plain-text transcript of a YouTube video.
"""

import logging
import secrets
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request, status
from fastapi.responses import JSONResponse

from app.api.schemas import DebugResponse, ErrorResponse, TranscriptResponse
from app.config import Settings, get_settings
from app.services.transcript_service import (
    DiagnosticTrail,
    TranscriptError,
    TranscriptService,
)
from app.services.video_id import extract_video_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transcript"])


class AuthError(Exception):
    """Raised when the bearer token does not match INTERNAL_TOKEN."""
    pass


class BadRequestError(Exception):
    """Raised when the request has no usable video URL."""
    pass


def error_response(
    status_code: int,
    error: str,
    detail: Optional[str] = None,
    trail: Optional[DiagnosticTrail] = None
) -> JSONResponse:
    """Build an error body; the debug trail is attached only when it was enabled."""
    debug = None
    if trail is not None and trail.enabled:
        debug = DebugResponse.model_validate(trail)

    body = ErrorResponse(error=error, detail=detail, debug=debug)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return error_response(status.HTTP_401_UNAUTHORIZED, str(exc))


async def bad_request_handler(request: Request, exc: BadRequestError) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(BadRequestError, bad_request_handler)


def verify_token(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings)
) -> None:
    """Require 'Authorization: Bearer <INTERNAL_TOKEN>' when a token is configured."""
    if not settings.internal_token:
        return

    expected = f"Bearer {settings.internal_token}"
    if not secrets.compare_digest((authorization or "").encode(), expected.encode()):
        raise AuthError("Unauthorized")


async def get_transcript_service(
    settings: Settings = Depends(get_settings)
) -> AsyncIterator[TranscriptService]:
    """One service per request; its HTTP clients are closed once the request is done."""
    service = TranscriptService(settings)
    try:
        yield service
    finally:
        await service.aclose()


@router.get(
    "/transcript",
    response_model=TranscriptResponse,
    dependencies=[Depends(verify_token)],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def get_transcript(
    url: Optional[str] = None,
    debug: str = "0",
    service: TranscriptService = Depends(get_transcript_service)
):
    """
    Get the transcript of a YouTube video.

    Tries YouTube captions, then yt-dlp subtitles, then speech-to-text on
    the audio. Pass debug=1 to get the list of attempts in error responses.
    """
    if not url or not url.strip():
        raise BadRequestError("Missing ?url=YOUTUBE_URL")

    video_id = extract_video_id(url)
    if not video_id:
        raise BadRequestError("Invalid YouTube URL")

    trail = DiagnosticTrail(enabled=debug == "1")

    try:
        result = await service.get_transcript(video_id, trail=trail)
    except TranscriptError as e:
        return error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            e.message,
            trail=e.trail,
        )
    except Exception as e:
        logger.exception(f"Transcript lookup failed for {video_id}")
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Transcript tool failed",
            detail=str(e) or type(e).__name__,
            trail=trail,
        )

    return TranscriptResponse(text=result.text, source=result.source)
