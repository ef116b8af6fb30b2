"""
Frame extraction router.

This module handles sampling frames from a video, either fetched from a
public URL through the resolver or uploaded directly. Frames come back as
base64 JPEG data URIs in ascending timestamp order.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ffgateway.config import DEFAULT_FPS, DEFAULT_MAX_DURATION, MAX_FRAMES
from ffgateway.dependencies import request_logger, verify_api_key
from ffgateway.exceptions import GatewayError
from ffgateway.models import ErrorResponse, Frame, FrameExtractionRequest, FrameExtractionResponse, FramePayload
from ffgateway.services.frame_service import describe_failure, extract_frames, frames_to_base64
from ffgateway.services.resolver_service import fetch_video


router = APIRouter(tags=["Frames"])

URL_ERROR_HEADLINE = "Failed to extract frames from URL"
UPLOAD_ERROR_HEADLINE = "Failed to extract frames from video"

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _to_payloads(frames: List[Frame]) -> List[FramePayload]:
    return [FramePayload.model_validate(item) for item in frames_to_base64(frames)]


def _summary(frames: List[Frame]) -> str:
    message = f"Extracted {len(frames)} frames from video"
    if MAX_FRAMES and len(frames) >= MAX_FRAMES:
        message += f" (stopped at the {MAX_FRAMES} frame limit)"
    return message


def _error_response(error: GatewayError, headline: str, log: logging.LoggerAdapter) -> JSONResponse:
    log.error(f"Frame extraction failed: {describe_failure(error)}")
    return JSONResponse(status_code=error.status_code, content=error.to_payload(headline))


@router.post("/extract-from-url", response_model=FrameExtractionResponse, responses=ERROR_RESPONSES)
async def extract_from_url(
    request: FrameExtractionRequest = Body(...),
    _: bool = Depends(verify_api_key),
    log: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Download a video from a URL and extract frames from it.

    Workflow:
    1. Resolve the page URL to a direct media URL
    2. Download the video (bounded by MAX_DOWNLOAD_BYTES)
    3. Sample frames with FFmpeg at `fps` for the first `max_duration` seconds
    4. Return frames as base64 data URIs
    """
    fps = request.fps or DEFAULT_FPS
    max_duration = request.max_duration if "max_duration" in request.model_fields_set else DEFAULT_MAX_DURATION

    try:
        log.info(f"Processing video from URL: {request.url}")
        media_url, video = await run_in_threadpool(fetch_video, request.url, log)
        frames = await extract_frames(video, fps, max_duration, log=log)
    except GatewayError as e:
        return _error_response(e, URL_ERROR_HEADLINE, log)
    except Exception as e:
        log.exception("Error extracting frames from URL")
        return JSONResponse(status_code=500, content={"error": URL_ERROR_HEADLINE, "details": str(e)})

    return FrameExtractionResponse(
        success=True,
        message=_summary(frames),
        download_url=media_url,
        frames=_to_payloads(frames),
    )


@router.post(
    "/extract-frames",
    response_model=FrameExtractionResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def extract_from_upload(
    file: Optional[UploadFile] = File(None, description="Input video file"),
    fps: float = Form(DEFAULT_FPS, gt=0, le=60, description="Frames sampled per second"),
    max_duration: Optional[float] = Form(
        DEFAULT_MAX_DURATION, gt=0, alias="maxDurationSeconds", description="Only sample the first N seconds"
    ),
    _: bool = Depends(verify_api_key),
    log: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Extract frames from an uploaded video.

    Same pipeline and response shape as /extract-from-url, without the download step.
    """
    if file is None:
        return JSONResponse(status_code=400, content={"error": 'Missing required "file" field'})

    try:
        video = await file.read()
        log.info(f"Received uploaded video ({len(video)} bytes)")
        frames = await extract_frames(video, fps, max_duration, log=log)
    except GatewayError as e:
        return _error_response(e, UPLOAD_ERROR_HEADLINE, log)
    except Exception as e:
        log.exception("Error extracting frames from upload")
        return JSONResponse(status_code=500, content={"error": UPLOAD_ERROR_HEADLINE, "details": str(e)})
    finally:
        await file.close()

    return FrameExtractionResponse(
        success=True,
        message=_summary(frames),
        frames=_to_payloads(frames),
    )
