"""
FFmpeg transcode router.

This module handles POST /ffmpeg: an uploaded file is converted by ffmpeg
using client-supplied options and returned as an attachment.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from ffgateway.config import FFMPEG_TIMEOUT_SECONDS
from ffgateway.dependencies import request_logger, verify_api_key
from ffgateway.exceptions import GatewayError
from ffgateway.models import ErrorResponse, TranscodeArgs
from ffgateway.services.transcode_service import build_execution_request, transcode
from ffgateway.utils.mime_utils import encode_content_disposition_filename


router = APIRouter(tags=["FFmpeg"])

ERROR_HEADLINE = "FFmpeg processing failed"


def _bad_request(error: str, details: Optional[str] = None) -> JSONResponse:
    content = {"error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=400, content=content)


def parse_transcode_args(raw: Optional[str]) -> TranscodeArgs:
    """
    Parse the "args" form field.

    Accepts a JSON object of named options or a JSON array, which is taken
    as the output option list.

    Raises:
        ValueError: If the field is not valid JSON or has the wrong shape
        pydantic.ValidationError: If the object has unknown or mistyped keys
    """
    if not raw:
        return TranscodeArgs()
    parsed = json.loads(raw)
    if isinstance(parsed, list):
        return TranscodeArgs(output_options=parsed)
    if isinstance(parsed, dict):
        return TranscodeArgs.model_validate(parsed)
    raise ValueError("args must be a JSON object or array")


@router.post(
    "/ffmpeg",
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def ffmpeg_transcode(
    file: Optional[UploadFile] = File(None, description="Input media file"),
    args: Optional[str] = Form(None, description="JSON object or array of ffmpeg options"),
    output_format: str = Form("mp4", alias="outputFormat", description="Alphanumeric output format"),
    _: bool = Depends(verify_api_key),
    log: logging.LoggerAdapter = Depends(request_logger),
):
    """
    Transcode an uploaded file with ffmpeg.

    - Options are checked against a deny-list before anything runs
    - ffmpeg runs in a private temp directory that is removed afterwards
    - Output over 500 MB is rejected with 413

    Returns the converted file as an attachment named output.<format>.
    """
    if file is None:
        return _bad_request('Missing required "file" field')

    try:
        transcode_args = parse_transcode_args(args)
    except PydanticValidationError as e:
        # Must precede ValueError, which pydantic's error subclasses
        return _bad_request('Invalid "args" field', details=str(e.errors(include_url=False)))
    except ValueError:
        return _bad_request('Invalid JSON in "args" field')

    try:
        request = build_execution_request(
            payload=await file.read(),
            filename=file.filename,
            args=transcode_args,
            output_format=output_format or "mp4",
            timeout_seconds=FFMPEG_TIMEOUT_SECONDS,
        )
        log.info(f"Transcoding {file.filename!r} to {request.output_format}")
        output = await transcode(request, log=log)
    except GatewayError as e:
        log.error(f"FFmpeg processing error ({e.kind}): {e.message}")
        return JSONResponse(status_code=e.status_code, content=e.to_payload(ERROR_HEADLINE))
    except Exception as e:
        log.exception("FFmpeg processing error")
        return JSONResponse(status_code=500, content={"error": ERROR_HEADLINE, "details": str(e)})
    finally:
        await file.close()

    return Response(
        content=output.data,
        media_type=output.content_type,
        headers={
            "Content-Disposition": encode_content_disposition_filename(output.filename),
            "Content-Length": str(len(output.data)),
        },
    )
