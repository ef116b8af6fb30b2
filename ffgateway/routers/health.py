"""
Health router: reports whether the configured ffmpeg binary can run.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ffgateway.config import FFMPEG_BINARY
from ffgateway.models import HealthResponse
from ffgateway.services.process_service import get_tool_version


router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
async def health():
    """Run `ffmpeg -version`; 200 with the version line, 503 if it cannot run."""
    result = await get_tool_version(FFMPEG_BINARY)
    if not result.ok:
        body = HealthResponse(status="unavailable", ffmpeg_binary=FFMPEG_BINARY, error=result.message)
        return JSONResponse(status_code=503, content=body.model_dump())
    return HealthResponse(status="ok", ffmpeg_binary=FFMPEG_BINARY, ffmpeg_version=result.message)
