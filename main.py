import os
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ffgateway.config import FFMPEG_BINARY, LOG_LEVEL, get_settings
from ffgateway.routers import ffmpeg_router, frames_router, health_router
from ffgateway.services.process_service import get_tool_version
from ffgateway.utils.logging_utils import setup_logger

# Load environment variables from .env file
load_dotenv()

logger = setup_logger(log_level=LOG_LEVEL)

app = FastAPI(title="ffmpeg gateway")

# CORS configuration
app.add_middleware(CORSMiddleware,
    allow_origins=[get_settings().allowed_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ffmpeg_router)
app.include_router(frames_router)
app.include_router(health_router)


# Every error leaves the API as {"error": ..., "details": ...}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """Log ffmpeg availability on application startup."""
    logger.info("Starting application...")
    result = await get_tool_version(FFMPEG_BINARY)
    if result.ok:
        logger.info(f"ffmpeg binary: {result.message}")
    else:
        logger.warning(f"ffmpeg binary not usable at {FFMPEG_BINARY}: {result.message}")
        logger.warning("Transcode and frame endpoints will fail until ffmpeg is installed")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application...")


@app.get("/", response_class=PlainTextResponse)
async def root():
    return (
        "ffmpeg gateway.\n"
        "Endpoints:\n"
        "  POST /ffmpeg - Transcode an uploaded file (multipart: file, args, outputFormat)\n"
        "  POST /extract-from-url - Download video from URL and extract frames\n"
        "  POST /extract-frames - Extract frames from an uploaded video\n"
        "  GET /health - ffmpeg availability\n"
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="::", port=int(os.getenv("PORT", "8000")))
