"""
Configuration module for the ffmpeg gateway API.

This module centralizes all environment variables, constants, and runtime configuration
using pydantic-settings for type-safe configuration management.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="*",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    # API Authentication
    api_key: str = Field(
        default="",
        validation_alias="API_KEY",
        description="API key for endpoint authentication"
    )

    # FFmpeg Configuration
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        validation_alias="FFMPEG_BINARY",
        description="Path or name of the ffmpeg executable"
    )

    ffmpeg_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        validation_alias="FFMPEG_TIMEOUT_SECONDS",
        description="Wall-clock budget for a single transcode"
    )

    frame_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        validation_alias="FRAME_TIMEOUT_SECONDS",
        description="Wall-clock budget for a single frame extraction"
    )

    max_output_bytes: int = Field(
        default=500 * 1024 * 1024,
        gt=0,
        validation_alias="MAX_OUTPUT_BYTES",
        description="Largest transcode output returned to a client (500 MiB)"
    )

    stderr_tail_bytes: int = Field(
        default=500,
        gt=0,
        validation_alias="STDERR_TAIL_BYTES",
        description="How much trailing stderr is kept for error messages"
    )

    workspace_root: Optional[str] = Field(
        default=None,
        validation_alias="WORKSPACE_ROOT",
        description="Parent directory for per-request workspaces (system temp dir if unset)"
    )

    # Frame extraction
    max_frames: int = Field(
        default=300,
        gt=0,
        validation_alias="MAX_FRAMES",
        description="Upper bound on frames written by one extraction"
    )

    default_fps: float = Field(
        default=3.0,
        gt=0,
        validation_alias="DEFAULT_FPS",
        description="Sampling rate used when a request omits fps"
    )

    default_max_duration: float = Field(
        default=3.0,
        gt=0,
        validation_alias="DEFAULT_MAX_DURATION",
        description="Seconds of video sampled when a request omits max_duration"
    )

    # Video resolver
    resolver_backend: str = Field(
        default="cobalt",
        validation_alias="RESOLVER_BACKEND",
        description="How remote video URLs are resolved: cobalt or ytdlp"
    )

    resolver_url: str = Field(
        default="http://localhost:9000",
        validation_alias="RESOLVER_URL",
        description="Cobalt API endpoint"
    )

    resolver_token: Optional[str] = Field(
        default=None,
        validation_alias="RESOLVER_TOKEN",
        description="Bearer token sent to the cobalt API"
    )

    resolver_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias="RESOLVER_TIMEOUT_SECONDS",
        description="HTTP timeout for resolver and download requests"
    )

    max_download_bytes: int = Field(
        default=500 * 1024 * 1024,
        gt=0,
        validation_alias="MAX_DOWNLOAD_BYTES",
        description="Largest remote video the frame endpoint will download"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level for the ffgateway logger"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Initialize settings
settings = get_settings()

# FFmpeg Configuration
FFMPEG_BINARY = settings.ffmpeg_binary
FFMPEG_TIMEOUT_SECONDS = settings.ffmpeg_timeout_seconds
FRAME_TIMEOUT_SECONDS = settings.frame_timeout_seconds
MAX_OUTPUT_BYTES = settings.max_output_bytes
STDERR_TAIL_BYTES = settings.stderr_tail_bytes
WORKSPACE_ROOT = settings.workspace_root

# Frame extraction
MAX_FRAMES = settings.max_frames
DEFAULT_FPS = settings.default_fps
DEFAULT_MAX_DURATION = settings.default_max_duration

# Resolver
RESOLVER_BACKEND = settings.resolver_backend
RESOLVER_URL = settings.resolver_url
RESOLVER_TOKEN = settings.resolver_token
RESOLVER_TIMEOUT_SECONDS = settings.resolver_timeout_seconds
MAX_DOWNLOAD_BYTES = settings.max_download_bytes

LOG_LEVEL = settings.log_level
