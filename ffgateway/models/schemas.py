"""
Pydantic models for request/response validation.

This module contains all Pydantic BaseModel schemas used for API request
and response validation. Wire names are camelCase; Python attributes are snake_case.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional


class TranscodeArgs(BaseModel):
    """Options for POST /ffmpeg, sent as the JSON "args" form field."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    input_options: List[str] = Field(default_factory=list, alias="inputOptions")
    output_options: List[str] = Field(default_factory=list, alias="outputOptions")
    audio_codec: Optional[str] = Field(None, alias="audioCodec")
    video_codec: Optional[str] = Field(None, alias="videoCodec")
    video_bitrate: Optional[str] = Field(None, alias="videoBitrate")
    audio_bitrate: Optional[str] = Field(None, alias="audioBitrate")
    duration: Optional[float] = Field(None, ge=0, description="Output duration in seconds")
    seek_input: Optional[float] = Field(None, alias="seekInput", ge=0, description="Input seek position in seconds")
    size: Optional[str] = Field(None, description="Output frame size, e.g. 640x360")
    fps: Optional[float] = Field(None, gt=0, description="Output frame rate")
    no_audio: bool = Field(False, alias="noAudio")
    no_video: bool = Field(False, alias="noVideo")
    format: Optional[str] = Field(None, description="Forced output container (-f)")

    @field_validator("input_options", "output_options", mode="before")
    @classmethod
    def _stringify_tokens(cls, value):
        # Clients often send numeric option values, e.g. ["-crf", 23]
        if isinstance(value, list):
            return [str(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v for v in value]
        return value

    @field_validator("video_bitrate", "audio_bitrate", mode="before")
    @classmethod
    def _stringify_bitrate(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class FrameExtractionRequest(BaseModel):
    """Request body for POST /extract-from-url."""

    url: str = Field(..., min_length=1, description="Public video page or media URL")
    fps: Optional[float] = Field(None, gt=0, le=60, description="Frames sampled per second of video")
    max_duration: Optional[float] = Field(
        None,
        gt=0,
        validation_alias=AliasChoices("max_duration", "maxDurationSeconds"),
        description="Only sample the first N seconds of the video",
    )


class FramePayload(BaseModel):
    """One frame in a frame-extraction response."""

    model_config = ConfigDict(populate_by_name=True)

    timestamp: float
    base64_image: str = Field(..., alias="base64Image")


class FrameExtractionResponse(BaseModel):
    """Frames in ascending index order plus a summary message."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    download_url: Optional[str] = Field(None, alias="downloadUrl")
    frames: List[FramePayload]


class ErrorResponse(BaseModel):
    """JSON body returned for every error status."""

    error: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    """ffmpeg availability as reported by GET /health."""

    status: str
    ffmpeg_binary: str
    ffmpeg_version: Optional[str] = None
    error: Optional[str] = None
