"""
Models package for API request/response validation and request-scoped values.

Pydantic schemas describe the HTTP payloads; dataclasses in ``domain`` are
the values passed between gateway services.
"""

from .schemas import (
    TranscodeArgs,
    FrameExtractionRequest,
    FramePayload,
    FrameExtractionResponse,
    ErrorResponse,
    HealthResponse,
)
from .domain import (
    FailureKind,
    ValidationVerdict,
    ExecutionRequest,
    ExecutionResult,
    Frame,
)

__all__ = [
    "TranscodeArgs",
    "FrameExtractionRequest",
    "FramePayload",
    "FrameExtractionResponse",
    "ErrorResponse",
    "HealthResponse",
    "FailureKind",
    "ValidationVerdict",
    "ExecutionRequest",
    "ExecutionResult",
    "Frame",
]
