"""
Request-scoped value types shared by the gateway services.

None of these outlive the request that created them.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from ffgateway.exceptions import (
    ExecutionTimeout,
    GatewayError,
    PayloadTooLarge,
    ProcessError,
    SpawnError,
    ValidationError,
    WorkspaceIOError,
)


class FailureKind(str, Enum):
    VALIDATION_ERROR = "validation_error"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    SPAWN_ERROR = "spawn_error"
    PROCESS_ERROR = "process_error"
    TIMEOUT = "timeout"
    IO_ERROR = "io_error"


_ERROR_FOR_KIND = {
    FailureKind.VALIDATION_ERROR: ValidationError,
    FailureKind.PAYLOAD_TOO_LARGE: PayloadTooLarge,
    FailureKind.SPAWN_ERROR: SpawnError,
    FailureKind.PROCESS_ERROR: ProcessError,
    FailureKind.TIMEOUT: ExecutionTimeout,
    FailureKind.IO_ERROR: WorkspaceIOError,
}


@dataclass(frozen=True)
class ValidationVerdict:
    """Outcome of checking a token sequence against the deny-list."""

    valid: bool
    offending_token: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class ExecutionRequest:
    """
    One transcode job: the uploaded bytes plus the ffmpeg options to apply.

    Construction checks the output format against the allow-list and every
    option token against the deny-list, so an instance never holds an
    unchecked token. transcode_service.build_execution_request() builds one
    from a TranscodeArgs with field-specific error messages.

    Raises:
        ValidationError: On a bad output format or a deny-listed token
    """

    payload: bytes
    output_format: str
    input_options: Tuple[str, ...] = ()
    output_options: Tuple[str, ...] = ()
    timeout_seconds: float = 120.0
    input_suffix: str = ".bin"

    def __post_init__(self):
        # validation_service imports this module for ValidationVerdict
        from ffgateway.services.validation_service import require_output_format, validate_tokens

        require_output_format(self.output_format)
        verdict = validate_tokens(self.tokens)
        if not verdict.valid:
            raise ValidationError("Invalid options", details=verdict.reason, step="validate")

    @property
    def tokens(self) -> Tuple[str, ...]:
        return self.input_options + self.output_options


@dataclass(frozen=True)
class ExecutionResult:
    """
    Tagged outcome of one process execution.

    Success carries artifact paths; failure carries a kind and a bounded
    message. Use ExecutionResult.success() / ExecutionResult.failure().
    """

    ok: bool
    kind: Optional[FailureKind] = None
    message: str = ""
    artifact_paths: Tuple[Path, ...] = ()
    returncode: Optional[int] = None
    pid: Optional[int] = None
    duration_seconds: float = 0.0
    stdout: str = ""

    @classmethod
    def success(cls, **kwargs) -> "ExecutionResult":
        return cls(ok=True, **kwargs)

    @classmethod
    def failure(cls, kind: FailureKind, message: str, **kwargs) -> "ExecutionResult":
        return cls(ok=False, kind=kind, message=message, **kwargs)

    def raise_for_failure(self, step: Optional[str] = None) -> "ExecutionResult":
        """
        Raise the exception matching this result's failure kind.

        Args:
            step: Pipeline stage recorded on the raised error

        Returns:
            self, unchanged, when the result is a success

        Raises:
            GatewayError subclass selected by ``kind``
        """
        if self.ok:
            return self
        error_cls = _ERROR_FOR_KIND.get(self.kind, GatewayError)
        if error_cls is ProcessError:
            raise ProcessError(self.message, returncode=self.returncode, step=step)
        raise error_cls(self.message, step=step)


@dataclass(frozen=True)
class Frame:
    """One sampled video frame. ``index`` is its position in the sorted sequence."""

    index: int
    timestamp_seconds: float
    image_bytes: bytes = field(repr=False)

    def __post_init__(self):
        if self.index < 0:
            raise ValueError(f"Frame index must be >= 0, got {self.index}")

    @property
    def is_empty(self) -> bool:
        return len(self.image_bytes) == 0

    def to_base64(self) -> str:
        return base64.b64encode(self.image_bytes).decode("ascii")

    def to_data_uri(self, mime_type: str = "image/jpeg") -> str:
        return f"data:{mime_type};base64,{self.to_base64()}"
