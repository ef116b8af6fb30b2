"""
Transcode service: runs one ffmpeg conversion on an uploaded file.

This module handles:
- Mapping TranscodeArgs onto ffmpeg input/output option tokens
- Building a validated ExecutionRequest
- Running ffmpeg inside a private workspace and returning the output bytes
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ffgateway.config import FFMPEG_BINARY, FFMPEG_TIMEOUT_SECONDS, MAX_OUTPUT_BYTES
from ffgateway.exceptions import ProcessError, WorkspaceIOError
from ffgateway.models.domain import ExecutionRequest
from ffgateway.models.schemas import TranscodeArgs
from ffgateway.services import process_service
from ffgateway.services.output_guard import ensure_output_size
from ffgateway.services.validation_service import (
    require_output_format,
    sanitize_input_suffix,
    validate_transcode_args,
)
from ffgateway.services.workspace_service import workspace
from ffgateway.utils.logging_utils import RequestLogger
from ffgateway.utils.mime_utils import get_content_type
from ffgateway.utils.timestamp_utils import format_ffmpeg_number

logger = logging.getLogger(__name__)

_BARE_BITRATE = re.compile(r"\d+")


@dataclass(frozen=True)
class TranscodeOutput:
    """Bytes produced by a transcode plus what the response needs to describe them."""

    data: bytes
    output_format: str
    content_type: str

    @property
    def filename(self) -> str:
        return f"output.{self.output_format}"


def _bitrate(value: str) -> str:
    # Bare numbers are kilobits per second
    return f"{value}k" if _BARE_BITRATE.fullmatch(value) else value


def split_option_tokens(options: List[str]) -> List[str]:
    """
    Expand "-flag value" strings into two tokens.

    Only the first space splits, so ["-metadata title=A B"] becomes
    ["-metadata", "title=A B"]. Tokens without a leading dash are kept whole.
    """
    tokens: List[str] = []
    for option in options:
        if option.startswith("-") and " " in option:
            flag, value = option.split(" ", 1)
            tokens.extend([flag, value])
        else:
            tokens.append(option)
    return tokens


def build_option_tokens(args: TranscodeArgs) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """
    Map a TranscodeArgs onto ffmpeg option tokens.

    Returns:
        (input_options, output_options); input options go before -i
    """
    input_options = split_option_tokens(args.input_options)
    if args.seek_input is not None:
        input_options.extend(["-ss", format_ffmpeg_number(args.seek_input)])

    output_options: List[str] = []
    if args.video_codec:
        output_options.extend(["-vcodec", args.video_codec])
    if args.audio_codec:
        output_options.extend(["-acodec", args.audio_codec])
    if args.video_bitrate:
        output_options.extend(["-b:v", _bitrate(args.video_bitrate)])
    if args.audio_bitrate:
        output_options.extend(["-b:a", _bitrate(args.audio_bitrate)])
    if args.duration is not None:
        output_options.extend(["-t", format_ffmpeg_number(args.duration)])
    if args.size:
        output_options.extend(["-s", args.size])
    if args.fps is not None:
        output_options.extend(["-r", format_ffmpeg_number(args.fps)])
    if args.no_audio:
        output_options.append("-an")
    if args.no_video:
        output_options.append("-vn")
    if args.format:
        output_options.extend(["-f", args.format])
    output_options.extend(split_option_tokens(args.output_options))

    return tuple(input_options), tuple(output_options)


def build_execution_request(
    payload: bytes,
    filename: Optional[str],
    args: Optional[TranscodeArgs],
    output_format: str = "mp4",
    timeout_seconds: float = FFMPEG_TIMEOUT_SECONDS
) -> ExecutionRequest:
    """
    Validate user input and build the ExecutionRequest for it.

    Raises:
        ValidationError: For a bad output format or a deny-listed option
    """
    require_output_format(output_format)
    args = args or TranscodeArgs()
    validate_transcode_args(args)
    input_options, output_options = build_option_tokens(args)

    return ExecutionRequest(
        payload=payload,
        output_format=output_format,
        input_options=input_options,
        output_options=output_options,
        timeout_seconds=timeout_seconds,
        input_suffix=sanitize_input_suffix(filename),
    )


def build_transcode_argv(input_path: Path, output_path: Path, request: ExecutionRequest) -> List[str]:
    """Assemble the ffmpeg argv (without the program name) for one request."""
    return [
        "-hide_banner",
        "-nostdin",
        *request.input_options,
        "-i", str(input_path),
        *request.output_options,
        "-y",
        str(output_path),
    ]


def _write_input(path: Path, payload: bytes) -> None:
    try:
        path.write_bytes(payload)
    except OSError as e:
        raise WorkspaceIOError(f"Could not write input file: {e.strerror or e}", step="write_input")


def _read_output(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise WorkspaceIOError(f"Could not read output file: {e.strerror or e}", step="read_output")


async def transcode(
    request: ExecutionRequest,
    *,
    executable: str = FFMPEG_BINARY,
    max_output_bytes: int = MAX_OUTPUT_BYTES,
    workspace_root: Optional[str] = None,
    log: Optional[RequestLogger] = None
) -> TranscodeOutput:
    """
    Run ffmpeg for one ExecutionRequest.

    The workspace holding input and output is removed before this returns,
    whether the transcode succeeded or not.

    Args:
        request: Validated request from build_execution_request()
        executable: ffmpeg binary
        max_output_bytes: Output Guard ceiling
        workspace_root: Parent directory for the workspace

    Returns:
        TranscodeOutput with the output bytes and content type

    Raises:
        SpawnError, ProcessError, ExecutionTimeout,
        PayloadTooLarge, WorkspaceIOError
    """
    log = log or logger

    with workspace(root=workspace_root, prefix="ffmpeg-", log=log) as ws:
        input_path = ws.file(f"input{request.input_suffix}")
        output_path = ws.file(f"output.{request.output_format}")

        await asyncio.to_thread(_write_input, input_path, request.payload)
        log.info(f"Wrote {len(request.payload)} byte input to workspace")

        argv = build_transcode_argv(input_path, output_path, request)
        result = await process_service.execute(
            executable, argv, request.timeout_seconds, artifacts=(output_path,), log=log
        )
        result.raise_for_failure(step="execute")

        if not all(path.exists() for path in result.artifact_paths):
            raise ProcessError("ffmpeg finished but produced no output file", returncode=0, step="execute")

        size = ensure_output_size(output_path, limit=max_output_bytes, log=log)
        data = await asyncio.to_thread(_read_output, output_path)
        log.info(f"Transcode produced {size} bytes of {request.output_format}")

    return TranscodeOutput(
        data=data,
        output_format=request.output_format,
        content_type=get_content_type(request.output_format),
    )
