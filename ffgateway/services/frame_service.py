"""
Frame extraction service for sampled video frames.

This module handles sampling a video at a fixed rate with FFmpeg and turning
the numbered JPEG files it writes into an ordered list of Frame values.

The directory listing is treated as an unordered bag: order comes only from
the number parsed out of each filename, so frame_9 sorts before frame_10.
"""

import asyncio
import logging
import math
import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ffgateway.config import FFMPEG_BINARY, FRAME_TIMEOUT_SECONDS, MAX_FRAMES
from ffgateway.exceptions import GatewayError, ValidationError, WorkspaceIOError
from ffgateway.models.domain import Frame
from ffgateway.services import process_service
from ffgateway.services.workspace_service import Workspace, workspace
from ffgateway.utils.logging_utils import RequestLogger
from ffgateway.utils.timestamp_utils import format_ffmpeg_number

logger = logging.getLogger(__name__)

FRAME_EXTENSION = ".jpg"
FRAME_PATTERN = "frame_%03d.jpg"
FRAME_NUMBER = re.compile(r"\d+")
JPEG_QUALITY = 2  # FFmpeg JPEG quality 1-31 (lower = better)


def build_frame_argv(
    video_path: Path,
    frames_dir: Path,
    sampling_rate_fps: float,
    max_duration_seconds: Optional[float] = None,
    max_frames: Optional[int] = MAX_FRAMES
) -> List[str]:
    """
    Build the FFmpeg argv (without the program name) for frame sampling.

    Output files are frames_dir/frame_000.jpg, frame_001.jpg, ... starting at 0.
    """
    argv = [
        '-hide_banner',
        '-nostdin',
        '-i', str(video_path),
    ]
    if max_duration_seconds is not None:
        argv.extend(['-t', format_ffmpeg_number(max_duration_seconds)])
    argv.extend([
        '-vf', f"fps={format_ffmpeg_number(sampling_rate_fps)}",
        '-q:v', str(JPEG_QUALITY),
        '-start_number', '0',
    ])
    if max_frames:
        argv.extend(['-frames:v', str(max_frames)])
    argv.extend(['-y', str(frames_dir / FRAME_PATTERN)])
    return argv


def frame_sort_key(filename: str):
    """Sort key: the first number in the filename, then the name itself."""
    match = FRAME_NUMBER.search(filename)
    number = int(match.group()) if match else 0
    return (number, filename)


def list_frame_files(frames_dir: Path) -> List[Path]:
    """Return the frame images in frames_dir ordered by their embedded number."""
    names = [
        name for name in os.listdir(frames_dir)
        if name.lower().endswith(FRAME_EXTENSION)
    ]
    return [frames_dir / name for name in sorted(names, key=frame_sort_key)]


def _read_frames(
    frame_files: List[Path],
    sampling_rate_fps: float,
    log: RequestLogger
) -> List[Frame]:
    frames: List[Frame] = []
    for index, frame_path in enumerate(frame_files):
        frame = Frame(
            index=index,
            timestamp_seconds=index / sampling_rate_fps,
            image_bytes=frame_path.read_bytes(),
        )
        if frame.is_empty:
            log.warning(f"Frame {frame_path.name} is empty (0 bytes)")
        frames.append(frame)
    return frames


def _collect_frames(frames_dir: Path, sampling_rate_fps: float, log: RequestLogger) -> List[Frame]:
    try:
        frame_files = list_frame_files(frames_dir)
        log.info(f"Found {len(frame_files)} frame files in directory")
        return _read_frames(frame_files, sampling_rate_fps, log)
    except OSError as e:
        raise WorkspaceIOError(f"Could not read extracted frames: {e.strerror or e}", step="collect_frames")


def _prepare_input(ws: Workspace, video: bytes) -> Tuple[Path, Path]:
    try:
        video_path = ws.file("video.mp4")
        video_path.write_bytes(video)
        return video_path, ws.subdir("frames")
    except OSError as e:
        raise WorkspaceIOError(f"Could not write video to workspace: {e.strerror or e}", step="write_input")


def _require_positive(name: str, value: float) -> None:
    if value is None or not math.isfinite(value) or value <= 0:
        raise ValidationError(f"{name} must be a finite number greater than 0", details=str(value), step="validate")


async def extract_frames(
    video: bytes,
    sampling_rate_fps: float,
    max_duration_seconds: Optional[float] = None,
    *,
    executable: str = FFMPEG_BINARY,
    timeout: float = FRAME_TIMEOUT_SECONDS,
    max_frames: Optional[int] = MAX_FRAMES,
    workspace_root: Optional[str] = None,
    log: Optional[RequestLogger] = None
) -> List[Frame]:
    """
    Sample frames from a video.

    Frame i has index i and timestamp i / sampling_rate_fps. A video shorter
    than one sampling interval yields an empty list. Frame bytes are read
    into memory before the workspace is removed.

    Args:
        video: Raw video bytes
        sampling_rate_fps: Frames sampled per second of video
        max_duration_seconds: Only sample the first N seconds (None = whole video)
        executable: FFmpeg binary
        timeout: Seconds before FFmpeg is killed
        max_frames: Upper bound on frames written (None or 0 = unbounded);
                    reaching it is logged as a warning

    Returns:
        Frames in ascending index order

    Raises:
        ValidationError: If the rate or duration is not a positive finite number
        SpawnError, ProcessError, ExecutionTimeout, WorkspaceIOError: with
        ``step`` set to the stage that failed
    """
    log = log or logger

    _require_positive("fps", sampling_rate_fps)
    if max_duration_seconds is not None:
        _require_positive("max_duration", max_duration_seconds)

    with workspace(root=workspace_root, prefix="video-frames-", log=log) as ws:
        video_path, frames_dir = await asyncio.to_thread(_prepare_input, ws, video)

        rate = format_ffmpeg_number(sampling_rate_fps)
        duration_note = f" for first {format_ffmpeg_number(max_duration_seconds)} seconds" if max_duration_seconds else ""
        log.info(f"Extracting frames from video ({rate} fps{duration_note})...")

        argv = build_frame_argv(video_path, frames_dir, sampling_rate_fps, max_duration_seconds, max_frames)
        result = await process_service.execute(executable, argv, timeout, artifacts=(frames_dir,), log=log)
        result.raise_for_failure(step="execute")

        frames = await asyncio.to_thread(_collect_frames, frames_dir, sampling_rate_fps, log)

    if max_frames and len(frames) >= max_frames:
        log.warning(f"Frame limit of {max_frames} reached; later frames were not extracted")
    log.info(f"Extracted {len(frames)} frames")
    return frames


def frames_to_base64(frames: List[Frame]) -> List[Dict[str, object]]:
    """Convert frames to {"timestamp", "base64Image"} dicts holding JPEG data URIs."""
    return [
        {"timestamp": frame.timestamp_seconds, "base64Image": frame.to_data_uri()}
        for frame in frames
    ]


def describe_failure(error: GatewayError) -> str:
    """One-line summary of a pipeline failure, naming the stage when known."""
    if error.step:
        return f"{error.kind} during {error.step}: {error.message}"
    return f"{error.kind}: {error.message}"
