"""
Output size enforcement for transcode artifacts.

Sizes come from filesystem metadata, so an oversized artifact is rejected
before any of it is read into memory.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ffgateway.config import MAX_OUTPUT_BYTES
from ffgateway.exceptions import PayloadTooLarge, WorkspaceIOError
from ffgateway.utils.logging_utils import RequestLogger

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


def check_output_size(artifact_path: Union[str, Path], limit: int = MAX_OUTPUT_BYTES) -> bool:
    """Return True if the artifact is at most ``limit`` bytes."""
    return os.stat(artifact_path).st_size <= limit


def ensure_output_size(
    artifact_path: Union[str, Path],
    limit: int = MAX_OUTPUT_BYTES,
    log: Optional[RequestLogger] = None
) -> int:
    """
    Reject artifacts larger than ``limit``.

    Returns:
        The artifact size in bytes

    Raises:
        PayloadTooLarge: If the artifact exceeds the limit
        WorkspaceIOError: If the artifact cannot be stat'ed
    """
    log = log or logger
    try:
        size = os.stat(artifact_path).st_size
    except OSError as e:
        raise WorkspaceIOError(f"Could not read output file: {e.strerror or e}", step="check_output")

    if size > limit:
        log.warning(f"Output is {size} bytes, over the {limit} byte limit")
        raise PayloadTooLarge(f"Output file exceeds {limit // MIB}MB limit", step="check_output")
    if size == 0:
        log.warning(f"Output file {os.path.basename(artifact_path)} is empty (0 bytes)")
    return size
