"""
Workspace service for per-request scratch directories.

Every transcode or frame extraction gets its own directory under the system
temp root (or WORKSPACE_ROOT). Names come from tempfile.mkdtemp, so concurrent
requests never share a path. Removal is best-effort: a failed cleanup is
logged and never replaces the request's own result.
"""

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from ffgateway.config import WORKSPACE_ROOT
from ffgateway.exceptions import WorkspaceIOError
from ffgateway.utils.logging_utils import RequestLogger

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """A scratch directory owned by exactly one request."""

    path: Path
    released: bool = field(default=False, compare=False)

    def file(self, name: str) -> Path:
        return self.path / name

    def subdir(self, name: str) -> Path:
        """Create (if needed) and return a subdirectory of the workspace."""
        directory = self.path / name
        directory.mkdir(parents=True, exist_ok=True)
        return directory


def acquire(
    root: Optional[str] = None,
    prefix: str = "ffmpeg-",
    log: Optional[RequestLogger] = None
) -> Workspace:
    """
    Create a uniquely named workspace directory.

    Args:
        root: Parent directory; defaults to WORKSPACE_ROOT, then the system temp dir
        prefix: Directory name prefix, useful when inspecting a busy temp dir

    Returns:
        Workspace for the new directory

    Raises:
        WorkspaceIOError: If the directory cannot be created
    """
    log = log or logger
    parent = root or WORKSPACE_ROOT or tempfile.gettempdir()
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
    except OSError as e:
        raise WorkspaceIOError(f"Could not create workspace in {parent}: {e.strerror or e}", step="workspace")
    log.debug(f"Acquired workspace {path}")
    return Workspace(path=path)


def release(workspace: Workspace, log: Optional[RequestLogger] = None) -> bool:
    """
    Recursively remove a workspace. Never raises.

    A workspace is only released once; later calls return immediately.

    Returns:
        True if the directory no longer exists
    """
    log = log or logger
    if workspace.released:
        return not workspace.path.exists()
    workspace.released = True

    try:
        shutil.rmtree(workspace.path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning(f"Workspace cleanup failed for {workspace.path}: {e}")

    removed = not os.path.exists(workspace.path)
    if removed:
        log.debug(f"Released workspace {workspace.path}")
    return removed


@contextmanager
def workspace(
    root: Optional[str] = None,
    prefix: str = "ffmpeg-",
    log: Optional[RequestLogger] = None
) -> Iterator[Workspace]:
    """
    Acquire a workspace for the duration of a with-block.

    Release runs exactly once however the block exits: normal return,
    exception, or task cancellation.

    Example:
        >>> with workspace(prefix="video-frames-") as ws:
        ...     ws.file("video.mp4").write_bytes(data)
    """
    ws = acquire(root=root, prefix=prefix, log=log)
    try:
        yield ws
    finally:
        release(ws, log=log)
