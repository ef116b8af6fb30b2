"""
Process execution service for the external media tool.

This module handles running ffmpeg (or any executable) as a child process:
- argv is always passed as a discrete list to the OS, never through a shell
- stdout and stderr are drained incrementally into bounded tail buffers
- a wall-clock timeout races process completion; on expiry the child is
  sent SIGKILL and reaped
- every call resolves to exactly one ExecutionResult

The wait is an await on the event loop, so a slow ffmpeg only suspends the
request that started it.
"""

import asyncio
import logging
import os
import time
from asyncio.subprocess import PIPE, DEVNULL
from pathlib import Path
from typing import List, Optional, Sequence

from ffgateway.config import STDERR_TAIL_BYTES
from ffgateway.models.domain import ExecutionResult, FailureKind
from ffgateway.utils.logging_utils import RequestLogger

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 64 * 1024
# stdout is kept for short outputs such as `ffmpeg -version`
STDOUT_TAIL_BYTES = 64 * 1024


class _TailBuffer:
    """Keeps only the last ``limit`` bytes written to it."""

    def __init__(self, limit: int):
        self.limit = limit
        self._data = bytearray()

    def write(self, chunk: bytes) -> None:
        self._data.extend(chunk)
        if len(self._data) > self.limit:
            del self._data[:-self.limit]

    def text(self) -> str:
        return self._data.decode("utf-8", errors="replace")


async def _drain(stream: Optional[asyncio.StreamReader], tail: _TailBuffer) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        tail.write(chunk)


def _force_kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        # Exited between the timeout firing and the kill
        pass


async def execute(
    executable: str,
    argv: Sequence[str],
    timeout: float,
    *,
    stderr_tail_bytes: int = STDERR_TAIL_BYTES,
    cwd: Optional[str] = None,
    artifacts: Sequence[Path] = (),
    log: Optional[RequestLogger] = None
) -> ExecutionResult:
    """
    Run an executable with a bounded wall-clock budget.

    Args:
        executable: Program to run, e.g. "ffmpeg" or an absolute path
        argv: Arguments after the program name, one list item per argument
        timeout: Seconds before the process is killed
        stderr_tail_bytes: How much trailing stderr goes into failure messages
        cwd: Working directory for the child
        artifacts: Paths the tool is expected to write; reported on success

    Returns:
        ExecutionResult: success on exit code 0, otherwise a failure with
        kind SPAWN_ERROR, PROCESS_ERROR or TIMEOUT

    Example:
        >>> result = await execute("ffmpeg", ["-i", "in.mp4", "out.webm"], timeout=120)
        >>> result.raise_for_failure()
    """
    log = log or logger
    tool = os.path.basename(executable) or executable
    cmd: List[str] = [executable, *[str(arg) for arg in argv]]

    log.info(f"Running {tool} with {len(cmd) - 1} arguments (timeout {timeout:g}s)")
    log.debug(f"argv: {cmd!r}")

    start_time = time.monotonic()
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=DEVNULL,
            stdout=PIPE,
            stderr=PIPE,
            cwd=cwd,
        )
    except (FileNotFoundError, PermissionError) as e:
        log.error(f"Could not start {tool}: {e.strerror or e}")
        return ExecutionResult.failure(
            FailureKind.SPAWN_ERROR,
            f"Could not start {tool}: {e.strerror or e}",
        )
    except OSError as e:
        log.error(f"Could not start {tool}: {e}")
        return ExecutionResult.failure(FailureKind.SPAWN_ERROR, f"Could not start {tool}: {e}")

    stdout_tail = _TailBuffer(STDOUT_TAIL_BYTES)
    stderr_tail = _TailBuffer(stderr_tail_bytes)
    completion = asyncio.gather(
        _drain(process.stdout, stdout_tail),
        _drain(process.stderr, stderr_tail),
        process.wait(),
    )

    try:
        # wait_for settles once: either completion or the timer wins
        await asyncio.wait_for(completion, timeout=timeout)
    except asyncio.TimeoutError:
        _force_kill(process)
        await process.wait()
        elapsed = time.monotonic() - start_time
        log.error(f"{tool} timed out after {timeout:g}s; killed pid {process.pid}")
        return ExecutionResult.failure(
            FailureKind.TIMEOUT,
            f"{tool} timed out after {timeout:g} seconds",
            returncode=process.returncode,
            pid=process.pid,
            duration_seconds=elapsed,
        )
    except asyncio.CancelledError:
        _force_kill(process)
        await asyncio.shield(process.wait())
        log.warning(f"{tool} cancelled; killed pid {process.pid}")
        raise

    elapsed = time.monotonic() - start_time
    returncode = process.returncode

    if returncode != 0:
        diagnostic = stderr_tail.text().strip()
        log.error(f"{tool} exited with code {returncode} after {elapsed:.2f}s")
        message = f"{tool} exited with code {returncode}"
        if diagnostic:
            message = f"{message}: {diagnostic}"
        return ExecutionResult.failure(
            FailureKind.PROCESS_ERROR,
            message,
            returncode=returncode,
            pid=process.pid,
            duration_seconds=elapsed,
            stdout=stdout_tail.text(),
        )

    log.info(f"{tool} finished in {elapsed:.2f}s")
    return ExecutionResult.success(
        artifact_paths=tuple(artifacts),
        returncode=returncode,
        pid=process.pid,
        duration_seconds=elapsed,
        stdout=stdout_tail.text(),
    )


async def get_tool_version(executable: str, timeout: float = 10.0) -> ExecutionResult:
    """
    Run ``<executable> -version``.

    On success the first line of stdout is returned as the result message.
    """
    result = await execute(executable, ["-version"], timeout=timeout)
    if not result.ok:
        return result
    lines = result.stdout.strip().splitlines()
    first_line = lines[0] if lines else ""
    return ExecutionResult.success(
        message=first_line,
        returncode=result.returncode,
        pid=result.pid,
        duration_seconds=result.duration_seconds,
        stdout=result.stdout,
    )
