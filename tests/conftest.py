"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Test client fixtures for FastAPI
- API key fixtures
- Fake ffmpeg helpers that write output files instead of running ffmpeg
- Shared test utilities
"""

import os
import sys
import pytest
import pytest_asyncio
from pathlib import Path
from httpx import AsyncClient, ASGITransport

# Settings are read once at import time, so the key must exist before any
# ffgateway module is imported by a test module.
os.environ.setdefault("API_KEY", "test-api-key")

from ffgateway.models.domain import ExecutionResult, FailureKind  # noqa: E402


@pytest.fixture
def api_key():
    """Return test API key."""
    return "test-api-key"


@pytest.fixture
def api_headers(api_key):
    """Return headers with API key."""
    return {"X-API-Key": api_key}


@pytest_asyncio.fixture
async def client():
    """
    Create async test client for FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server.
    """
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def python_exe():
    """A real executable that exists everywhere the tests run."""
    return sys.executable


@pytest.fixture
def sample_video():
    """Bytes standing in for an uploaded video; fake executors never decode them."""
    return b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64


def _output_path(argv):
    # ffmpeg's output is always the last argument
    return Path(argv[-1])


def make_fake_frame_executor(frame_count, sizes=None, calls=None, names=None):
    """
    Build an async stand-in for process_service.execute that writes frame files.

    Args:
        frame_count: How many frame_NNN.jpg files to create
        sizes: Optional per-frame byte sizes (default 10 bytes each)
        calls: Optional list that receives (executable, argv, timeout) per call
        names: Optional explicit file names, overriding frame_count
    """
    async def fake_execute(executable, argv, timeout, **kwargs):
        if calls is not None:
            calls.append((executable, list(argv), timeout))
        frames_dir = _output_path(argv).parent
        file_names = names or [f"frame_{i:03d}.jpg" for i in range(frame_count)]
        for position, name in enumerate(file_names):
            size = sizes[position] if sizes else 10
            # Content encodes the frame number so ordering can be checked
            content = (name.encode() + b"|" + b"x" * size)[:size] if size else b""
            (frames_dir / name).write_bytes(content)
        return ExecutionResult.success(artifact_paths=tuple(kwargs.get("artifacts", ())), returncode=0)

    return fake_execute


def make_fake_transcode_executor(output=b"transcoded-bytes", calls=None):
    """Async stand-in for process_service.execute that writes ``output`` to the output path."""
    async def fake_execute(executable, argv, timeout, **kwargs):
        if calls is not None:
            calls.append((executable, list(argv), timeout))
        _output_path(argv).write_bytes(output)
        return ExecutionResult.success(artifact_paths=tuple(kwargs.get("artifacts", ())), returncode=0)

    return fake_execute


def make_failing_executor(kind=FailureKind.PROCESS_ERROR, message="ffmpeg exited with code 1: boom", seen=None):
    """Async stand-in for process_service.execute that fails; records the output path in ``seen``."""
    async def fake_execute(executable, argv, timeout, **kwargs):
        if seen is not None:
            seen.append(_output_path(argv))
        return ExecutionResult.failure(kind, message, returncode=1 if kind == FailureKind.PROCESS_ERROR else None)

    return fake_execute


@pytest.fixture
def fake_frame_executor():
    """Factory for fake frame-writing executors (see make_fake_frame_executor)."""
    return make_fake_frame_executor


@pytest.fixture
def fake_transcode_executor():
    """Factory for fake transcode executors (see make_fake_transcode_executor)."""
    return make_fake_transcode_executor


@pytest.fixture
def failing_executor():
    """Factory for failing executors (see make_failing_executor)."""
    return make_failing_executor


# Mark all tests as asyncio
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )
