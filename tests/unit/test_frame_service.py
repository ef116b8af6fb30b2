"""
Unit tests for the frame extraction pipeline.

The executor is replaced with a fake that writes frame_NNN.jpg files into
the directory named by the output pattern, so these tests need no ffmpeg.

This module tests:
- numeric (not lexicographic) frame ordering
- index and timestamp assignment
- empty and zero-byte results
- argv construction
- workspace removal on every outcome
"""

import logging
import tempfile
from pathlib import Path
import pytest
from unittest.mock import patch

from ffgateway.exceptions import ExecutionTimeout, ProcessError, SpawnError, ValidationError, WorkspaceIOError
from ffgateway.models.domain import FailureKind
from ffgateway.services.frame_service import (
    build_frame_argv,
    describe_failure,
    extract_frames,
    frame_sort_key,
    frames_to_base64,
    list_frame_files,
)

EXECUTE = "ffgateway.services.process_service.execute"


def _workspace_dirs(root):
    return [p for p in Path(root).iterdir() if p.name.startswith("video-frames-")]


class TestFrameOrdering:
    """Test that frames come back in numeric order."""

    @pytest.mark.asyncio
    async def test_twelve_frames_in_numeric_order(self, tmp_path, sample_video, fake_frame_executor):
        with patch(EXECUTE, side_effect=fake_frame_executor(12)):
            frames = await extract_frames(sample_video, 1, workspace_root=str(tmp_path))

        assert len(frames) == 12
        assert [f.index for f in frames] == list(range(12))
        # Content starts with the file name, so each frame must come from its own file
        for frame in frames:
            assert frame.image_bytes.startswith(f"frame_{frame.index:03d}".encode())

    @pytest.mark.asyncio
    async def test_unpadded_names_still_sort_numerically(self, tmp_path, sample_video, fake_frame_executor):
        names = ["frame_10.jpg", "frame_2.jpg", "frame_1.jpg", "frame_9.jpg", "frame_0.jpg"]
        with patch(EXECUTE, side_effect=fake_frame_executor(0, names=names, sizes=[12] * 5)):
            frames = await extract_frames(sample_video, 1, workspace_root=str(tmp_path))

        sources = [f.image_bytes.split(b".")[0].decode() for f in frames]
        assert sources == ["frame_0", "frame_1", "frame_2", "frame_9", "frame_10"]

    def test_sort_key_is_numeric(self):
        names = ["frame_10.jpg", "frame_9.jpg", "frame_100.jpg", "frame_2.jpg"]
        assert sorted(names, key=frame_sort_key) == ["frame_2.jpg", "frame_9.jpg", "frame_10.jpg", "frame_100.jpg"]
        assert sorted(names) != sorted(names, key=frame_sort_key)

    def test_list_frame_files_filters_extension(self, tmp_path):
        for name in ["frame_001.jpg", "frame_000.jpg", "notes.txt", "frame_002.png", "FRAME_003.JPG"]:
            (tmp_path / name).write_bytes(b"x")
        names = [p.name for p in list_frame_files(tmp_path)]
        assert names == ["frame_000.jpg", "frame_001.jpg", "FRAME_003.JPG"]


class TestTimestamps:
    """Test index and timestamp assignment."""

    @pytest.mark.asyncio
    async def test_timestamp_is_index_over_rate(self, tmp_path, sample_video, fake_frame_executor):
        with patch(EXECUTE, side_effect=fake_frame_executor(9)):
            frames = await extract_frames(sample_video, 3, workspace_root=str(tmp_path))

        assert frames[6].index == 6
        assert frames[6].timestamp_seconds == 2.0
        assert [f.timestamp_seconds for f in frames[:4]] == [0.0, 1 / 3, 2 / 3, 1.0]

    @pytest.mark.asyncio
    async def test_fractional_rate(self, tmp_path, sample_video, fake_frame_executor):
        with patch(EXECUTE, side_effect=fake_frame_executor(3)):
            frames = await extract_frames(sample_video, 0.5, workspace_root=str(tmp_path))
        assert [f.timestamp_seconds for f in frames] == [0.0, 2.0, 4.0]


class TestEdgeCases:
    """Test empty and degenerate results."""

    @pytest.mark.asyncio
    async def test_no_frames_is_empty_list(self, tmp_path, sample_video, fake_frame_executor):
        with patch(EXECUTE, side_effect=fake_frame_executor(0)):
            frames = await extract_frames(sample_video, 3, workspace_root=str(tmp_path))
        assert frames == []

    @pytest.mark.asyncio
    async def test_zero_byte_frame_is_kept_and_logged(self, tmp_path, sample_video, fake_frame_executor, caplog):
        with patch(EXECUTE, side_effect=fake_frame_executor(3, sizes=[10, 0, 10])):
            with caplog.at_level(logging.WARNING, logger="ffgateway"):
                frames = await extract_frames(sample_video, 1, workspace_root=str(tmp_path))

        assert len(frames) == 3
        assert frames[1].is_empty
        assert "frame_001.jpg is empty (0 bytes)" in caplog.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fps", [0, -1])
    async def test_bad_rate_rejected_before_workspace(self, tmp_path, sample_video, fps):
        with patch(EXECUTE) as execute:
            with pytest.raises(ValidationError):
                await extract_frames(sample_video, fps, workspace_root=str(tmp_path))
        execute.assert_not_called()
        assert _workspace_dirs(tmp_path) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [0, -2, float("nan"), float("inf")])
    async def test_bad_duration_rejected(self, tmp_path, sample_video, duration):
        with patch(EXECUTE) as execute:
            with pytest.raises(ValidationError):
                await extract_frames(sample_video, 1, duration, workspace_root=str(tmp_path))
        execute.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fps", [float("nan"), float("inf"), float("-inf")])
    async def test_non_finite_rate_rejected(self, tmp_path, sample_video, fps):
        with patch(EXECUTE) as execute:
            with pytest.raises(ValidationError):
                await extract_frames(sample_video, fps, workspace_root=str(tmp_path))
        execute.assert_not_called()
        assert _workspace_dirs(tmp_path) == []

    @pytest.mark.asyncio
    async def test_reaching_frame_limit_is_logged(self, tmp_path, sample_video, fake_frame_executor, caplog):
        with patch(EXECUTE, side_effect=fake_frame_executor(4)):
            with caplog.at_level(logging.WARNING, logger="ffgateway"):
                frames = await extract_frames(sample_video, 60, None, max_frames=4, workspace_root=str(tmp_path))
        assert len(frames) == 4
        assert "Frame limit of 4 reached" in caplog.text

    @pytest.mark.asyncio
    async def test_below_frame_limit_is_not_logged(self, tmp_path, sample_video, fake_frame_executor, caplog):
        with patch(EXECUTE, side_effect=fake_frame_executor(3)):
            with caplog.at_level(logging.WARNING, logger="ffgateway"):
                await extract_frames(sample_video, 1, None, max_frames=4, workspace_root=str(tmp_path))
        assert "Frame limit" not in caplog.text


class TestFrameArgv:
    """Test the ffmpeg argv built for frame sampling."""

    def test_argv_with_duration(self, tmp_path):
        argv = build_frame_argv(tmp_path / "video.mp4", tmp_path / "frames", 3, 5, max_frames=300)
        assert argv[argv.index("-i") + 1] == str(tmp_path / "video.mp4")
        assert argv[argv.index("-t") + 1] == "5"
        assert argv[argv.index("-vf") + 1] == "fps=3"
        assert argv[argv.index("-start_number") + 1] == "0"
        assert argv[argv.index("-frames:v") + 1] == "300"
        assert argv[-1] == str(tmp_path / "frames" / "frame_%03d.jpg")

    def test_argv_without_duration_or_cap(self, tmp_path):
        argv = build_frame_argv(tmp_path / "video.mp4", tmp_path / "frames", 0.5, None, max_frames=None)
        assert "-t" not in argv
        assert "-frames:v" not in argv
        assert "fps=0.5" in argv

    def test_rate_and_duration_are_not_rounded(self, tmp_path):
        argv = build_frame_argv(tmp_path / "video.mp4", tmp_path / "frames", 23.976023976, 1234.5678)
        assert argv[argv.index("-t") + 1] == "1234.5678"
        assert "fps=23.976023976" in argv

    def test_large_duration_has_no_exponent(self, tmp_path):
        argv = build_frame_argv(tmp_path / "video.mp4", tmp_path / "frames", 1, 1234567)
        assert argv[argv.index("-t") + 1] == "1234567"

    @pytest.mark.asyncio
    async def test_executor_receives_rate_and_timeout(self, tmp_path, sample_video, fake_frame_executor):
        calls = []
        with patch(EXECUTE, side_effect=fake_frame_executor(1, calls=calls)):
            await extract_frames(
                sample_video, 2, 4, executable="/opt/ffmpeg", timeout=42, workspace_root=str(tmp_path)
            )
        executable, argv, timeout = calls[0]
        assert executable == "/opt/ffmpeg"
        assert timeout == 42
        assert "fps=2" in argv
        assert argv[argv.index("-t") + 1] == "4"


class TestWorkspaceHygiene:
    """Test that the workspace is gone after every outcome."""

    @pytest.mark.asyncio
    async def test_removed_after_success(self, tmp_path, sample_video, fake_frame_executor):
        with patch(EXECUTE, side_effect=fake_frame_executor(5)):
            frames = await extract_frames(sample_video, 1, workspace_root=str(tmp_path))
        assert _workspace_dirs(tmp_path) == []
        # Bytes were copied out before cleanup
        assert all(len(f.image_bytes) == 10 for f in frames)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind, error_cls", [
        (FailureKind.PROCESS_ERROR, ProcessError),
        (FailureKind.TIMEOUT, ExecutionTimeout),
        (FailureKind.SPAWN_ERROR, SpawnError),
    ])
    async def test_removed_after_execution_failure(self, tmp_path, sample_video, failing_executor, kind, error_cls):
        with patch(EXECUTE, side_effect=failing_executor(kind=kind, message="failed")):
            with pytest.raises(error_cls) as exc_info:
                await extract_frames(sample_video, 1, workspace_root=str(tmp_path))
        assert exc_info.value.step == "execute"
        assert _workspace_dirs(tmp_path) == []

    @pytest.mark.asyncio
    async def test_removed_after_read_failure(self, tmp_path, sample_video, fake_frame_executor):
        with patch(EXECUTE, side_effect=fake_frame_executor(2)):
            with patch("ffgateway.services.frame_service.list_frame_files", side_effect=PermissionError("denied")):
                with pytest.raises(WorkspaceIOError) as exc_info:
                    await extract_frames(sample_video, 1, workspace_root=str(tmp_path))
        assert exc_info.value.step == "collect_frames"
        assert _workspace_dirs(tmp_path) == []

    @pytest.mark.asyncio
    async def test_default_root_is_system_temp(self, sample_video, fake_frame_executor):
        seen = []

        async def fake(executable, argv, timeout, **kwargs):
            seen.append(Path(argv[-1]).parent.parent)
            return await fake_frame_executor(1)(executable, argv, timeout, **kwargs)

        with patch(EXECUTE, side_effect=fake):
            await extract_frames(sample_video, 1)
        assert seen[0].parent == Path(tempfile.gettempdir())
        assert not seen[0].exists()


class TestHelpers:
    """Test transfer helpers."""

    def test_frames_to_base64(self):
        from ffgateway.models.domain import Frame
        frames = [Frame(index=0, timestamp_seconds=0.0, image_bytes=b"\xff\xd8\xff")]
        assert frames_to_base64(frames) == [{"timestamp": 0.0, "base64Image": "data:image/jpeg;base64,/9j/"}]
        assert frames[0].to_base64() == "/9j/"

    def test_describe_failure_names_step(self):
        error = ProcessError("ffmpeg exited with code 1", step="execute")
        assert describe_failure(error) == "process_error during execute: ffmpeg exited with code 1"
