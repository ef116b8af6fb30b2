"""
Integration tests against a real ffmpeg binary.

These tests generate their input with ffmpeg's lavfi test sources and run
the real transcode and frame pipelines. They are marked with
@pytest.mark.integration and skipped when ffmpeg is not on PATH.

Usage:
    # Run all integration tests
    pytest tests/integration/ -v -s

    # Skip them
    pytest -m "not integration"

Optional environment variables (see .env):
    - FFMPEG_BINARY
"""
