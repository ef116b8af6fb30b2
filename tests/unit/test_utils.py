"""
Unit tests for utility modules.

This module tests:
- ffgateway/utils/mime_utils.py
- ffgateway/utils/logging_utils.py
- ffgateway/utils/timestamp_utils.py
"""

import logging
import pytest

from ffgateway.utils.logging_utils import get_request_logger, setup_logger
from ffgateway.utils.timestamp_utils import format_ffmpeg_number
from ffgateway.utils.mime_utils import (
    DEFAULT_CONTENT_TYPE,
    encode_content_disposition_filename,
    get_content_type,
)


class TestMimeUtils:
    """Test content type and Content-Disposition helpers."""

    @pytest.mark.parametrize("fmt, expected", [
        ("mp4", "video/mp4"),
        ("webm", "video/webm"),
        ("MKV", "video/x-matroska"),
        ("mp3", "audio/mpeg"),
        ("gif", "image/gif"),
    ])
    def test_known_formats(self, fmt, expected):
        assert get_content_type(fmt) == expected

    def test_unknown_format_falls_back(self):
        assert get_content_type("xyz") == DEFAULT_CONTENT_TYPE
        assert DEFAULT_CONTENT_TYPE == "application/octet-stream"

    def test_encode_content_disposition_ascii(self):
        """Test Content-Disposition encoding for ASCII filenames."""
        result = encode_content_disposition_filename("output.mp4")
        assert result == 'attachment; filename="output.mp4"'

    def test_encode_content_disposition_unicode(self):
        """Test Content-Disposition encoding for Unicode filenames."""
        result = encode_content_disposition_filename("vidéo.mp4")
        assert "attachment; filename=" in result
        assert "filename*=UTF-8''" in result

    def test_encode_content_disposition_quotes(self):
        """Test handling of quotes in filenames."""
        result = encode_content_disposition_filename('out"put.mp4')
        assert '\\"' in result


class TestLoggingUtils:
    """Test logger setup and request-scoped adapters."""

    def test_setup_logger_accepts_level_name(self):
        logger = setup_logger("DEBUG", logger_name="ffgateway.test.level")
        assert logger.level == logging.DEBUG

    def test_setup_logger_unknown_level_defaults_to_info(self):
        logger = setup_logger("LOUD", logger_name="ffgateway.test.unknown")
        assert logger.level == logging.INFO

    def test_setup_logger_does_not_duplicate_handlers(self):
        first = setup_logger(logger_name="ffgateway.test.handlers")
        second = setup_logger(logger_name="ffgateway.test.handlers")
        assert first is second
        assert len(second.handlers) == 1

    def test_request_logger_carries_request_id(self, caplog):
        base = logging.getLogger("ffgateway.test.adapter")
        adapter = get_request_logger("abc12345", base_logger=base)
        with caplog.at_level(logging.INFO, logger="ffgateway.test.adapter"):
            adapter.info("Transcode started")
        assert caplog.records[-1].request_id == "abc12345"

    def test_records_without_request_id_still_format(self, capsys):
        logger = setup_logger(logger_name="ffgateway.test.format")
        logger.propagate = False
        logger.info("startup")
        assert "[-] startup" in capsys.readouterr().err


class TestTimestampUtils:
    """Test number formatting for ffmpeg arguments."""

    @pytest.mark.parametrize("value, expected", [
        (3, "3"),
        (3.0, "3"),
        (0.5, "0.5"),
        (0, "0"),
        (1234.5678, "1234.5678"),
        (23.976023976, "23.976023976"),
        (1234567, "1234567"),
        (0.00001, "0.00001"),
        (1e16, "10000000000000000"),
    ])
    def test_format_ffmpeg_number(self, value, expected):
        assert format_ffmpeg_number(value) == expected

    def test_format_round_trips(self):
        for value in [1 / 3, 29.97002997, 7265.125, 1e-7]:
            assert float(format_ffmpeg_number(value)) == value
            assert "e" not in format_ffmpeg_number(value)
