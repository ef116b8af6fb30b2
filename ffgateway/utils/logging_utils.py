"""
Logging Utilities for the ffmpeg gateway.

This module provides centralized logging configuration for the FastAPI
application and the gateway services. It ensures consistent log formatting
with request ID tracing across all operations.

Services log through module loggers under the "ffgateway" namespace, or
through the request logger a router hands them, so one request can be
followed from upload to workspace cleanup.
"""
import logging
from typing import Optional, Union

LOGGER_NAME = "ffgateway"

RequestLogger = Union[logging.Logger, logging.LoggerAdapter]


class _DefaultRequestIdFilter(logging.Filter):
    """Supply request_id="-" for records logged outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True


def setup_logger(
    log_level: Union[int, str] = logging.INFO,
    logger_name: str = LOGGER_NAME
) -> logging.Logger:
    """
    Configure the gateway logger.

    Args:
        log_level: Logging level constant or name (e.g. "DEBUG").
                  Defaults to logging.INFO.
        logger_name: Name for the logger instance. Defaults to "ffgateway".

    Returns:
        Configured Logger instance ready for use with get_request_logger().

    Example:
        >>> logger = setup_logger(log_level=logging.DEBUG)
        >>> request_logger = get_request_logger("3f9a1c2e")
        >>> request_logger.info("Transcode started")
        2026-10-19 10:30:45 | INFO | [3f9a1c2e] Transcode started
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    log_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | [%(request_id)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # Prevent duplicate handlers if logger already configured
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(log_format)
        console_handler.addFilter(_DefaultRequestIdFilter())
        logger.addHandler(console_handler)

    return logger


def get_request_logger(
    request_id: str,
    base_logger: Optional[logging.Logger] = None
) -> logging.LoggerAdapter:
    """
    Create a logger adapter with the request ID for tracing.

    Args:
        request_id: Unique identifier for the request.
        base_logger: Optional base logger to wrap. If None, uses the
                    "ffgateway" logger.

    Returns:
        LoggerAdapter configured to inject request_id into all log messages.
    """
    if base_logger is None:
        base_logger = logging.getLogger(LOGGER_NAME)

    return logging.LoggerAdapter(base_logger, {"request_id": request_id})
