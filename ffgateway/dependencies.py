"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- API key authentication and verification
- Per-request logger with a short request ID
"""

import logging
import uuid

from fastapi import Header, HTTPException
from ffgateway.config import get_settings
from ffgateway.utils.logging_utils import get_request_logger


def verify_api_key(x_api_key: str = Header(None)) -> bool:
    """
    Dependency to verify API key from request header.
    Raises HTTPException 401 if invalid, 500 if not configured.
    """
    settings = get_settings()
    if not settings.api_key:
        raise HTTPException(status_code=500, detail="API key not configured")
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API Key")
    return True


def request_logger() -> logging.LoggerAdapter:
    """Dependency returning a logger tagged with a fresh request ID."""
    return get_request_logger(uuid.uuid4().hex[:8])
