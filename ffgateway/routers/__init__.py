"""
Routers package for API endpoints.

This package contains all API route handlers organized by functionality.
"""

from .ffmpeg import router as ffmpeg_router
from .frames import router as frames_router
from .health import router as health_router

__all__ = [
    "ffmpeg_router",
    "frames_router",
    "health_router",
]
