"""
Video resolver service.

Turns a public video page URL into downloadable media bytes. Two backends:
- cobalt: POST the page URL to a cobalt API and follow the tunnel URL it returns
- ytdlp: let yt-dlp extract the direct media URL without downloading

Both are blocking (requests / yt-dlp); routers call them through the thread pool.
"""

import logging
from typing import Optional, Tuple
from urllib.parse import urlparse

import requests
import yt_dlp

from ffgateway.config import (
    MAX_DOWNLOAD_BYTES,
    RESOLVER_BACKEND,
    RESOLVER_TIMEOUT_SECONDS,
    RESOLVER_TOKEN,
    RESOLVER_URL,
)
from ffgateway.exceptions import PayloadTooLarge, ResolverError, ValidationError
from ffgateway.utils.logging_utils import RequestLogger

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_BYTES = 1024 * 1024
ALLOWED_SCHEMES = ("http", "https")


def validate_video_url(url: str) -> str:
    """Return the URL if it is an absolute http(s) URL, else raise ValidationError."""
    parsed = urlparse(url.strip())
    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        raise ValidationError("No valid URL provided. Please provide an http(s) video URL.", step="resolve")
    return url.strip()


def _resolve_with_cobalt(url: str, log: RequestLogger) -> str:
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if RESOLVER_TOKEN:
        headers["Authorization"] = f"Bearer {RESOLVER_TOKEN}"

    try:
        response = requests.post(
            RESOLVER_URL,
            json={"url": url, "videoQuality": "max"},
            headers=headers,
            timeout=RESOLVER_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise ResolverError(f"Resolver request failed: {e}", step="resolve")

    if not response.ok:
        log.error(f"Resolver API error response: {response.text[:500]}")
        raise ResolverError(f"Resolver returned HTTP {response.status_code}", step="resolve")

    try:
        data = response.json()
    except ValueError:
        raise ResolverError("Resolver returned a non-JSON response", step="resolve")

    media_url = data.get("url") if isinstance(data, dict) else None
    if not media_url:
        raise ResolverError("No download URL found in resolver response", step="resolve")
    return media_url


def _resolve_with_ytdlp(url: str, log: RequestLogger) -> str:
    ydl_opts = {
        'quiet': True,
        'skip_download': True,
        'format': 'best[ext=mp4]/best',
    }
    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(url, download=False)
    except yt_dlp.utils.DownloadError as e:
        raise ResolverError(f"yt-dlp could not resolve URL: {e}", step="resolve")

    media_url = (info or {}).get("url")
    if not media_url:
        # Some extractors only list per-format URLs
        formats = (info or {}).get("requested_formats") or []
        media_url = next((f.get("url") for f in formats if f.get("url")), None)
    if not media_url:
        raise ResolverError("yt-dlp returned no media URL", step="resolve")
    return media_url


def resolve_video_url(url: str, backend: str = RESOLVER_BACKEND, log: Optional[RequestLogger] = None) -> str:
    """
    Resolve a video page URL to a direct media URL.

    Args:
        url: Public video page URL
        backend: "cobalt" or "ytdlp"

    Returns:
        Direct media URL

    Raises:
        ValidationError: For a non-http(s) URL
        ResolverError: If the backend cannot resolve the URL
    """
    log = log or logger
    url = validate_video_url(url)
    if backend == "cobalt":
        media_url = _resolve_with_cobalt(url, log)
    elif backend == "ytdlp":
        media_url = _resolve_with_ytdlp(url, log)
    else:
        raise ResolverError(f"Unknown resolver backend: {backend}", step="resolve")
    log.info(f"Got video download URL from {backend}")
    return media_url


def download_video(
    media_url: str,
    max_bytes: int = MAX_DOWNLOAD_BYTES,
    log: Optional[RequestLogger] = None
) -> bytes:
    """
    Download media bytes, stopping as soon as ``max_bytes`` is exceeded.

    Raises:
        PayloadTooLarge: If the video is larger than max_bytes
        ResolverError: On HTTP or network failure
    """
    log = log or logger
    try:
        with requests.get(media_url, stream=True, timeout=RESOLVER_TIMEOUT_SECONDS) as response:
            if not response.ok:
                raise ResolverError(f"Failed to fetch video: HTTP {response.status_code}", step="download")

            declared = response.headers.get("Content-Length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise PayloadTooLarge(f"Video exceeds {max_bytes} byte download limit", step="download")

            buffer = bytearray()
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                buffer.extend(chunk)
                if len(buffer) > max_bytes:
                    raise PayloadTooLarge(f"Video exceeds {max_bytes} byte download limit", step="download")
    except requests.RequestException as e:
        raise ResolverError(f"Failed to fetch video: {e}", step="download")

    log.info(f"Downloaded video data ({len(buffer)} bytes)")
    return bytes(buffer)


def fetch_video(url: str, log: Optional[RequestLogger] = None) -> Tuple[str, bytes]:
    """Resolve and download a video. Returns (media_url, video_bytes)."""
    media_url = resolve_video_url(url, log=log)
    return media_url, download_video(media_url, log=log)
