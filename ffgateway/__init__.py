"""
ffmpeg gateway: runs ffmpeg transcodes and frame sampling for untrusted HTTP clients.
"""

__version__ = "0.1.0"
