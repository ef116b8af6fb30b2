"""
Number formatting for ffmpeg time and rate arguments.

This module provides utilities for:
- Writing seconds and rates as plain decimal strings that round-trip exactly
"""

from decimal import Decimal


def format_ffmpeg_number(value: float) -> str:
    """
    Format a number for an ffmpeg argument without rounding or exponents.

    repr() gives the shortest string that round-trips the float; Decimal
    re-renders it in positional notation.

    Examples:
        1234.5678 -> "1234.5678"
        1234567 -> "1234567"
        0.00001 -> "0.00001"
        23.976023976 -> "23.976023976"
        3.0 -> "3"
    """
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
