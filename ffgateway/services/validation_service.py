"""
Argument validation for user-supplied ffmpeg options.

This is a deny-list and therefore incomplete by construction: it rejects
tokens that carry shell metacharacters, path traversal, the file: scheme, or
references to /dev, /proc, /sys and /etc. It is defense in depth only. The
injection guard that actually matters is that ffmpeg is always started with
a discrete argv and never through a shell (see process_service).

The output format gets a stricter allow-list because it becomes part of a
filesystem path and of the Content-Disposition header.
"""

import logging
import re
from pathlib import PurePath
from typing import Iterable, Optional

from ffgateway.exceptions import ValidationError
from ffgateway.models.domain import ValidationVerdict
from ffgateway.models.schemas import TranscodeArgs

logger = logging.getLogger(__name__)

DANGEROUS_PATTERN = re.compile(
    r"[`$|;&]|\.\./|\.\.\\|file:|/dev/|/proc/|/sys/|/etc/",
    re.IGNORECASE,
)

OUTPUT_FORMAT_PATTERN = re.compile(r"[A-Za-z0-9]+")
INPUT_SUFFIX_PATTERN = re.compile(r"\.[A-Za-z0-9]+")

DEFAULT_INPUT_SUFFIX = ".bin"

# Scalar TranscodeArgs fields checked against the deny-list, with their wire names
SCALAR_FIELDS = (
    ("audio_codec", "audioCodec"),
    ("video_codec", "videoCodec"),
    ("video_bitrate", "videoBitrate"),
    ("audio_bitrate", "audioBitrate"),
    ("size", "size"),
    ("format", "format"),
)


def validate_option_value(value: str) -> bool:
    """Return True if a single value contains no deny-listed pattern."""
    return DANGEROUS_PATTERN.search(value) is None


def validate_tokens(tokens: Iterable[str]) -> ValidationVerdict:
    """
    Check option tokens against the deny-list.

    Tokens are checked in order and the first offender is reported.
    The function is pure: the same tokens always yield the same verdict.

    Args:
        tokens: Option flags and values, e.g. ["-preset", "fast"]

    Returns:
        ValidationVerdict, with offending_token and reason set when invalid

    Example:
        >>> validate_tokens(["-vf", "scale=640:-1"]).valid
        True
        >>> validate_tokens(["-i", "/etc/passwd"]).offending_token
        '/etc/passwd'
    """
    for token in tokens:
        match = DANGEROUS_PATTERN.search(token)
        if match:
            return ValidationVerdict(
                valid=False,
                offending_token=token,
                reason=f"Dangerous pattern in value: {token}",
            )
    return ValidationVerdict(valid=True)


def validate_output_format(output_format: Optional[str]) -> bool:
    """Return True if the output format is purely alphanumeric."""
    if not output_format:
        return False
    return OUTPUT_FORMAT_PATTERN.fullmatch(output_format) is not None


def require_output_format(output_format: Optional[str]) -> str:
    """Return the output format unchanged or raise ValidationError."""
    if not validate_output_format(output_format):
        logger.warning(f"Rejected output format: {output_format!r}")
        raise ValidationError(
            'Invalid output format - must be alphanumeric (e.g. "mp4", "webm")',
            step="validate",
        )
    return output_format


def validate_transcode_args(args: TranscodeArgs) -> None:
    """
    Apply the deny-list to every string in a TranscodeArgs.

    Raises:
        ValidationError: naming the option list or field that failed
    """
    for tokens, label in (
        (args.input_options, "Invalid input options"),
        (args.output_options, "Invalid output options"),
    ):
        if not tokens:
            continue
        verdict = validate_tokens(tokens)
        if not verdict.valid:
            logger.warning(f"{label}: {verdict.offending_token!r}")
            raise ValidationError(label, details=verdict.reason, step="validate")

    for attr, wire_name in SCALAR_FIELDS:
        value = getattr(args, attr)
        if value and not validate_option_value(value):
            logger.warning(f"Dangerous pattern in {wire_name}: {value!r}")
            raise ValidationError(f'Dangerous pattern in "{wire_name}"', details=value, step="validate")


def sanitize_input_suffix(filename: Optional[str]) -> str:
    """
    Derive the input file extension from an uploaded file name.

    Only a plain alphanumeric extension is kept; anything else becomes ".bin".
    """
    if not filename:
        return DEFAULT_INPUT_SUFFIX
    suffix = PurePath(filename).suffix
    if suffix and INPUT_SUFFIX_PATTERN.fullmatch(suffix):
        return suffix.lower()
    return DEFAULT_INPUT_SUFFIX
