"""Filename sanitization and classification shared by server and client."""

import re
from pathlib import PurePosixPath

from common.constants import VIDEO_EXTENSIONS

_WHITESPACE_RE = re.compile(r"\s+")
_DISALLOWED_RE = re.compile(r"[^A-Za-z0-9._-]")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")

SANITIZED_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def sanitize_filename(name: str) -> str:
    """
    Normalize a user-supplied file name into a storage-safe key.

    Whitespace runs become a single hyphen, characters outside
    ``[A-Za-z0-9._-]`` are dropped, repeated hyphens collapse and
    leading/trailing hyphens are trimmed. Applying it twice is a no-op.

    Args:
        name: Raw file name as the user supplied it

    Returns:
        Sanitized name (may be empty if nothing survives)
    """
    sanitized = _WHITESPACE_RE.sub("-", name)
    sanitized = _DISALLOWED_RE.sub("", sanitized)
    sanitized = _HYPHEN_RUN_RE.sub("-", sanitized)
    return sanitized.strip("-")


def is_valid_storage_name(name: str) -> bool:
    """Return True if name is a non-empty sanitized name usable on disk."""
    return bool(SANITIZED_NAME_RE.match(name)) and name not in (".", "..")


def is_video_file(filename: str) -> bool:
    """
    Check whether a file name has a video extension.

    Args:
        filename: File name (sanitized or not)

    Returns:
        True for known video extensions, case-insensitive
    """
    return PurePosixPath(filename).suffix.lower() in VIDEO_EXTENSIONS
