"""Path resolution under the uploads root and stat helpers."""

from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from common.naming import is_video_file
from common.types import DirectoryEntry, FileInfo
from server import config
from server.exceptions import InvalidPathError


def resolve_in_root(client_path: str | None) -> Path:
    """
    Resolve a client-visible path ("/", "/videos/2024") to an absolute path
    inside the uploads root.

    Args:
        client_path: Slash-separated path relative to the uploads root

    Returns:
        Absolute resolved Path

    Raises:
        InvalidPathError: If the path escapes the uploads root
    """
    root = config.get_uploads_root()
    relative = (client_path or "/").strip().lstrip("/\\")

    candidate = root / relative if relative else root

    try:
        resolved = candidate.resolve()
        resolved.relative_to(root)
    except (OSError, RuntimeError, ValueError):
        raise InvalidPathError(f"Invalid path: '{client_path}' is outside the uploads directory")

    return resolved


def to_client_path(path: Path) -> str:
    """Convert an absolute path inside the uploads root back to a "/"-rooted client path."""
    relative = path.resolve().relative_to(config.get_uploads_root())
    return str(PurePosixPath("/") / PurePosixPath(*relative.parts))


def _timestamps(path: Path) -> tuple[datetime, datetime]:
    stats = path.stat()
    created_ts = getattr(stats, "st_birthtime", stats.st_ctime)
    created = datetime.fromtimestamp(created_ts, tz=timezone.utc)
    modified = datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)
    return created, modified


def stat_file_info(path: Path) -> FileInfo:
    """
    Build FileInfo for a stored file.

    Args:
        path: Absolute path to an existing file under the uploads root

    Returns:
        FileInfo with size, timestamps and video classification
    """
    created, modified = _timestamps(path)
    return FileInfo(
        name=path.name,
        path=to_client_path(path),
        size=path.stat().st_size,
        is_video=is_video_file(path.name),
        created=created,
        modified=modified,
    )


def describe_entry(path: Path) -> DirectoryEntry:
    """Build a listing entry for a file or folder."""
    created, modified = _timestamps(path)
    is_dir = path.is_dir()
    return DirectoryEntry(
        name=path.name,
        path=to_client_path(path),
        size=path.stat().st_size,
        is_video=not is_dir and is_video_file(path.name),
        created=created,
        modified=modified,
        type="folder" if is_dir else "file",
    )
