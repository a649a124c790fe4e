"""Client-side value types: source files, chunk results, upload and batch outcomes."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from common.types import FileInfo
from cli.exceptions import BatchPartialFailureError


@dataclass(frozen=True)
class SourceFile:
    """A local file selected for upload."""
    path: Path
    name: str
    size: int
    modified_ns: int

    @classmethod
    def from_path(cls, path) -> "SourceFile":
        path = Path(path)
        stats = path.stat()
        return cls(path=path, name=path.name, size=stats.st_size, modified_ns=stats.st_mtime_ns)

    def read_range(self, start: int, end: int) -> bytes:
        """Read bytes [start, end) from the file."""
        with open(self.path, 'rb') as f:
            f.seek(start)
            return f.read(end - start)


@dataclass(frozen=True)
class ChunkResult:
    """Server answer for one chunk request."""
    filename: str
    chunk_index: int
    total_chunks: int
    received: int
    complete: bool
    file: Optional[FileInfo] = None


@dataclass(frozen=True)
class UploadOutcome:
    """Result of a successful chunked upload."""
    file_name: str
    file: Optional[FileInfo]
    total_chunks: int
    chunks_sent: int
    chunks_skipped: int
    retries: int


@dataclass(frozen=True)
class FailedFile:
    name: str
    error: str


@dataclass
class BatchResult:
    """Aggregate outcome of a batch upload."""
    success_count: int = 0
    failed_files: List[FailedFile] = field(default_factory=list)
    uploaded: List[FileInfo] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_files

    def raise_for_failures(self) -> None:
        """
        Raises:
            BatchPartialFailureError: If any file in the batch failed
        """
        if self.failed_files:
            raise BatchPartialFailureError(self.success_count, list(self.failed_files))


def join_client_path(base: str, *parts: str) -> str:
    """Join client-visible path segments with forward slashes ("/" + "a" -> "/a")."""
    segments = [s for s in base.strip("/").split("/") if s]
    for part in parts:
        segments.extend(s for s in part.replace("\\", "/").split("/") if s)
    return "/" + "/".join(segments)


def group_sources_by_target(paths: List[str], target_path: str = "/") -> Dict[str, List[SourceFile]]:
    """
    Expand CLI path arguments into source files grouped by server target directory.

    Plain files land in target_path. A directory argument keeps its own name
    and inner structure under target_path, so ``photos/2024/a.jpg`` uploaded
    to ``/`` goes to ``/photos/2024``.

    Raises:
        FileNotFoundError: If a path does not exist
    """
    groups: Dict[str, List[SourceFile]] = {}
    for raw in paths:
        path = Path(raw).expanduser().resolve()
        if path.is_dir():
            for root, dirs, files in os.walk(path):
                dirs.sort()
                relative = Path(root).relative_to(path.parent)
                target = join_client_path(target_path, *relative.parts)
                for name in sorted(files):
                    groups.setdefault(target, []).append(SourceFile.from_path(Path(root) / name))
        else:
            groups.setdefault(join_client_path(target_path), []).append(SourceFile.from_path(path))
    return groups
