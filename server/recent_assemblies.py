"""Short-lived memory of reassembled uploads so late chunk retries do not reopen them."""

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from common.constants import COMPLETED_UPLOAD_TTL_SECONDS


@dataclass(frozen=True)
class AssembledUpload:
    """Layout of one reassembled file and the stat it had right after the rename."""
    total_chunks: int
    offsets: tuple[int, ...]
    sizes: tuple[int, ...]
    final_size: int
    mtime_ns: int
    assembled_at: float

    def slot_range(self, index: int) -> tuple[int, int]:
        """Return (offset, size) of chunk ``index`` inside the final file."""
        return self.offsets[index], self.sizes[index]

    def matches_stat(self, final_path: Path) -> bool:
        """Return True if the final file still looks exactly as it did after reassembly."""
        try:
            stats = final_path.stat()
        except OSError:
            return False
        return stats.st_size == self.final_size and stats.st_mtime_ns == self.mtime_ns


class RecentAssemblies:
    """
    In-process record of files reassembled in the last ``ttl`` seconds,
    keyed by (target directory, sanitized name).

    A client whose reply to the last chunk got lost retries that chunk; the
    record lets the server answer it as complete instead of opening a new
    slot that would never be assembled.
    """

    def __init__(self, ttl: float = COMPLETED_UPLOAD_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: dict[tuple[str, str], AssembledUpload] = {}
        self._mutex = threading.Lock()

    @staticmethod
    def _key(target_dir: Path, sanitized_name: str) -> tuple[str, str]:
        return (str(target_dir), sanitized_name)

    def _prune(self) -> None:
        cutoff = self.clock() - self.ttl
        expired = [key for key, entry in self._entries.items() if entry.assembled_at < cutoff]
        for key in expired:
            del self._entries[key]

    def record(self, target_dir: Path, sanitized_name: str, sizes: list[int], final_path: Path) -> AssembledUpload:
        """
        Remember a file that was just reassembled.

        Args:
            target_dir: Absolute target directory
            sanitized_name: Storage key of the file
            sizes: Byte length of each slot, in index order
            final_path: Path of the assembled file
        """
        offsets = []
        position = 0
        for size in sizes:
            offsets.append(position)
            position += size
        stats = final_path.stat()
        entry = AssembledUpload(
            total_chunks=len(sizes),
            offsets=tuple(offsets),
            sizes=tuple(sizes),
            final_size=stats.st_size,
            mtime_ns=stats.st_mtime_ns,
            assembled_at=self.clock(),
        )
        with self._mutex:
            self._prune()
            self._entries[self._key(target_dir, sanitized_name)] = entry
        return entry

    def lookup(self, target_dir: Path, sanitized_name: str, total_chunks: int) -> Optional[AssembledUpload]:
        """Return the unexpired record for a file with the same chunk count, if any."""
        with self._mutex:
            self._prune()
            entry = self._entries.get(self._key(target_dir, sanitized_name))
        if entry is None or entry.total_chunks != total_chunks:
            return None
        return entry

    def forget(self, target_dir: Path, sanitized_name: str) -> None:
        with self._mutex:
            self._entries.pop(self._key(target_dir, sanitized_name), None)

    def __len__(self) -> int:
        return len(self._entries)


recent_assemblies = RecentAssemblies()
