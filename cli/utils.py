"""Utility functions for CLI operations."""

import sys
from datetime import datetime
from typing import List, Optional, TextIO

from cli.constants import GREEN, RED, RESET, YELLOW
from cli.events import EventKind, UploadEvent
from cli.ledger import PendingUpload


class ProgressPrinter:
    """Event listener that renders upload progress to a terminal stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        """
        Initialize the progress printer.

        Args:
            stream: Output stream (defaults to sys.stdout at print time)
        """
        self._stream = stream
        self._line_open = False

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stdout

    def __call__(self, event: UploadEvent) -> None:
        if event.kind == EventKind.STARTED:
            if event.completed_chunks:
                self._line(f"Resuming {event.file_name}: {event.completed_chunks}/{event.total_chunks} chunks on server")
            self._progress(event.file_name, event.completed_chunks or 0, event.total_chunks)
        elif event.kind == EventKind.CHUNK_UPLOADED:
            self._progress(event.file_name, event.completed_chunks, event.total_chunks)
        elif event.kind == EventKind.CHUNK_RETRY:
            self._line(
                f"{YELLOW}Chunk {event.chunk_index} of {event.file_name} failed "
                f"(attempt {event.attempt}), retrying in {event.delay:.1f}s{RESET}"
            )
        elif event.kind == EventKind.RESUME_QUERY_FAILED:
            self._line(f"{YELLOW}Could not ask server for existing chunks of {event.file_name}{RESET}")
        elif event.kind == EventKind.COMPLETED:
            self._progress(event.file_name, event.total_chunks, event.total_chunks)
            self._finish()
        elif event.kind == EventKind.FAILED:
            self._line(f"{RED}Upload of {event.file_name} failed: {event.error}{RESET}")
        elif event.kind == EventKind.BATCH_FILE_DONE:
            self._line(f"{GREEN}✓{RESET} {event.file_name}")
        elif event.kind == EventKind.BATCH_FILE_FAILED:
            self._line(f"{RED}✗{RESET} {event.error}")

    def _progress(self, file_name: str, completed: int, total: int) -> None:
        percent = (completed / total * 100) if total else 0.0
        self.stream.write(f"\rUploading {file_name}: {completed}/{total} chunks ({GREEN}{percent:.1f}%{RESET})")
        self.stream.flush()
        self._line_open = True

    def _finish(self) -> None:
        if self._line_open:
            self.stream.write('\n')
            self.stream.flush()
            self._line_open = False

    def _line(self, text: str) -> None:
        self._finish()
        self.stream.write(text + '\n')
        self.stream.flush()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_listing(listing: dict) -> str:
    """Render a directory listing response as aligned text."""
    lines = [f"{listing.get('current_path', '/')}:"]
    for folder in listing.get('folders', []):
        lines.append(f"  {folder['name']}/")
    for entry in listing.get('files', []):
        lines.append(f"  {entry['name']:<40} {format_file_size(entry.get('size', 0)):>12}")
    if len(lines) == 1:
        lines.append("  (empty)")
    return "\n".join(lines)


def format_pending(pending: List[PendingUpload]) -> str:
    """Render pending uploads, most recent first."""
    if not pending:
        return "No pending uploads."

    lines = ["Pending uploads:"]
    for item in pending:
        updated = datetime.fromtimestamp(item.last_updated).strftime('%Y-%m-%d %H:%M')
        line = (
            f"  {item.file_name} -> {item.target_path}  "
            f"{item.completed_chunks}/{item.total_chunks} chunks ({item.progress}%)  {updated}"
        )
        if item.has_error:
            line += f"\n    last error: {item.last_error}"
        line += f"\n    key: {item.key}"
        lines.append(line)
    lines.append("Re-run 'upload' on a file to resume it, or 'forget <key>' to drop it.")
    return "\n".join(lines)
