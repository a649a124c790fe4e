"""Manages chunk slots on disk: per-file slot writes, discovery and reassembly."""

import logging
import os
import re
from pathlib import Path
from typing import Iterator

from common.constants import ASSEMBLING_SUFFIX, CHUNK_PART_SEPARATOR, CHUNKS_DIR_NAME, SCRATCH_SUFFIX
from common.types import FileInfo
from server.exceptions import ChunkWriteError, ReassemblyError
from server.paths import stat_file_info

logger = logging.getLogger(__name__)

COPY_PIECE_SIZE = 1024 * 1024


def get_chunks_dir(target_dir: Path) -> Path:
    """
    Get the temporary chunk area for a target directory.

    Args:
        target_dir: Absolute directory the final file will land in

    Returns:
        Path of the ``.chunks`` area (may not exist yet)
    """
    return target_dir / CHUNKS_DIR_NAME


def get_chunk_path(sanitized_name: str, index: int, target_dir: Path) -> Path:
    """
    Get file path for a chunk slot.

    Args:
        sanitized_name: Storage key of the file
        index: Zero-based chunk index
        target_dir: Absolute target directory

    Returns:
        Path object for the slot file
    """
    return get_chunks_dir(target_dir) / f"{sanitized_name}{CHUNK_PART_SEPARATOR}{index}"


def _slot_pattern(sanitized_name: str) -> re.Pattern:
    return re.compile(rf"^{re.escape(sanitized_name)}{re.escape(CHUNK_PART_SEPARATOR)}(\d+)$")


def write_chunk(sanitized_name: str, index: int, target_dir: Path, data: bytes) -> str:
    """
    Write chunk data to its slot.

    Rewriting an existing index replaces the slot; the same index always
    carries the same byte range of the source, so retries are idempotent.
    Data goes to a scratch file first and is renamed into place so a
    concurrent reader never sees a half-written slot.

    Args:
        sanitized_name: Storage key of the file
        index: Zero-based chunk index
        target_dir: Absolute target directory
        data: Raw chunk bytes

    Returns:
        String path to written slot

    Raises:
        ChunkWriteError: If the slot cannot be persisted
    """
    filepath = get_chunk_path(sanitized_name, index, target_dir)
    scratch = filepath.with_name(f"{filepath.name}.{os.getpid()}{SCRATCH_SUFFIX}")
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        scratch.write_bytes(data)
        os.replace(scratch, filepath)
    except OSError as e:
        scratch.unlink(missing_ok=True)
        raise ChunkWriteError(f"Failed to write chunk {index} of {sanitized_name}: {e}") from e

    logger.debug(f"Wrote chunk slot {filepath} ({len(data)} bytes)")
    return str(filepath)


def list_received_chunks(sanitized_name: str, target_dir: Path) -> list[int]:
    """
    List chunk indices present for a file.

    Args:
        sanitized_name: Storage key of the file
        target_dir: Absolute target directory

    Returns:
        Sorted list of distinct indices; empty if the chunk area does not exist
    """
    chunks_dir = get_chunks_dir(target_dir)
    if not chunks_dir.is_dir():
        return []

    pattern = _slot_pattern(sanitized_name)
    indices = set()
    for entry in chunks_dir.iterdir():
        match = pattern.match(entry.name)
        if match and entry.is_file():
            indices.add(int(match.group(1)))
    return sorted(indices)


def count_received_chunks(sanitized_name: str, target_dir: Path) -> int:
    """Return the number of distinct chunk slots present for a file."""
    return len(list_received_chunks(sanitized_name, target_dir))


def read_chunk_streaming(sanitized_name: str, index: int, target_dir: Path,
                         piece_size: int = COPY_PIECE_SIZE) -> Iterator[bytes]:
    """
    Stream a chunk slot in pieces.

    Raises:
        FileNotFoundError: If the slot does not exist
    """
    filepath = get_chunk_path(sanitized_name, index, target_dir)
    with open(filepath, 'rb') as f:
        while True:
            piece = f.read(piece_size)
            if not piece:
                break
            yield piece


def delete_chunk(sanitized_name: str, index: int, target_dir: Path) -> bool:
    """
    Delete a chunk slot.

    Returns:
        True if the slot was deleted, False if it didn't exist
    """
    filepath = get_chunk_path(sanitized_name, index, target_dir)
    if filepath.exists():
        filepath.unlink()
        return True
    return False


def slot_sizes(sanitized_name: str, target_dir: Path, total_chunks: int) -> list[int]:
    """
    Return the byte length of slots 0..total_chunks-1 in index order.

    Raises:
        FileNotFoundError: If a slot is missing
    """
    return [get_chunk_path(sanitized_name, index, target_dir).stat().st_size for index in range(total_chunks)]


def range_matches(path: Path, offset: int, data: bytes) -> bool:
    """Return True if ``path`` holds exactly ``data`` starting at ``offset``."""
    try:
        with open(path, 'rb') as f:
            f.seek(offset)
            return f.read(len(data)) == data
    except OSError:
        return False


def remove_chunks_dir_if_empty(target_dir: Path) -> bool:
    """Remove the chunk area once nothing is left in it."""
    chunks_dir = get_chunks_dir(target_dir)
    try:
        chunks_dir.rmdir()
        return True
    except OSError:
        return False


def reassemble(sanitized_name: str, target_dir: Path, total_chunks: int) -> FileInfo:
    """
    Concatenate slots 0..total_chunks-1 into the final file.

    Slots are streamed in index order into ``<name>.assembling`` inside the
    chunk area, which is fsynced and atomically renamed over the destination.
    Slots are deleted only after the rename, so a failure leaves the
    destination untouched and every slot still in place.

    Args:
        sanitized_name: Storage key of the file
        target_dir: Absolute target directory
        total_chunks: Declared chunk count

    Returns:
        FileInfo of the assembled file

    Raises:
        ReassemblyError: If any slot is missing or an I/O error occurs
    """
    chunks_dir = get_chunks_dir(target_dir)
    assembling_path = chunks_dir / f"{sanitized_name}{ASSEMBLING_SUFFIX}"
    final_path = target_dir / sanitized_name

    try:
        with open(assembling_path, 'wb') as out:
            for index in range(total_chunks):
                for piece in read_chunk_streaming(sanitized_name, index, target_dir):
                    out.write(piece)
            out.flush()
            os.fsync(out.fileno())
        os.replace(assembling_path, final_path)
    except OSError as e:
        assembling_path.unlink(missing_ok=True)
        logger.error(f"Reassembly failed for {sanitized_name} in {target_dir}: {e}")
        raise ReassemblyError(f"Failed to reassemble {sanitized_name}: {e}") from e

    for index in range(total_chunks):
        delete_chunk(sanitized_name, index, target_dir)
    remove_chunks_dir_if_empty(target_dir)

    logger.info(f"Reassembled {sanitized_name} from {total_chunks} chunks into {final_path}")
    return stat_file_info(final_path)
