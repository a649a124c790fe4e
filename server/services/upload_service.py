"""Chunk receipt, completion detection and resume queries."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from common.constants import ASSEMBLING_SUFFIX, CHUNKS_DIR_NAME, SCRATCH_SUFFIX
from common.naming import is_valid_storage_name, sanitize_filename
from common.types import FileInfo
from server import chunk_store
from server.config import MAX_CHUNK_BODY_BYTES
from server.exceptions import ChunkTooLargeError, InvalidRequestError, ReassemblyError
from server.paths import resolve_in_root, stat_file_info
from server.recent_assemblies import RecentAssemblies, recent_assemblies
from server.upload_locks import UploadLockRegistry, upload_locks

logger = logging.getLogger(__name__)

RESERVED_SUFFIXES = (ASSEMBLING_SUFFIX, SCRATCH_SUFFIX)


@dataclass(frozen=True)
class ChunkReceipt:
    """Outcome of accepting one chunk."""
    filename: str
    chunk_index: int
    total_chunks: int
    received: int
    file: Optional[FileInfo] = None

    @property
    def complete(self) -> bool:
        return self.file is not None


def _require(value: Optional[str], name: str) -> str:
    if value is None or str(value).strip() == "":
        raise InvalidRequestError(f"Missing required parameter: {name}")
    return str(value).strip()


def _parse_int(value: Optional[str], name: str, minimum: int) -> int:
    raw = _require(value, name)
    try:
        parsed = int(raw)
    except ValueError:
        raise InvalidRequestError(f"Parameter {name} must be an integer, got '{raw}'")
    if parsed < minimum:
        raise InvalidRequestError(f"Parameter {name} must be >= {minimum}, got {parsed}")
    return parsed


def storage_name_for(filename: Optional[str]) -> str:
    """
    Sanitize a client-supplied file name into its storage key.

    Raises:
        InvalidRequestError: If the name is missing or nothing usable survives sanitization
    """
    raw = _require(filename, "filename")
    sanitized = sanitize_filename(raw)
    if not is_valid_storage_name(sanitized):
        raise InvalidRequestError(f"File name '{raw}' has no usable characters")
    if sanitized == CHUNKS_DIR_NAME or sanitized.endswith(RESERVED_SUFFIXES):
        raise InvalidRequestError(f"File name '{raw}' is reserved for upload staging")
    return sanitized


class ChunkUploadService:
    """Accepts chunks, detects completion and reassembles under a per-file claim."""

    def __init__(self, locks: Optional[UploadLockRegistry] = None,
                 assemblies: Optional[RecentAssemblies] = None):
        self.locks = locks or upload_locks
        self.assemblies = assemblies if assemblies is not None else recent_assemblies

    async def receive_chunk(
        self,
        filename: Optional[str],
        chunk_index: Optional[str],
        total_chunks: Optional[str],
        target_path: Optional[str],
        data: bytes,
    ) -> ChunkReceipt:
        """
        Persist one chunk and reassemble if it was the last one missing.

        Every parameter is validated before anything touches the disk.

        Args:
            filename: Unsanitized client file name
            chunk_index: Zero-based index (string from the query)
            total_chunks: Declared chunk count (string from the query)
            target_path: Client-visible target directory
            data: Raw chunk payload

        Returns:
            ChunkReceipt; ``file`` is set once the file has been reassembled

        Raises:
            InvalidRequestError: Missing or malformed parameters, empty body
            InvalidPathError: target_path escapes the uploads root
            ChunkTooLargeError: Payload above the configured maximum
            ChunkWriteError: Slot could not be written
            ReassemblyError: Final concatenation failed
        """
        sanitized = storage_name_for(filename)
        index = _parse_int(chunk_index, "chunk_index", 0)
        total = _parse_int(total_chunks, "total_chunks", 1)
        if index >= total:
            raise InvalidRequestError(f"chunk_index {index} is out of range for total_chunks {total}")
        if not data:
            raise InvalidRequestError("Chunk body is empty")
        if len(data) > MAX_CHUNK_BODY_BYTES:
            raise ChunkTooLargeError(
                f"Chunk of {len(data)} bytes exceeds the {MAX_CHUNK_BODY_BYTES} byte limit"
            )
        target_dir = resolve_in_root(target_path)

        async with self.locks.claim(target_dir, sanitized):
            final_info = await asyncio.to_thread(
                self._already_assembled, sanitized, index, total, target_dir, data
            )
            if final_info is not None:
                logger.info(f"Chunk {index} of {sanitized} repeats a finished upload, reporting it complete")
                return ChunkReceipt(sanitized, index, total, total, final_info)

            await asyncio.to_thread(chunk_store.write_chunk, sanitized, index, target_dir, data)
            indices = await asyncio.to_thread(chunk_store.list_received_chunks, sanitized, target_dir)
            received = len([i for i in indices if i < total])

            if received != total:
                logger.debug(f"Chunk {index} of {sanitized}: {received}/{total} received")
                return ChunkReceipt(sanitized, index, total, received)

            logger.info(f"All {total} chunks of {sanitized} received, reassembling")
            file_info = await asyncio.to_thread(self._reassemble, sanitized, target_dir, total)

        return ChunkReceipt(sanitized, index, total, received, file_info)

    def _already_assembled(self, sanitized: str, index: int, total: int,
                           target_dir: Path, data: bytes) -> Optional[FileInfo]:
        """
        Return FileInfo if this chunk is a late copy of one already reassembled.

        The record only counts while the final file is unchanged and holds
        exactly ``data`` at the chunk's offset; otherwise it is dropped and the
        chunk starts a new upload.
        """
        record = self.assemblies.lookup(target_dir, sanitized, total)
        if record is None:
            return None
        final_path = target_dir / sanitized
        offset, size = record.slot_range(index)
        if (size == len(data) and record.matches_stat(final_path)
                and chunk_store.range_matches(final_path, offset, data)):
            return stat_file_info(final_path)
        self.assemblies.forget(target_dir, sanitized)
        return None

    def _reassemble(self, sanitized: str, target_dir: Path, total: int) -> FileInfo:
        try:
            sizes = chunk_store.slot_sizes(sanitized, target_dir, total)
        except OSError as e:
            raise ReassemblyError(f"Failed to reassemble {sanitized}: {e}") from e
        file_info = chunk_store.reassemble(sanitized, target_dir, total)
        try:
            self.assemblies.record(target_dir, sanitized, sizes, target_dir / sanitized)
        except OSError as e:
            logger.warning(f"Could not record reassembly of {sanitized}: {e}")
        return file_info

    def existing_chunks(
        self,
        filename: Optional[str],
        target_path: Optional[str],
        total_chunks: Optional[str],
    ) -> tuple[str, int, list[int]]:
        """
        Report which chunk indices the server already holds.

        Clients ask this before every upload run, so it also ends the window
        in which chunks of a previously reassembled file are answered as
        complete.

        Args:
            filename: Unsanitized client file name
            target_path: Client-visible target directory
            total_chunks: Declared chunk count

        Returns:
            Tuple of (sanitized name, total chunks, sorted indices below total)
        """
        sanitized = storage_name_for(filename)
        total = _parse_int(total_chunks, "total_chunks", 1)
        target_dir = resolve_in_root(target_path)

        self.assemblies.forget(target_dir, sanitized)
        indices = [i for i in chunk_store.list_received_chunks(sanitized, target_dir) if i < total]
        return sanitized, total, indices
