"""Directory listing and single-shot file operations under the uploads root."""

import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

from common.constants import CHUNKS_DIR_NAME, SCRATCH_SUFFIX
from common.types import DirectoryEntry, FileInfo
from server.exceptions import (
    FileOperationError,
    InvalidPathError,
    InvalidRequestError,
    PathConflictError,
    PathNotFoundError,
)
from server.paths import describe_entry, resolve_in_root, stat_file_info, to_client_path
from server.services.upload_service import storage_name_for

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 1024 * 1024


class FileService:
    """Plain filesystem operations backing the browse/upload/rename/delete routes."""

    def list_directory(self, client_path: str | None) -> tuple[str, list[DirectoryEntry], list[DirectoryEntry]]:
        """
        List a directory, creating it if it doesn't exist yet.

        Returns:
            Tuple of (client path, folders, files), each sorted by name;
            the chunk staging area and scratch files are never listed
        """
        directory = resolve_in_root(client_path)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            items = list(directory.iterdir())
        except OSError as e:
            raise FileOperationError(f"Cannot list '{client_path}': {e}") from e

        folders = []
        files = []
        for item in items:
            if item.name == CHUNKS_DIR_NAME or item.name.endswith(SCRATCH_SUFFIX):
                continue
            try:
                entry = describe_entry(item)
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {item}: {e}")
                continue
            if entry.type == "folder":
                folders.append(entry)
            else:
                files.append(entry)

        folders.sort(key=lambda e: e.name)
        files.sort(key=lambda e: e.name)
        return to_client_path(directory), folders, files

    def save_upload(self, filename: str | None, stream: BinaryIO, client_path: str | None) -> FileInfo:
        """
        Store a whole file received in one request.

        The body is copied into a hidden scratch file beside the destination
        and renamed over it, so a failed copy never leaves a truncated file.

        Args:
            filename: Unsanitized client file name
            stream: Readable binary stream of the file body
            client_path: Target directory

        Returns:
            FileInfo of the stored file

        Raises:
            PathConflictError: If a folder already has the file's name
            FileOperationError: If the body cannot be written
        """
        sanitized = storage_name_for(filename)
        target_dir = resolve_in_root(client_path)
        final_path = target_dir / sanitized
        if final_path.is_dir():
            raise PathConflictError(f"'{to_client_path(final_path)}' is a folder")

        scratch = target_dir / f".{sanitized}.{uuid.uuid4().hex}{SCRATCH_SUFFIX}"
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with open(scratch, 'wb') as out:
                shutil.copyfileobj(stream, out, COPY_BUFFER_SIZE)
            os.replace(scratch, final_path)
        except OSError as e:
            scratch.unlink(missing_ok=True)
            raise FileOperationError(f"Failed to store {sanitized}: {e}") from e

        logger.info(f"Stored single-shot upload {final_path}")
        return stat_file_info(final_path)

    def create_folder(self, name: str | None, client_path: str | None) -> tuple[str, str, bool]:
        """
        Create a folder; an existing folder is reported, not treated as an error.

        Returns:
            Tuple of (folder name, client path, created)
        """
        if not name or not name.strip():
            raise InvalidRequestError("Folder name is required")

        parent = resolve_in_root(client_path)
        folder = resolve_in_root(to_client_path(parent) + "/" + name.strip())
        if folder == parent:
            raise InvalidPathError(f"Invalid folder name: '{name}'")

        if folder.is_dir():
            return folder.name, to_client_path(folder), False
        if folder.exists():
            raise PathConflictError(f"'{to_client_path(folder)}' is a file")

        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(f"Failed to create folder '{name}': {e}") from e
        logger.info(f"Created folder {folder}")
        return folder.name, to_client_path(folder), True

    def delete_path(self, client_path: str | None, expect_dir: bool) -> str:
        """
        Delete a file or a folder tree.

        Args:
            client_path: Path to delete
            expect_dir: True for folder deletes, False for file deletes

        Returns:
            Client path that was removed

        Raises:
            FileOperationError: If the filesystem refuses the delete
        """
        if not client_path or not client_path.strip():
            raise InvalidRequestError("Path is required")

        target = self._existing(client_path)
        if target == resolve_in_root("/"):
            raise InvalidPathError("Refusing to delete the uploads root")

        if expect_dir and not target.is_dir():
            raise InvalidRequestError(f"'{client_path}' is not a folder")
        if not expect_dir and target.is_dir():
            raise InvalidRequestError(f"'{client_path}' is a folder")

        try:
            if expect_dir:
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as e:
            raise FileOperationError(f"Failed to delete '{client_path}': {e}") from e

        logger.info(f"Deleted {target}")
        return client_path

    def rename(self, old_path: str | None, new_name: str | None) -> str:
        """
        Rename a file or folder in place; the new name is sanitized.

        Returns:
            Client path of the renamed item

        Raises:
            PathConflictError: If the new name is taken
            FileOperationError: If the filesystem refuses the rename
        """
        if not old_path or not new_name:
            raise InvalidRequestError("Old path and new name are required")

        source = self._existing(old_path)
        if source == resolve_in_root("/"):
            raise InvalidPathError("Refusing to rename the uploads root")

        destination = source.parent / storage_name_for(new_name)
        if destination.exists():
            raise PathConflictError(f"'{to_client_path(destination)}' already exists")

        try:
            shutil.move(str(source), str(destination))
        except OSError as e:
            raise FileOperationError(f"Failed to rename '{old_path}': {e}") from e
        logger.info(f"Renamed {source} to {destination}")
        return to_client_path(destination)

    def _existing(self, client_path: str) -> Path:
        target = resolve_in_root(client_path)
        if not target.exists():
            raise PathNotFoundError(f"'{client_path}' does not exist")
        return target
