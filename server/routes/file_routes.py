"""Directory listing and file management API routes."""

import asyncio

from fastapi import APIRouter, Query

from common.types import DirectoryEntry
from server.schemas.common import ErrorResponse
from server.schemas.files import (
    CreateFolderRequest,
    CreateFolderResponse,
    DeletePathRequest,
    DeletePathResponse,
    DirectoryEntryResponse,
    ListDirectoryResponse,
    RenameRequest,
    RenameResponse
)
from server.services.file_service import FileService

router = APIRouter(
    prefix="/api",
    tags=["Files"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def _entry_response(entry: DirectoryEntry) -> DirectoryEntryResponse:
    return DirectoryEntryResponse(
        name=entry.name,
        path=entry.path,
        size=entry.size,
        is_video=entry.is_video,
        created=entry.created.isoformat(),
        modified=entry.modified.isoformat(),
        type=entry.type,
    )


@router.get("/files", response_model=ListDirectoryResponse)
async def list_files(path: str = Query("/", description="Directory relative to the uploads root")):
    """
    List folders and files in a directory.

    Returns:
        - current_path: Normalized directory path
        - folders: Folder entries sorted by name
        - files: File entries sorted by name

    Raises:
        - 400: Path outside the uploads root
    """
    file_service = FileService()

    current_path, folders, files = await asyncio.to_thread(file_service.list_directory, path)

    return ListDirectoryResponse(
        current_path=current_path,
        folders=[_entry_response(f) for f in folders],
        files=[_entry_response(f) for f in files],
    )


@router.post("/folder", response_model=CreateFolderResponse)
async def create_folder(request: CreateFolderRequest):
    """
    Create a folder. Creating an existing folder succeeds with created=false.
    """
    file_service = FileService()

    name, path, created = await asyncio.to_thread(file_service.create_folder, request.name, request.path)

    return CreateFolderResponse(
        message="Folder created successfully" if created else "Folder already exists",
        name=name,
        path=path,
        created=created,
    )


@router.delete("/file", response_model=DeletePathResponse)
async def delete_file(request: DeletePathRequest):
    """
    Delete a single file.

    Raises:
        - 400: Path is a folder or outside the uploads root
        - 404: File not found
    """
    file_service = FileService()

    path = await asyncio.to_thread(file_service.delete_path, request.path, False)

    return DeletePathResponse(message="File deleted successfully", path=path)


@router.delete("/folder", response_model=DeletePathResponse)
async def delete_folder(request: DeletePathRequest):
    """
    Delete a folder and everything under it.

    Raises:
        - 400: Path is a file or outside the uploads root
        - 404: Folder not found
    """
    file_service = FileService()

    path = await asyncio.to_thread(file_service.delete_path, request.path, True)

    return DeletePathResponse(message="Folder deleted successfully", path=path)


@router.post("/rename", response_model=RenameResponse)
async def rename_item(request: RenameRequest):
    """
    Rename a file or folder within its parent directory.

    Raises:
        - 400: Invalid name or path
        - 404: Source not found
        - 409: Target already exists
    """
    file_service = FileService()

    new_path = await asyncio.to_thread(file_service.rename, request.old_path, request.new_name)

    return RenameResponse(message="Renamed successfully", new_path=new_path)
