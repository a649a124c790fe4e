"""Pydantic schemas for API requests and responses."""

from server.schemas.common import ErrorResponse, FileInfoResponse
from server.schemas.uploads import (
    ChunkUploadResponse,
    ExistingChunksResponse,
    UploadFileResponse
)
from server.schemas.files import (
    DirectoryEntryResponse,
    ListDirectoryResponse,
    CreateFolderRequest,
    CreateFolderResponse,
    DeletePathRequest,
    DeletePathResponse,
    RenameRequest,
    RenameResponse
)

__all__ = [
    "ErrorResponse",
    "FileInfoResponse",
    "ChunkUploadResponse",
    "ExistingChunksResponse",
    "UploadFileResponse",
    "DirectoryEntryResponse",
    "ListDirectoryResponse",
    "CreateFolderRequest",
    "CreateFolderResponse",
    "DeletePathRequest",
    "DeletePathResponse",
    "RenameRequest",
    "RenameResponse"
]
