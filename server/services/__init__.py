"""Service layer for upload and file-management logic."""

from server.services.file_service import FileService
from server.services.upload_service import ChunkUploadService

__all__ = [
    "ChunkUploadService",
    "FileService",
]
