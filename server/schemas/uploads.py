"""Pydantic schemas for chunked and single-shot upload endpoints."""

from typing import List, Optional
from pydantic import BaseModel

from server.schemas.common import FileInfoResponse


class ChunkUploadResponse(BaseModel):
    """Response model for one accepted chunk."""
    message: str
    complete: bool
    chunked: bool
    filename: str
    chunk_index: int
    total_chunks: int
    received: int
    uploaded: int
    file: Optional[FileInfoResponse] = None


class ExistingChunksResponse(BaseModel):
    """Response model for the resume query."""
    filename: str
    total_chunks: int
    existing_chunks: List[int]


class UploadFileResponse(BaseModel):
    """Response model for a single-shot upload."""
    message: str
    file: FileInfoResponse
