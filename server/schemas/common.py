"""Common schemas used across multiple endpoints."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Response model for errors."""
    detail: str
    code: str


class FileInfoResponse(BaseModel):
    """Response model for stored file metadata."""
    name: str
    path: str
    size: int
    is_video: bool
    created: str
    modified: str
