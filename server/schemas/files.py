"""Pydantic schemas for directory listing and file management endpoints."""

from typing import List
from pydantic import BaseModel


class DirectoryEntryResponse(BaseModel):
    """Response model for one listed file or folder."""
    name: str
    path: str
    size: int
    is_video: bool
    created: str
    modified: str
    type: str


class ListDirectoryResponse(BaseModel):
    """Response model for directory listing."""
    current_path: str
    folders: List[DirectoryEntryResponse]
    files: List[DirectoryEntryResponse]


class CreateFolderRequest(BaseModel):
    """Request model for folder creation."""
    name: str
    path: str = "/"


class CreateFolderResponse(BaseModel):
    """Response model for folder creation."""
    message: str
    name: str
    path: str
    created: bool


class DeletePathRequest(BaseModel):
    """Request model for file or folder deletion."""
    path: str


class DeletePathResponse(BaseModel):
    """Response model for file or folder deletion."""
    message: str
    path: str


class RenameRequest(BaseModel):
    """Request model for renaming a file or folder."""
    old_path: str
    new_name: str


class RenameResponse(BaseModel):
    """Response model for rename."""
    message: str
    new_path: str
