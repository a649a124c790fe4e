"""Chunked and single-shot upload API routes."""

import asyncio
from typing import Optional

from fastapi import APIRouter, File, Form, Query, Request, UploadFile

from common.types import FileInfo
from server.config import MAX_CHUNK_BODY_BYTES
from server.exceptions import ChunkTooLargeError
from server.schemas.common import ErrorResponse, FileInfoResponse
from server.schemas.uploads import (
    ChunkUploadResponse,
    ExistingChunksResponse,
    UploadFileResponse
)
from server.services.file_service import FileService
from server.services.upload_service import ChunkUploadService

router = APIRouter(
    prefix="/api",
    tags=["Uploads"],
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def file_info_response(info: FileInfo) -> FileInfoResponse:
    return FileInfoResponse(**info.to_dict())


@router.post("/upload-chunk", response_model=ChunkUploadResponse)
async def upload_chunk(
    request: Request,
    filename: Optional[str] = Query(None),
    chunk_index: Optional[str] = Query(None),
    total_chunks: Optional[str] = Query(None),
    target_path: Optional[str] = Query("/"),
):
    """
    Accept one chunk of a large file.

    Parameters:
        - filename: Client file name (sanitized server-side)
        - chunk_index: Zero-based chunk index
        - total_chunks: Declared number of chunks
        - target_path: Target directory relative to the uploads root
        - body: Raw chunk bytes (application/octet-stream)

    Returns:
        - complete/chunked: True once the file has been reassembled
        - received/uploaded: Number of distinct chunks held for this file
        - file: Final file metadata (only when complete)

    Raises:
        - 400: Missing or malformed parameters, invalid path
        - 413: Chunk too large
        - 500: Chunk write or reassembly failure
    """
    declared_length = request.headers.get("content-length")
    if declared_length and declared_length.isdigit() and int(declared_length) > MAX_CHUNK_BODY_BYTES:
        raise ChunkTooLargeError(
            f"Chunk of {declared_length} bytes exceeds the {MAX_CHUNK_BODY_BYTES} byte limit"
        )

    data = await request.body()

    upload_service = ChunkUploadService()
    receipt = await upload_service.receive_chunk(
        filename=filename,
        chunk_index=chunk_index,
        total_chunks=total_chunks,
        target_path=target_path,
        data=data,
    )

    return ChunkUploadResponse(
        message="File uploaded successfully" if receipt.complete else "Chunk uploaded successfully",
        complete=receipt.complete,
        chunked=receipt.complete,
        filename=receipt.filename,
        chunk_index=receipt.chunk_index,
        total_chunks=receipt.total_chunks,
        received=receipt.received,
        uploaded=receipt.received,
        file=file_info_response(receipt.file) if receipt.file else None,
    )


@router.get("/check-chunks", response_model=ExistingChunksResponse)
async def check_chunks(
    filename: Optional[str] = Query(None),
    target_path: Optional[str] = Query("/"),
    total_chunks: Optional[str] = Query(None),
):
    """
    Report which chunk indices are already stored for a file.

    Parameters:
        - filename: Client file name (sanitized server-side, same as upload-chunk)
        - target_path: Target directory relative to the uploads root
        - total_chunks: Declared number of chunks

    Returns:
        - existing_chunks: Sorted indices already on disk (empty if none)

    Raises:
        - 400: Missing or malformed parameters, invalid path
    """
    upload_service = ChunkUploadService()

    sanitized, total, indices = await asyncio.to_thread(
        upload_service.existing_chunks, filename, target_path, total_chunks
    )

    return ExistingChunksResponse(filename=sanitized, total_chunks=total, existing_chunks=indices)


@router.post("/upload", response_model=UploadFileResponse)
async def upload_file(
    file: UploadFile = File(...),
    path: str = Form("/"),
):
    """
    Upload a whole file in one request.

    Parameters:
        - file: File to upload (multipart/form-data)
        - path: Target directory relative to the uploads root

    Returns:
        - file: Stored file metadata (name is sanitized)

    Raises:
        - 400: Invalid file name or path
        - 409: A folder already has that name
        - 500: The file could not be written
    """
    file_service = FileService()

    info = await asyncio.to_thread(file_service.save_upload, file.filename, file.file, path)

    return UploadFileResponse(message="File uploaded successfully", file=file_info_response(info))
