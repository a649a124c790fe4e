"""Client-side upload exception classes."""

from typing import Optional


class UploadError(Exception):
    """
    Base exception class for all client upload errors.
    """
    pass


class EmptyFileError(UploadError):
    """
    Raised when a zero-byte file is handed to the chunked uploader.
    """
    pass


class ChunkUploadError(UploadError):
    """
    Raised when a single chunk request fails (network error, timeout or
    non-success response). Retryable at the chunk level.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class ResumeQueryError(UploadError):
    """
    Raised when the server cannot be asked which chunks it already holds.
    Non-fatal: the uploader falls back to the local ledger.
    """
    pass


class ChunkExhaustedRetriesError(UploadError):
    """
    Raised when one chunk index fails more times than the retry budget allows.
    Fatal for the file; the ledger is kept so the upload can be resumed.
    """

    def __init__(self, file_name: str, chunk_index: int, attempts: int, last_error: Exception):
        super().__init__(
            f"{file_name}: chunk {chunk_index} failed after {attempts} attempts: {last_error}"
        )
        self.file_name = file_name
        self.chunk_index = chunk_index
        self.attempts = attempts
        self.last_error = last_error


class UploadIncompleteError(UploadError):
    """
    Raised when every chunk was sent but the server never reported the file complete.
    """

    def __init__(self, file_name: str, received: int, total: int):
        super().__init__(
            f"{file_name}: server holds {received} of {total} chunks after all chunks were sent"
        )
        self.file_name = file_name
        self.received = received
        self.total = total


class BatchPartialFailureError(UploadError):
    """
    Raised on request when one or more files in a batch failed.
    """

    def __init__(self, success_count: int, failed_files: list):
        names = ", ".join(f.name for f in failed_files)
        super().__init__(f"{len(failed_files)} file(s) failed, {success_count} succeeded: {names}")
        self.success_count = success_count
        self.failed_files = failed_files
