"""Custom exception classes for the upload server."""


class MediaGridException(Exception):
    """
    Base exception class for all server-side upload errors.
    """
    pass


class InvalidRequestError(MediaGridException):
    """
    Raised when required chunk parameters are missing or malformed.
    No side effect has happened when this is raised.
    """
    pass


class InvalidPathError(MediaGridException):
    """
    Raised when a requested path resolves outside the uploads root.
    """
    pass


class PathNotFoundError(MediaGridException):
    """
    Raised when a file or folder to delete or rename does not exist.
    """
    pass


class PathConflictError(MediaGridException):
    """
    Raised when a rename target already exists.
    """
    pass


class ChunkTooLargeError(MediaGridException):
    """
    Raised when a chunk body exceeds the configured maximum size.
    """
    pass


class ChunkWriteError(MediaGridException):
    """
    Raised when a chunk slot cannot be persisted to disk.
    Retryable at the chunk level.
    """
    pass


class ReassemblyError(MediaGridException):
    """
    Raised when received chunks cannot be concatenated into the final file.
    Fatal for the current upload attempt; chunk slots are left in place.
    """
    pass


class FileOperationError(MediaGridException):
    """
    Raised when a single-shot upload, delete or rename fails on disk.
    The target is left as it was before the request.
    """
    pass
