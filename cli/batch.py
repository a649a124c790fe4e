"""Batch uploads: small files concurrently in one shot, large files chunked one at a time."""

import asyncio
import logging
from typing import List, Optional, Tuple

from common.constants import LARGE_FILE_THRESHOLD_BYTES, SMALL_FILE_CONCURRENCY
from common.types import FileInfo
from cli.events import EventEmitter, EventKind, UploadEvent
from cli.exceptions import UploadError
from cli.server_client import UploadServerClient
from cli.types import BatchResult, FailedFile, SourceFile
from cli.uploader import ChunkedUploader

logger = logging.getLogger(__name__)


class BatchUploader:
    """Uploads a set of files to one target directory and aggregates the outcome."""

    def __init__(
        self,
        client: UploadServerClient,
        uploader: ChunkedUploader,
        events: Optional[EventEmitter] = None,
        large_file_threshold: int = LARGE_FILE_THRESHOLD_BYTES,
        small_file_concurrency: int = SMALL_FILE_CONCURRENCY,
    ):
        if small_file_concurrency <= 0:
            raise ValueError("small_file_concurrency must be positive")

        self.client = client
        self.uploader = uploader
        self.events = events or uploader.events
        self.large_file_threshold = large_file_threshold
        self.small_file_concurrency = small_file_concurrency

    def partition(self, sources: List[SourceFile]) -> Tuple[List[SourceFile], List[SourceFile]]:
        """Split into (small, large); a file is large when strictly above the threshold."""
        small = [s for s in sources if s.size <= self.large_file_threshold]
        large = [s for s in sources if s.size > self.large_file_threshold]
        return small, large

    async def upload_files(self, sources: List[SourceFile], target_path: str = "/") -> BatchResult:
        """
        Upload every file, continuing past individual failures.

        Args:
            sources: Local files to upload
            target_path: Target directory on the server

        Returns:
            BatchResult with success count and failed files
        """
        result = BatchResult()
        small, large = self.partition(sources)
        logger.info(
            f"Batch upload to {target_path}: {len(small)} small file(s), {len(large)} large file(s)"
        )

        for start in range(0, len(small), self.small_file_concurrency):
            group = small[start:start + self.small_file_concurrency]
            outcomes = await asyncio.gather(
                *(self._upload_small(source, target_path) for source in group),
                return_exceptions=True,
            )
            for source, outcome in zip(group, outcomes):
                self._collect(result, source, outcome, target_path)

        for source in large:
            try:
                outcome = await self.uploader.upload(source, target_path)
            except (UploadError, OSError) as e:
                self._collect(result, source, e, target_path)
            else:
                self._collect(result, source, outcome.file, target_path)

        logger.info(
            f"Batch upload finished: {result.success_count} succeeded, {len(result.failed_files)} failed"
        )
        self.events.emit(UploadEvent(
            kind=EventKind.BATCH_COMPLETED,
            file_name="",
            completed_chunks=result.success_count,
            total_chunks=len(sources),
            target_path=target_path,
        ))
        return result

    async def _upload_small(self, source: SourceFile, target_path: str) -> FileInfo:
        return await self.client.upload_file(source, target_path)

    def _collect(self, result: BatchResult, source: SourceFile, outcome, target_path: str) -> None:
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, (UploadError, OSError)):
                raise outcome
            message = str(outcome)
            if source.name not in message:
                message = f"{source.name}: {message}"
            logger.warning(f"Batch upload of {source.name} failed: {message}")
            result.failed_files.append(FailedFile(name=source.name, error=message))
            self.events.emit(UploadEvent(kind=EventKind.BATCH_FILE_FAILED, file_name=source.name,
                                         error=message, target_path=target_path))
            return

        result.success_count += 1
        if outcome is not None:
            result.uploaded.append(outcome)
        self.events.emit(UploadEvent(kind=EventKind.BATCH_FILE_DONE, file_name=source.name,
                                     file=outcome, target_path=target_path))
