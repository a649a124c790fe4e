"""
Chunked upload orchestration.

A file is cut into fixed-size chunks, reconciled against the local ledger and
the server's resume answer, then drained by a small worker pool. Every chunk
the server accepts is recorded in the ledger at once, so an interrupted upload
resumes from the first missing index on the next run.
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set

from common.constants import (
    BASE_RETRY_DELAY_SECONDS,
    CHUNK_SIZE_BYTES,
    CHUNK_TIMEOUT_SECONDS,
    MAX_CHUNK_RETRIES,
    MAX_CONCURRENT_CHUNKS,
    MAX_RETRY_DELAY_SECONDS,
    RETRY_JITTER_RATIO,
)
from common.types import FileInfo
from cli.events import EventEmitter, EventKind, UploadEvent
from cli.exceptions import (
    ChunkExhaustedRetriesError,
    ChunkUploadError,
    EmptyFileError,
    ResumeQueryError,
    UploadError,
    UploadIncompleteError,
)
from cli.ledger import LedgerState, UploadIdentity, UploadLedger
from cli.server_client import UploadServerClient
from cli.types import ChunkResult, SourceFile, UploadOutcome

logger = logging.getLogger(__name__)


def compute_backoff_delay(
    attempt: int,
    base_delay: float = BASE_RETRY_DELAY_SECONDS,
    max_delay: float = MAX_RETRY_DELAY_SECONDS,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Delay before retry number ``attempt`` (1-based).

    Exponential in the attempt, capped at max_delay, plus up to 30% jitter
    on top of the capped value.
    """
    delay = min(base_delay * 2 ** (attempt - 1), max_delay)
    return delay + rng() * RETRY_JITTER_RATIO * delay


@dataclass
class _UploadRun:
    """Mutable counters shared by the workers of one upload."""
    identity: UploadIdentity
    source: SourceFile
    target_path: str
    total_chunks: int
    sent: int = 0
    retries: int = 0
    received: int = 0
    complete: bool = False
    file: Optional[FileInfo] = None


class ChunkedUploader:
    """Uploads one large file through the chunk endpoint with resume and retry."""

    def __init__(
        self,
        client: UploadServerClient,
        ledger: UploadLedger,
        events: Optional[EventEmitter] = None,
        chunk_size: int = CHUNK_SIZE_BYTES,
        max_concurrency: int = MAX_CONCURRENT_CHUNKS,
        max_retries: int = MAX_CHUNK_RETRIES,
        base_delay: float = BASE_RETRY_DELAY_SECONDS,
        max_delay: float = MAX_RETRY_DELAY_SECONDS,
        chunk_timeout: float = CHUNK_TIMEOUT_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")

        self.client = client
        self.ledger = ledger
        self.events = events or EventEmitter()
        self.chunk_size = chunk_size
        self.max_concurrency = max_concurrency
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.chunk_timeout = chunk_timeout
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def from_config(cls, config, client: UploadServerClient, ledger: UploadLedger,
                    events: Optional[EventEmitter] = None) -> "ChunkedUploader":
        chunk_config = config.get_chunk_config()
        retry_config = config.get_retry_config()
        return cls(
            client,
            ledger,
            events=events,
            chunk_size=chunk_config['chunk_size'],
            max_concurrency=chunk_config['max_concurrent_chunks'],
            chunk_timeout=chunk_config['chunk_timeout'],
            max_retries=retry_config['max_retries'],
            base_delay=retry_config['retry_base_delay'],
            max_delay=retry_config['retry_max_delay'],
        )

    def total_chunks_for(self, size: int) -> int:
        return math.ceil(size / self.chunk_size)

    def chunk_range(self, index: int, size: int) -> tuple:
        """Byte range [start, end) covered by chunk ``index``."""
        start = index * self.chunk_size
        return start, min(start + self.chunk_size, size)

    async def upload(self, source: SourceFile, target_path: str = "/") -> UploadOutcome:
        """
        Upload a file in chunks, resuming whatever the ledger or server already holds.

        Args:
            source: Local file to upload
            target_path: Target directory on the server

        Returns:
            UploadOutcome once the server reports the file reassembled

        Raises:
            EmptyFileError: If the file has no bytes
            ChunkExhaustedRetriesError: If one chunk fails past the retry budget
            UploadIncompleteError: If all chunks were sent but the server never completed the file
        """
        if source.size == 0:
            raise EmptyFileError(f"{source.name}: cannot upload an empty file in chunks")

        identity = UploadIdentity(source.name, source.size, source.modified_ns)
        total = self.total_chunks_for(source.size)

        state = self.ledger.load(identity)
        if state is None or not state.matches(total, self.chunk_size, target_path):
            if state is not None:
                logger.info(f"Ledger record for {source.name} no longer matches, starting over")
            state = self._fresh_state(source.name, total, target_path)
        state.last_error = None

        existing = await self._query_existing(source.name, target_path, total)
        if existing is not None:
            if not state.remaining_chunks and len(existing) < total:
                # A ledger that covers every index while the server is missing
                # some was left behind by an upload the server already combined.
                logger.info(
                    f"Ledger for {source.name} lists every chunk but the server holds "
                    f"{len(existing)}/{total}, starting over"
                )
                self.ledger.clear(identity)
                state = self._fresh_state(source.name, total, target_path)
            state.completed_chunks.update(existing)

        self.ledger.save(identity, state)

        remaining = state.remaining_chunks
        skipped = total - len(remaining)
        if not remaining:
            # Every slot is already on the server; resending the last one
            # makes the server run its completion check.
            remaining = [total - 1]

        logger.info(
            f"Uploading {source.name} to {target_path}: {total} chunk(s), "
            f"{skipped} already present, {len(remaining)} to send"
        )
        self._emit(EventKind.STARTED, source.name, completed_chunks=skipped, total_chunks=total,
                   target_path=target_path)

        run = _UploadRun(identity=identity, source=source, target_path=target_path, total_chunks=total)
        try:
            await self._drain(run, remaining)
            if not run.complete and run.received < total:
                await self._restart(run)
            if not run.complete:
                raise UploadIncompleteError(source.name, run.received, total)
        except (UploadError, OSError) as e:
            logger.error(f"Upload of {source.name} failed: {e}")
            self.ledger.record_error(identity, str(e))
            self._emit(EventKind.FAILED, source.name, error=str(e), total_chunks=total)
            raise

        self.ledger.clear(identity)
        logger.info(f"Upload of {source.name} complete ({run.sent} sent, {run.retries} retries)")
        self._emit(EventKind.COMPLETED, source.name, completed_chunks=total, total_chunks=total,
                   file=run.file, target_path=target_path)

        return UploadOutcome(
            file_name=source.name,
            file=run.file,
            total_chunks=total,
            chunks_sent=run.sent,
            chunks_skipped=skipped,
            retries=run.retries,
        )

    def _fresh_state(self, file_name: str, total: int, target_path: str) -> LedgerState:
        return LedgerState(
            file_name=file_name,
            total_chunks=total,
            chunk_size=self.chunk_size,
            target_path=target_path,
        )

    async def _query_existing(self, file_name: str, target_path: str, total: int) -> Optional[Set[int]]:
        """Ask the server which indices it holds; None when the query fails."""
        try:
            existing = await self.client.get_existing_chunks(file_name, target_path, total)
        except ResumeQueryError as e:
            logger.warning(f"Resume query failed for {file_name}, using local progress only: {e}")
            self._emit(EventKind.RESUME_QUERY_FAILED, file_name, error=str(e), total_chunks=total)
            return None
        return {i for i in existing if 0 <= i < total}

    async def _restart(self, run: _UploadRun) -> None:
        """
        Start over from the server's slots after a pass that left chunks missing.

        Happens when the ledger marked chunks the server no longer holds, for
        example slots consumed by a reassembly whose reply never arrived.
        Only one restart is attempted per upload.
        """
        name, total = run.source.name, run.total_chunks
        logger.warning(
            f"Server holds {run.received}/{total} chunks of {name} after every chunk was sent, "
            f"restarting from the server's state"
        )
        self.ledger.clear(run.identity)
        state = self._fresh_state(name, total, run.target_path)
        existing = await self._query_existing(name, run.target_path, total)
        if existing is not None:
            state.completed_chunks.update(existing)
        self.ledger.save(run.identity, state)

        run.received = 0
        await self._drain(run, state.remaining_chunks or [total - 1])

    async def _drain(self, run: _UploadRun, indices: List[int]) -> None:
        """
        Send ``indices`` with at most max_concurrency requests in flight.

        Workers stop taking new indices once a chunk fails for good or the
        server reports the file complete. The first fatal error is re-raised.
        """
        queue: asyncio.Queue = asyncio.Queue()
        for index in indices:
            queue.put_nowait(index)
        stop = asyncio.Event()

        async def worker() -> None:
            while not stop.is_set():
                try:
                    index = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                try:
                    result = await self._send_with_retry(run, index)
                except UploadError:
                    stop.set()
                    raise
                self._record_success(run, result)
                if result.complete:
                    stop.set()

        workers = [asyncio.create_task(worker()) for _ in range(min(self.max_concurrency, len(indices)))]
        results = await asyncio.gather(*workers, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _send_with_retry(self, run: _UploadRun, index: int) -> ChunkResult:
        """
        Send one chunk, retrying failures with exponential backoff.

        Raises:
            ChunkExhaustedRetriesError: After 1 + max_retries failed attempts
        """
        start, end = self.chunk_range(index, run.source.size)
        data = await asyncio.to_thread(run.source.read_range, start, end)

        attempt = 0
        while True:
            attempt += 1
            try:
                return await asyncio.wait_for(
                    self.client.upload_chunk(
                        run.source.name, index, run.total_chunks, run.target_path, data,
                        timeout=self.chunk_timeout,
                    ),
                    timeout=self.chunk_timeout,
                )
            except asyncio.TimeoutError:
                error = ChunkUploadError(f"Chunk {index} timed out after {self.chunk_timeout:.0f}s")
            except ChunkUploadError as e:
                error = e

            if attempt > self.max_retries:
                raise ChunkExhaustedRetriesError(run.source.name, index, attempt, error)

            delay = compute_backoff_delay(attempt, self.base_delay, self.max_delay, self._rng)
            run.retries += 1
            logger.warning(
                f"Chunk {index} of {run.source.name} failed (attempt {attempt}), retrying in {delay:.1f}s: {error}"
            )
            self._emit(EventKind.CHUNK_RETRY, run.source.name, chunk_index=index, attempt=attempt,
                       delay=delay, error=str(error), total_chunks=run.total_chunks)
            await self._sleep(delay)

    def _record_success(self, run: _UploadRun, result: ChunkResult) -> None:
        state = self.ledger.mark_complete(run.identity, result.chunk_index)
        run.sent += 1
        run.received = max(run.received, result.received)
        if result.complete:
            run.complete = True
            run.file = result.file

        logger.debug(
            f"Chunk {result.chunk_index} of {run.source.name} stored "
            f"({result.received}/{run.total_chunks} on server)"
        )
        self._emit(EventKind.CHUNK_UPLOADED, run.source.name, chunk_index=result.chunk_index,
                   completed_chunks=len(state.completed_chunks), total_chunks=run.total_chunks)

    def _emit(self, kind: EventKind, file_name: str, **fields) -> None:
        self.events.emit(UploadEvent(kind=kind, file_name=file_name, **fields))
