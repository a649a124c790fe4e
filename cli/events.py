"""Observer channel for upload progress events."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from common.types import FileInfo

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    STARTED = "started"
    RESUME_QUERY_FAILED = "resume_query_failed"
    CHUNK_UPLOADED = "chunk_uploaded"
    CHUNK_RETRY = "chunk_retry"
    COMPLETED = "completed"
    FAILED = "failed"
    BATCH_FILE_DONE = "batch_file_done"
    BATCH_FILE_FAILED = "batch_file_failed"
    BATCH_COMPLETED = "batch_completed"


@dataclass(frozen=True)
class UploadEvent:
    """One progress notification. Fields not relevant to a kind are left as None."""
    kind: EventKind
    file_name: str
    chunk_index: Optional[int] = None
    completed_chunks: Optional[int] = None
    total_chunks: Optional[int] = None
    attempt: Optional[int] = None
    delay: Optional[float] = None
    error: Optional[str] = None
    file: Optional[FileInfo] = None
    target_path: Optional[str] = None


Listener = Callable[[UploadEvent], None]


class EventEmitter:
    """Fans events out to subscribed listeners in subscription order."""

    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: UploadEvent) -> None:
        """Deliver an event; a failing listener is logged and does not stop the others."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Event listener failed on {event.kind.value} for {event.file_name}: {e}",
                             exc_info=True)
