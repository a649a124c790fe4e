"""Durable per-upload record of which chunk indices the server has confirmed."""

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from common.constants import LEDGER_KEY_PREFIX
from cli.storage import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadIdentity:
    """
    Identifies one logical upload across sessions.

    Two identities are equal exactly when name, byte size and source
    modification time (integer nanoseconds) are all equal. The storage key
    hashes a JSON array of the three fields, so no choice of name can make
    two different identities share a key.
    """
    name: str
    size: int
    modified_ns: int

    @property
    def storage_key(self) -> str:
        payload = json.dumps([self.name, self.size, self.modified_ns], ensure_ascii=False)
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
        return f"{LEDGER_KEY_PREFIX}{digest}"


@dataclass
class LedgerState:
    """Progress record for one logical upload."""
    file_name: str
    total_chunks: int
    chunk_size: int
    target_path: str
    completed_chunks: set = field(default_factory=set)
    start_time: float = field(default_factory=time.time)
    last_updated: float = field(default_factory=time.time)
    last_error: Optional[str] = None

    @property
    def remaining_chunks(self) -> List[int]:
        """Indices not yet confirmed, as the complement of the completed set."""
        return sorted(set(range(self.total_chunks)) - self.completed_chunks)

    def matches(self, total_chunks: int, chunk_size: int, target_path: str) -> bool:
        return (
            self.total_chunks == total_chunks
            and self.chunk_size == chunk_size
            and self.target_path == target_path
        )

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "total_chunks": self.total_chunks,
            "chunk_size": self.chunk_size,
            "target_path": self.target_path,
            "completed_chunks": sorted(self.completed_chunks),
            "start_time": self.start_time,
            "last_updated": self.last_updated,
            "last_error": self.last_error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerState":
        return cls(
            file_name=data["file_name"],
            total_chunks=int(data["total_chunks"]),
            chunk_size=int(data["chunk_size"]),
            target_path=data.get("target_path", "/"),
            completed_chunks={int(i) for i in data.get("completed_chunks", [])},
            start_time=float(data.get("start_time", time.time())),
            last_updated=float(data.get("last_updated", time.time())),
            last_error=data.get("last_error"),
        )


@dataclass(frozen=True)
class PendingUpload:
    """Summary of an unfinished upload, for "resume available" notices."""
    key: str
    file_name: str
    target_path: str
    completed_chunks: int
    total_chunks: int
    last_updated: float
    has_error: bool
    last_error: Optional[str] = None

    @property
    def progress(self) -> int:
        return round(self.completed_chunks / self.total_chunks * 100) if self.total_chunks else 0


class UploadLedger:
    """
    Ledger of chunk completion, persisted through an injected key-value store.
    """

    def __init__(self, store: KeyValueStore, key_prefix: str = LEDGER_KEY_PREFIX):
        """
        Args:
            store: Backing key-value store
            key_prefix: Namespace prefix all ledger keys start with
        """
        self.store = store
        self.key_prefix = key_prefix

    def load(self, identity: UploadIdentity) -> Optional[LedgerState]:
        """
        Load the record for an upload.

        Returns:
            LedgerState, or None if absent or unreadable
        """
        raw = self.store.get(identity.storage_key)
        if raw is None:
            return None
        try:
            return LedgerState.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable ledger record for {identity.name}: {e}")
            self.store.delete(identity.storage_key)
            return None

    def save(self, identity: UploadIdentity, state: LedgerState) -> None:
        """Persist the record, stamping last_updated."""
        state.last_updated = time.time()
        self.store.set(identity.storage_key, json.dumps(state.to_dict()))

    def mark_complete(self, identity: UploadIdentity, index: int) -> LedgerState:
        """
        Add one confirmed chunk and persist immediately.

        Raises:
            KeyError: If no record exists for the upload
        """
        state = self.load(identity)
        if state is None:
            raise KeyError(f"No ledger record for {identity.name}")
        state.completed_chunks.add(index)
        self.save(identity, state)
        return state

    def record_error(self, identity: UploadIdentity, message: str) -> None:
        """Remember the last failure so a later session can show it."""
        state = self.load(identity)
        if state is None:
            return
        state.last_error = message
        self.save(identity, state)

    def clear(self, identity: UploadIdentity) -> None:
        """Remove the record after full success or on user request."""
        self.store.delete(identity.storage_key)

    def clear_key(self, key: str) -> bool:
        """
        Remove a record by its raw storage key (as shown by list_pending).

        Returns:
            True if a record was removed
        """
        if not key.startswith(self.key_prefix) or self.store.get(key) is None:
            return False
        self.store.delete(key)
        return True

    def clear_all(self) -> int:
        """Remove every ledger record; returns how many were removed."""
        keys = [k for k in self.store.keys() if k.startswith(self.key_prefix)]
        for key in keys:
            self.store.delete(key)
        return len(keys)

    def list_pending(self) -> List[PendingUpload]:
        """
        Scan all records and return unfinished uploads.

        Records whose completed count already reached the total were orphaned
        by a missed clear and are purged, as are records that cannot be decoded.

        Returns:
            Pending uploads ordered by most recently updated first
        """
        pending = []
        for key in self.store.keys():
            if not key.startswith(self.key_prefix):
                continue

            raw = self.store.get(key)
            if raw is None:
                continue

            try:
                state = LedgerState.from_dict(json.loads(raw))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                logger.warning(f"Purging invalid ledger record {key}")
                self.store.delete(key)
                continue

            completed = len(state.completed_chunks)
            if completed >= state.total_chunks:
                logger.info(f"Purging stale ledger record for {state.file_name}")
                self.store.delete(key)
                continue

            pending.append(PendingUpload(
                key=key,
                file_name=state.file_name,
                target_path=state.target_path,
                completed_chunks=completed,
                total_chunks=state.total_chunks,
                last_updated=state.last_updated,
                has_error=state.last_error is not None,
                last_error=state.last_error,
            ))

        pending.sort(key=lambda p: p.last_updated, reverse=True)
        return pending
