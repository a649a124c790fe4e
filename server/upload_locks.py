"""Per-file claim so only one request checks completion and reassembles at a time."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator


class UploadLockRegistry:
    """
    In-process registry of asyncio locks keyed by (target directory, sanitized name).

    Entries are created on demand and dropped once released with no waiters,
    so the registry only holds keys for uploads that are actively in flight.
    """

    def __init__(self):
        """Initialize empty registry."""
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._waiters: dict[tuple[str, str], int] = {}

    @staticmethod
    def _key(target_dir: Path, sanitized_name: str) -> tuple[str, str]:
        return (str(target_dir), sanitized_name)

    @asynccontextmanager
    async def claim(self, target_dir: Path, sanitized_name: str) -> AsyncIterator[None]:
        """
        Hold the lock for one file for the duration of the block.

        Args:
            target_dir: Absolute target directory
            sanitized_name: Storage key of the file
        """
        key = self._key(target_dir, sanitized_name)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def active_keys(self) -> list[tuple[str, str]]:
        """Return keys that currently have a holder or waiter."""
        return list(self._locks)


upload_locks = UploadLockRegistry()
