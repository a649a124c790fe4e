"""
Key-value stores backing the upload ledger.

The ledger never touches a storage backend directly; it is handed a
``KeyValueStore`` so tests can use the in-memory store and the CLI can use a
JSON file that survives restarts.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String-to-string store with namespaced keys."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def keys(self) -> List[str]:
        ...


class MemoryKeyValueStore:
    """Dictionary-backed store; contents are lost with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileKeyValueStore:
    """
    Thread-safe store persisted to a single JSON object on disk.

    Every mutation rewrites the file through a scratch file and an atomic
    rename, so a crash mid-write leaves the previous contents intact.
    """

    def __init__(self, path: Path):
        """
        Initialize store, loading existing contents if present.

        Args:
            path: Path to JSON file (default: ~/.mediagrid/ledger.json)
        """
        self._path = Path(path)
        self._lock = threading.RLock()
        self._data: Dict[str, str] = {}

        self._load_from_disk()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self._save_to_disk()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._save_to_disk()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def _load_from_disk(self) -> bool:
        """
        Load store contents from the JSON file.

        Returns:
            True if load succeeded, False if file missing or corrupted
        """
        if not self._path.exists():
            logger.debug(f"Ledger file not found at {self._path}, starting empty")
            return False

        try:
            with open(self._path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load ledger from {self._path}: {e}, starting empty")
            return False

        if not isinstance(data, dict):
            logger.warning(f"Ledger file {self._path} does not hold an object, starting empty")
            return False

        with self._lock:
            self._data = {str(k): v for k, v in data.items() if isinstance(v, str)}

        logger.debug(f"Ledger loaded from {self._path} ({len(self._data)} record(s))")
        return True

    def _save_to_disk(self) -> None:
        """
        Persist store contents to the JSON file.

        Raises:
            OSError: If the file cannot be written
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        scratch = self._path.with_name(f"{self._path.name}.tmp")

        with open(scratch, 'w') as f:
            json.dump(self._data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(scratch, self._path)
