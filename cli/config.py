"""Configuration management for the MediaGrid CLI."""

import json
import os
import shutil
from pathlib import Path
from typing import Optional

from common.constants import (
    BASE_RETRY_DELAY_SECONDS,
    CHUNK_SIZE_BYTES,
    CHUNK_TIMEOUT_SECONDS,
    DEFAULT_SERVER_PORT,
    LARGE_FILE_THRESHOLD_BYTES,
    MAX_CHUNK_RETRIES,
    MAX_CONCURRENT_CHUNKS,
    MAX_RETRY_DELAY_SECONDS,
    SMALL_FILE_CONCURRENCY,
)


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("MEDIAGRID_SERVER_HOST", "localhost"),
        "server_port": int(os.environ.get("MEDIAGRID_SERVER_PORT", str(DEFAULT_SERVER_PORT))),
        "timeout": 30,
        "chunk_size": CHUNK_SIZE_BYTES,
        "max_concurrent_chunks": MAX_CONCURRENT_CHUNKS,
        "max_retries": MAX_CHUNK_RETRIES,
        "retry_base_delay": BASE_RETRY_DELAY_SECONDS,
        "retry_max_delay": MAX_RETRY_DELAY_SECONDS,
        "chunk_timeout": CHUNK_TIMEOUT_SECONDS,
        "large_file_threshold": LARGE_FILE_THRESHOLD_BYTES,
        "small_file_concurrency": SMALL_FILE_CONCURRENCY,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.mediagrid/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            import tempfile
            self.config_path = Path(tempfile.gettempdir()) / '.mediagrid' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError):
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError:
                    pass
                return self.DEFAULT_CONFIG.copy()
        else:
            config = self.DEFAULT_CONFIG.copy()
            try:
                with open(self.config_path, 'w') as f:
                    json.dump(config, f, indent=2)
            except IOError:
                pass
            return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError:
            pass

    def get_base_url(self) -> str:
        """
        Get server base URL.

        Returns:
            Base URL string (e.g., "http://localhost:5000")
        """
        host = self.data.get('server_host', 'localhost')
        port = self.data.get('server_port', DEFAULT_SERVER_PORT)
        return f"http://{host}:{port}"

    def get_timeout(self) -> float:
        """
        Get timeout for non-chunk requests in seconds.
        """
        return self.data.get('timeout', 30)

    def get_ledger_path(self) -> Path:
        """
        Get path of the persisted upload ledger.

        Defaults to ledger.json next to the config file.
        """
        ledger_path: Optional[str] = self.data.get('ledger_path')
        if ledger_path:
            return Path(ledger_path).expanduser()
        return self.config_path.parent / 'ledger.json'

    def get_chunk_config(self) -> dict:
        """
        Get chunked upload configuration.

        Returns:
            Dictionary with chunk_size, max_concurrent_chunks and chunk_timeout
        """
        return {
            'chunk_size': int(self.data.get('chunk_size', CHUNK_SIZE_BYTES)),
            'max_concurrent_chunks': int(self.data.get('max_concurrent_chunks', MAX_CONCURRENT_CHUNKS)),
            'chunk_timeout': float(self.data.get('chunk_timeout', CHUNK_TIMEOUT_SECONDS)),
        }

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries', 'retry_base_delay' and 'retry_max_delay'
        """
        return {
            'max_retries': int(self.data.get('max_retries', MAX_CHUNK_RETRIES)),
            'retry_base_delay': float(self.data.get('retry_base_delay', BASE_RETRY_DELAY_SECONDS)),
            'retry_max_delay': float(self.data.get('retry_max_delay', MAX_RETRY_DELAY_SECONDS)),
        }

    def get_batch_config(self) -> dict:
        """
        Get batch upload configuration.

        Returns:
            Dictionary with 'large_file_threshold' and 'small_file_concurrency'
        """
        return {
            'large_file_threshold': int(self.data.get('large_file_threshold', LARGE_FILE_THRESHOLD_BYTES)),
            'small_file_concurrency': int(self.data.get('small_file_concurrency', SMALL_FILE_CONCURRENCY)),
        }
