"""Configuration settings for the MediaGrid upload server."""

import os
from pathlib import Path

from common.constants import DEFAULT_UPLOADS_DIR, DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT, MAX_CHUNK_BYTES


UPLOADS_DIR = Path(os.environ.get("MEDIAGRID_UPLOADS_DIR", DEFAULT_UPLOADS_DIR)).resolve()

SERVER_HOST = os.environ.get("MEDIAGRID_HOST", DEFAULT_SERVER_HOST)

SERVER_PORT = int(os.environ.get("MEDIAGRID_PORT", str(DEFAULT_SERVER_PORT)))

MAX_CHUNK_BODY_BYTES = int(os.environ.get("MEDIAGRID_MAX_CHUNK_BYTES", str(MAX_CHUNK_BYTES)))


def get_uploads_root() -> Path:
    """
    Return the uploads root, creating it if needed.

    Read at call time so tests can monkeypatch ``server.config.UPLOADS_DIR``.
    """
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
    return UPLOADS_DIR
