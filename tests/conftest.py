"""Shared pytest fixtures for all tests."""

import asyncio
import re

import httpx
import pytest

from cli.config import Config
from cli.ledger import UploadLedger
from cli.storage import MemoryKeyValueStore
from cli.types import SourceFile


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .mediagrid directory
    """
    config_dir = tmp_path / '.mediagrid'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def uploads_root(tmp_path, monkeypatch):
    """
    Point the server at an empty uploads directory.

    Returns:
        Resolved Path of the uploads root
    """
    root = (tmp_path / 'uploads').resolve()
    root.mkdir()
    monkeypatch.setattr('server.config.UPLOADS_DIR', root)
    return root


@pytest.fixture
def memory_ledger():
    """Ledger backed by an in-memory store."""
    return UploadLedger(MemoryKeyValueStore())


@pytest.fixture
def make_source(tmp_path):
    """
    Factory for local source files with deterministic content.

    Content byte i is ``i % 251`` so misplaced ranges are detectable.
    """
    source_dir = tmp_path / 'source'
    source_dir.mkdir()

    def _make(name: str, size: int) -> SourceFile:
        path = source_dir / name
        path.write_bytes(bytes(i % 251 for i in range(size)))
        return SourceFile.from_path(path)

    return _make


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


class FakeMediaServer:
    """
    In-memory stand-in for the upload endpoints, served through httpx.MockTransport.

    Chunk slots are keyed by index only, so one instance serves one chunked
    file at a time. ``failures`` maps a chunk index to a list of planned
    outcomes consumed in order: an HTTP status code or ``'timeout'``.
    Single-shot uploads whose file name is in ``reject`` get a 500.
    """

    FILENAME_RE = re.compile(rb'filename="([^"]+)"')

    def __init__(self, existing=None, failures=None, resume_status=200, never_complete=False,
                 delay=0.0, reject=()):
        self.slots = dict(existing or {})
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.resume_status = resume_status
        self.never_complete = never_complete
        self.delay = delay
        self.reject = set(reject)
        self.chunk_requests = []
        self.single_uploads = []
        self.assembled = None
        self.in_flight = 0
        self.max_in_flight = 0
        self.single_in_flight = 0
        self.max_single_in_flight = 0

    @staticmethod
    def file_json(name: str, size: int) -> dict:
        return {
            'name': name,
            'path': '/' + name,
            'size': size,
            'is_video': False,
            'created': '2024-01-01T00:00:00+00:00',
            'modified': '2024-01-01T00:00:00+00:00',
        }

    async def handler(self, request):
        params = request.url.params
        if request.url.path == '/api/check-chunks':
            if self.resume_status != 200:
                return httpx.Response(self.resume_status, json={'detail': 'down', 'code': 'INTERNAL_ERROR'})
            total = int(params['total_chunks'])
            return httpx.Response(200, json={
                'filename': params['filename'],
                'total_chunks': total,
                'existing_chunks': sorted(i for i in self.slots if i < total),
            })

        if request.url.path == '/api/upload-chunk':
            return await self._upload_chunk(request)

        if request.url.path == '/api/upload':
            name = self.FILENAME_RE.search(request.content).group(1).decode()
            self.single_in_flight += 1
            self.max_single_in_flight = max(self.max_single_in_flight, self.single_in_flight)
            try:
                if self.delay:
                    await asyncio.sleep(self.delay)
            finally:
                self.single_in_flight -= 1
            if name in self.reject:
                return httpx.Response(500, json={'detail': 'disk full', 'code': 'INTERNAL_ERROR'})
            self.single_uploads.append(name)
            return httpx.Response(200, json={'message': 'ok', 'file': self.file_json(name, 1)})

        return httpx.Response(404)

    async def _upload_chunk(self, request):
        params = request.url.params
        index = int(params['chunk_index'])
        total = int(params['total_chunks'])
        self.chunk_requests.append(index)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1

        plan = self.failures.get(index)
        if plan:
            outcome = plan.pop(0)
            if outcome == 'timeout':
                raise httpx.ReadTimeout('timed out')
            return httpx.Response(outcome, json={'detail': 'boom', 'code': 'CHUNK_WRITE_FAILED'})

        self.slots[index] = request.content
        received = len([i for i in self.slots if i < total])
        complete = received == total and not self.never_complete
        file_json = None
        if complete:
            self.assembled = b''.join(self.slots[i] for i in range(total))
            file_json = self.file_json(params['filename'], len(self.assembled))
        return httpx.Response(200, json={
            'message': 'ok',
            'complete': complete,
            'chunked': complete,
            'filename': params['filename'],
            'chunk_index': index,
            'total_chunks': total,
            'received': received,
            'uploaded': received,
            'file': file_json,
        })


@pytest.fixture
def fake_server():
    """Factory for FakeMediaServer instances."""
    return FakeMediaServer


@pytest.fixture
def recorded_sleeps():
    """Sleep replacement recording requested delays without waiting."""
    delays = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    _sleep.delays = delays
    return _sleep
