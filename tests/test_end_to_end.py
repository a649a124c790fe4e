"""End-to-end upload tests: real client code against the real app over an ASGI transport."""

import asyncio
import threading

import httpx
import pytest

from cli.batch import BatchUploader
from cli.events import EventEmitter, EventKind
from cli.server_client import UploadServerClient
from cli.uploader import ChunkedUploader
from server.main import app
from server.recent_assemblies import RecentAssemblies
from server.services.file_service import FileService

KIB = 1024


class FlakyTransport(httpx.AsyncBaseTransport):
    """Delegates to the app but times out the first request for selected chunk indices."""

    def __init__(self, inner: httpx.AsyncBaseTransport, timeout_once=()):
        self.inner = inner
        self.pending_timeouts = set(timeout_once)

    async def handle_async_request(self, request):
        if request.url.path == '/api/upload-chunk':
            index = int(request.url.params['chunk_index'])
            if index in self.pending_timeouts:
                self.pending_timeouts.discard(index)
                raise httpx.ReadTimeout('timed out', request=request)
        return await self.inner.handle_async_request(request)


class LostReplyTransport(httpx.AsyncBaseTransport):
    """Delivers selected chunk requests to the app, then drops the reply once."""

    def __init__(self, inner: httpx.AsyncBaseTransport, lose_reply_once=()):
        self.inner = inner
        self.pending_losses = set(lose_reply_once)

    async def handle_async_request(self, request):
        response = await self.inner.handle_async_request(request)
        if request.url.path == '/api/upload-chunk':
            index = int(request.url.params['chunk_index'])
            if index in self.pending_losses:
                self.pending_losses.discard(index)
                await response.aread()
                raise httpx.ReadTimeout('connection reset', request=request)
        return response


@pytest.fixture
def events():
    emitter = EventEmitter()
    emitter.received = []
    emitter.subscribe(emitter.received.append)
    return emitter


@pytest.fixture
def asgi_client(temp_config, uploads_root):
    return UploadServerClient(temp_config, transport=httpx.ASGITransport(app=app))


def uploaded_indices(events, name):
    return sorted(e.chunk_index for e in events.received
                  if e.kind == EventKind.CHUNK_UPLOADED and e.file_name == name)


@pytest.mark.asyncio
async def test_chunked_upload_round_trip(asgi_client, memory_ledger, events, make_source, uploads_root,
                                         recorded_sleeps):
    """Test a multi-chunk upload lands byte-exact and leaves no chunk area behind."""
    source = make_source('holiday video.mp4', 25 * KIB)
    uploader = ChunkedUploader(asgi_client, memory_ledger, events, chunk_size=10 * KIB, sleep=recorded_sleeps)

    async with asgi_client:
        outcome = await uploader.upload(source, '/videos')

    final = uploads_root / 'videos' / 'holiday-video.mp4'
    assert final.read_bytes() == source.path.read_bytes()
    assert outcome.file.path == '/videos/holiday-video.mp4'
    assert outcome.file.is_video
    assert outcome.total_chunks == 3
    assert not (uploads_root / 'videos' / '.chunks').exists()
    assert memory_ledger.list_pending() == []


@pytest.mark.asyncio
async def test_interrupted_upload_resumes_from_server_state(asgi_client, memory_ledger, events, make_source,
                                                            uploads_root, recorded_sleeps):
    """Test chunks already stored by an earlier session are not sent again."""
    source = make_source('movie.bin', 35 * KIB)
    data = source.path.read_bytes()

    async with asgi_client:
        await asgi_client.upload_chunk(source.name, 0, 4, '/', data[:10 * KIB])
        await asgi_client.upload_chunk(source.name, 2, 4, '/', data[20 * KIB:30 * KIB])

        uploader = ChunkedUploader(asgi_client, memory_ledger, events, chunk_size=10 * KIB, sleep=recorded_sleeps)
        outcome = await uploader.upload(source, '/')

    assert uploaded_indices(events, source.name) == [1, 3]
    assert outcome.chunks_skipped == 2
    assert (uploads_root / 'movie.bin').read_bytes() == data


@pytest.mark.asyncio
async def test_chunk_timeout_is_retried(temp_config, uploads_root, memory_ledger, events, make_source,
                                        recorded_sleeps):
    """Test a 25 unit file with one timed-out chunk still completes with one retry."""
    source = make_source('big.bin', 25 * KIB)
    transport = FlakyTransport(httpx.ASGITransport(app=app), timeout_once={1})
    client = UploadServerClient(temp_config, transport=transport)
    uploader = ChunkedUploader(client, memory_ledger, events, chunk_size=10 * KIB, sleep=recorded_sleeps)

    async with client:
        outcome = await uploader.upload(source, '/')

    assert outcome.total_chunks == 3
    assert outcome.retries == 1
    assert len(recorded_sleeps.delays) == 1
    assert 1.0 <= recorded_sleeps.delays[0] <= 1.3
    assert (uploads_root / 'big.bin').read_bytes() == source.path.read_bytes()


@pytest.mark.asyncio
async def test_lost_reply_to_final_chunk(temp_config, uploads_root, memory_ledger, events, make_source,
                                         recorded_sleeps):
    """Test a final chunk whose reply is lost after reassembly completes on the retry."""
    source = make_source('movie.bin', 25 * KIB)
    transport = LostReplyTransport(httpx.ASGITransport(app=app), lose_reply_once={2})
    client = UploadServerClient(temp_config, transport=transport)
    uploader = ChunkedUploader(client, memory_ledger, events, chunk_size=10 * KIB, max_concurrency=1,
                               sleep=recorded_sleeps)

    async with client:
        outcome = await uploader.upload(source, '/')

    assert outcome.retries == 1
    assert outcome.file.size == 25 * KIB
    assert (uploads_root / 'movie.bin').read_bytes() == source.path.read_bytes()
    assert not (uploads_root / '.chunks').exists()
    assert memory_ledger.list_pending() == []
    assert events.received[-1].kind == EventKind.COMPLETED


@pytest.mark.asyncio
async def test_lost_reply_without_server_record_restarts(temp_config, uploads_root, memory_ledger, events,
                                                         make_source, recorded_sleeps, monkeypatch):
    """Test the client recovers by restarting when the retried last chunk opens a new upload."""
    monkeypatch.setattr(RecentAssemblies, 'lookup', lambda self, target_dir, name, total: None)
    source = make_source('movie.bin', 25 * KIB)
    transport = LostReplyTransport(httpx.ASGITransport(app=app), lose_reply_once={2})
    client = UploadServerClient(temp_config, transport=transport)
    uploader = ChunkedUploader(client, memory_ledger, events, chunk_size=10 * KIB, max_concurrency=1,
                               sleep=recorded_sleeps)

    async with client:
        outcome = await uploader.upload(source, '/')

    assert uploaded_indices(events, source.name) == [0, 0, 1, 1, 2]
    assert outcome.file.size == 25 * KIB
    assert (uploads_root / 'movie.bin').read_bytes() == source.path.read_bytes()
    assert not (uploads_root / '.chunks').exists()
    assert memory_ledger.list_pending() == []

@pytest.mark.asyncio
async def test_batch_of_small_and_large_files(asgi_client, memory_ledger, events, make_source, uploads_root,
                                              recorded_sleeps):
    """Test five small files and one large file all succeed and the large one takes 8 chunks."""
    smalls = [make_source(f'photo{i}.jpg', 2 * KIB) for i in range(5)]
    large = make_source('film.mp4', 80 * KIB)
    uploader = ChunkedUploader(asgi_client, memory_ledger, events, chunk_size=10 * KIB, sleep=recorded_sleeps)
    batch = BatchUploader(asgi_client, uploader, events, large_file_threshold=50 * KIB)

    async with asgi_client:
        result = await batch.upload_files(smalls + [large], '/media')

    assert result.ok
    assert result.success_count == 6
    assert uploaded_indices(events, 'film.mp4') == list(range(8))
    for source in smalls + [large]:
        assert (uploads_root / 'media' / source.name).read_bytes() == source.path.read_bytes()

    async with UploadServerClient(asgi_client.config, transport=httpx.ASGITransport(app=app)) as client:
        listing = await client.list_directory('/media')
    assert [f['name'] for f in listing['files']] == ['film.mp4'] + [f'photo{i}.jpg' for i in range(5)]


@pytest.mark.asyncio
async def test_single_shot_save_does_not_block_other_requests(uploads_root, monkeypatch):
    """Test a slow single-shot write leaves the app free to answer other requests."""
    started = threading.Event()
    released = threading.Event()
    waits = []
    original = FileService.save_upload

    def slow_save(self, filename, stream, client_path):
        started.set()
        waits.append(released.wait(timeout=2))
        return original(self, filename, stream, client_path)

    monkeypatch.setattr(FileService, 'save_upload', slow_save)

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url='http://test') as client:
        upload = asyncio.create_task(
            client.post('/api/upload', files={'file': ('notes.txt', b'hello')}, data={'path': '/'})
        )
        for _ in range(200):
            if started.is_set():
                break
            await asyncio.sleep(0.01)
        health = await client.get('/api/health')
        released.set()
        response = await upload

    assert health.status_code == 200
    assert waits == [True]
    assert response.status_code == 200
    assert (uploads_root / 'notes.txt').read_bytes() == b'hello'
