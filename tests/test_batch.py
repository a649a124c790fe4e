"""Tests for the batch orchestrator."""

import httpx
import pytest

from cli.batch import BatchUploader
from cli.events import EventEmitter, EventKind
from cli.exceptions import BatchPartialFailureError
from cli.server_client import UploadServerClient
from cli.uploader import ChunkedUploader


@pytest.fixture
def events():
    emitter = EventEmitter()
    emitter.received = []
    emitter.subscribe(emitter.received.append)
    return emitter


@pytest.fixture
def make_batch(temp_config, memory_ledger, events, recorded_sleeps):
    """Factory for a BatchUploader with a 50 byte threshold and 10 byte chunks."""
    def _make(server):
        client = UploadServerClient(temp_config, transport=httpx.MockTransport(server.handler))
        uploader = ChunkedUploader(client, memory_ledger, events, chunk_size=10, sleep=recorded_sleeps)
        return BatchUploader(client, uploader, events, large_file_threshold=50, small_file_concurrency=2)

    return _make


def test_partition_uses_strict_threshold(temp_config, memory_ledger, make_source):
    """Test files at the threshold are small and files above it are large."""
    client = UploadServerClient(temp_config)
    batch = BatchUploader(client, ChunkedUploader(client, memory_ledger), large_file_threshold=50)
    at = make_source('at.bin', 50)
    above = make_source('above.bin', 51)

    small, large = batch.partition([at, above])

    assert small == [at]
    assert large == [above]


@pytest.mark.asyncio
async def test_mixed_batch_success(make_batch, fake_server, events, make_source):
    """Test small files go single-shot and large files go through chunks."""
    sources = [make_source(f'small{i}.txt', 5) for i in range(3)] + [make_source('big.bin', 80)]
    server = fake_server()

    result = await make_batch(server).upload_files(sources, '/')

    assert result.ok
    assert result.success_count == 4
    assert sorted(server.single_uploads) == ['small0.txt', 'small1.txt', 'small2.txt']
    assert sorted(server.chunk_requests) == list(range(8))
    assert len(result.uploaded) == 4
    done = [e for e in events.received if e.kind == EventKind.BATCH_FILE_DONE]
    assert {e.file_name for e in done} == {s.name for s in sources}
    assert events.received[-1].kind == EventKind.BATCH_COMPLETED
    assert events.received[-1].completed_chunks == 4


@pytest.mark.asyncio
async def test_small_file_concurrency_is_bounded(make_batch, fake_server, make_source):
    """Test no more than small_file_concurrency single-shot uploads are in flight."""
    sources = [make_source(f'small{i}.txt', 5) for i in range(6)]
    server = fake_server(delay=0.01)

    result = await make_batch(server).upload_files(sources, '/')

    assert result.success_count == 6
    assert server.max_single_in_flight == 2


@pytest.mark.asyncio
async def test_small_file_failure_does_not_stop_others(make_batch, fake_server, make_source):
    """Test a rejected small file is collected while the rest succeed."""
    sources = [make_source('ok.txt', 5), make_source('bad.txt', 5), make_source('also-ok.txt', 5),
               make_source('big.bin', 60)]
    server = fake_server(reject={'bad.txt'})

    result = await make_batch(server).upload_files(sources, '/')

    assert result.success_count == 3
    assert [f.name for f in result.failed_files] == ['bad.txt']
    assert 'bad.txt' in result.failed_files[0].error
    assert 'disk full' in result.failed_files[0].error
    assert sorted(server.chunk_requests) == list(range(6))


@pytest.mark.asyncio
async def test_large_file_failure_reported(make_batch, fake_server, events, make_source):
    """Test an exhausted chunk fails only that file and can be escalated."""
    sources = [make_source('ok.txt', 5), make_source('big.bin', 60)]
    server = fake_server(failures={3: [500] * 6})

    result = await make_batch(server).upload_files(sources, '/')

    assert result.success_count == 1
    assert [f.name for f in result.failed_files] == ['big.bin']
    assert 'chunk 3' in result.failed_files[0].error
    assert EventKind.BATCH_FILE_FAILED in [e.kind for e in events.received]
    with pytest.raises(BatchPartialFailureError) as exc_info:
        result.raise_for_failures()
    assert exc_info.value.success_count == 1
    assert 'big.bin' in str(exc_info.value)


@pytest.mark.asyncio
async def test_empty_batch(make_batch, fake_server, events):
    """Test an empty batch still reports completion."""
    result = await make_batch(fake_server()).upload_files([], '/')

    assert result.ok
    assert result.success_count == 0
    assert events.received[-1].kind == EventKind.BATCH_COMPLETED
