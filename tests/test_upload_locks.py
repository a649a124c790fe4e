"""Tests for the per-file lock registry."""

import asyncio
from pathlib import Path

import pytest

from server.upload_locks import UploadLockRegistry


@pytest.mark.asyncio
async def test_same_file_is_serialized():
    registry = UploadLockRegistry()
    order = []

    async def holder(tag):
        async with registry.claim(Path('/uploads'), 'movie.mp4'):
            order.append(f'{tag}-in')
            await asyncio.sleep(0.01)
            order.append(f'{tag}-out')

    await asyncio.gather(holder('a'), holder('b'))

    assert order == ['a-in', 'a-out', 'b-in', 'b-out']
    assert registry.active_keys() == []


@pytest.mark.asyncio
async def test_different_files_do_not_block():
    registry = UploadLockRegistry()
    inside = asyncio.Event()

    async def first():
        async with registry.claim(Path('/uploads'), 'a.mp4'):
            await asyncio.wait_for(inside.wait(), timeout=1)

    async def second():
        async with registry.claim(Path('/uploads'), 'b.mp4'):
            inside.set()

    await asyncio.gather(first(), second())


@pytest.mark.asyncio
async def test_key_released_after_error():
    registry = UploadLockRegistry()

    with pytest.raises(ValueError):
        async with registry.claim(Path('/uploads'), 'movie.mp4'):
            assert registry.active_keys() == [('/uploads', 'movie.mp4')]
            raise ValueError('write failed')

    assert registry.active_keys() == []
