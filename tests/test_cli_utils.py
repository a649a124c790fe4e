"""Tests for CLI formatting helpers."""

import pytest

from cli.ledger import PendingUpload
from cli.utils import format_file_size, format_listing, format_pending


@pytest.mark.parametrize('size, expected', [
    (0, '0 B'),
    (512, '512 B'),
    (1536, '1.50 KiB'),
    (10 * 1024 * 1024, '10.00 MiB'),
    (3 * 1024 ** 3, '3.00 GiB'),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_format_listing_orders_folders_first():
    listing = {
        'current_path': '/media',
        'folders': [{'name': 'clips'}],
        'files': [{'name': 'movie.mp4', 'size': 2048}],
    }

    lines = format_listing(listing).splitlines()

    assert lines[0] == '/media:'
    assert lines[1] == '  clips/'
    assert lines[2].startswith('  movie.mp4')
    assert lines[2].endswith('2.00 KiB')


def test_format_listing_empty():
    assert format_listing({'current_path': '/', 'folders': [], 'files': []}) == '/:\n  (empty)'


def test_format_pending_empty():
    assert format_pending([]) == 'No pending uploads.'


def test_format_pending_shows_key_and_error():
    item = PendingUpload(key='upload_progress_abc', file_name='movie.mp4', target_path='/',
                         completed_chunks=1, total_chunks=3, last_updated=0.0, has_error=True,
                         last_error='timed out')

    text = format_pending([item])

    assert 'movie.mp4 -> /' in text
    assert '1/3 chunks (33%)' in text
    assert 'last error: timed out' in text
    assert 'key: upload_progress_abc' in text
