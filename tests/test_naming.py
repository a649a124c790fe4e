"""Tests for shared filename sanitization."""

import pytest

from common.naming import SANITIZED_NAME_RE, is_valid_storage_name, is_video_file, sanitize_filename


@pytest.mark.parametrize('raw,expected', [
    ('holiday video.mp4', 'holiday-video.mp4'),
    ('  spaced   out  name.txt ', 'spaced-out-name.txt'),
    ('résumé (final).pdf', 'rsum-final.pdf'),
    ('a -- b.txt', 'a-b.txt'),
    ('--leading-and-trailing--', 'leading-and-trailing'),
    ('tab\there.bin', 'tab-here.bin'),
    ('already-clean_name.v2.mkv', 'already-clean_name.v2.mkv'),
    ('../../etc/passwd', '....etcpasswd'),
])
def test_sanitize_filename(raw, expected):
    """Test sanitization of representative user file names."""
    assert sanitize_filename(raw) == expected


@pytest.mark.parametrize('raw', [
    'holiday video.mp4',
    'weird!!name@@.txt',
    '  - - x - - ',
    'über große datei.mov',
    'a\nb\rc.txt',
])
def test_sanitize_filename_idempotent(raw):
    """Test applying sanitization twice gives the same result."""
    once = sanitize_filename(raw)
    assert sanitize_filename(once) == once


@pytest.mark.parametrize('raw', ['movie file.mp4', 'x y z', 'data_2024.csv', 'ok.txt'])
def test_sanitize_filename_matches_allowed_charset(raw):
    """Test non-empty results only use the allowed characters."""
    assert SANITIZED_NAME_RE.match(sanitize_filename(raw))


def test_sanitize_filename_can_be_empty():
    """Test a name with no usable characters sanitizes to an empty string."""
    assert sanitize_filename('!!! ???') == ''


def test_is_valid_storage_name():
    """Test dot names and empty strings are rejected as storage names."""
    assert is_valid_storage_name('file.txt')
    assert not is_valid_storage_name('')
    assert not is_valid_storage_name('.')
    assert not is_valid_storage_name('..')
    assert not is_valid_storage_name('has space.txt')


def test_is_video_file():
    """Test video detection is extension based and case-insensitive."""
    assert is_video_file('clip.MP4')
    assert is_video_file('movie.mkv')
    assert not is_video_file('notes.txt')
    assert not is_video_file('mp4')
