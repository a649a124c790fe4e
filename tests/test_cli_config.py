"""Tests for CLI configuration module."""

import json
import pytest
from pathlib import Path
from cli.config import Config


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.mediagrid' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()

    assert config.data['server_port'] == 5000
    assert config.data['timeout'] == 30
    assert config.data['chunk_size'] == 10 * 1024 * 1024
    assert config.data['max_concurrent_chunks'] == 3
    assert config.data['max_retries'] == 5
    assert config.data['large_file_threshold'] == 50 * 1024 * 1024


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file merges with defaults."""
    config_path = tmp_path / '.mediagrid' / 'config.json'
    config_path.parent.mkdir(parents=True)

    existing_data = {
        'server_host': 'media.example.com',
        'server_port': 9000,
        'chunk_size': 1024,
    }
    with open(config_path, 'w') as f:
        json.dump(existing_data, f)

    config = Config(config_path)

    assert config.data['server_host'] == 'media.example.com'
    assert config.data['server_port'] == 9000
    assert config.get_chunk_config()['chunk_size'] == 1024

    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 5


def test_config_handles_corrupted_file(tmp_path):
    """Test recovery from corrupted config file."""
    config_path = tmp_path / '.mediagrid' / 'config.json'
    config_path.parent.mkdir(parents=True)

    with open(config_path, 'w') as f:
        f.write('{ invalid json content')

    config = Config(config_path)
    assert config.data['server_port'] == 5000

    backup_path = config_path.with_suffix('.json.bak')
    assert backup_path.exists()


def test_config_save_persists_changes(temp_config):
    """Test saved values survive a reload."""
    temp_config.data['max_retries'] = 7
    temp_config.save()

    reloaded = Config(temp_config.config_path)
    assert reloaded.get_retry_config()['max_retries'] == 7


def test_config_get_base_url(temp_config):
    """Test base URL construction."""
    temp_config.data['server_host'] = 'localhost'
    assert temp_config.get_base_url() == 'http://localhost:5000'

    temp_config.data['server_host'] = 'example.com'
    temp_config.data['server_port'] = 9000
    assert temp_config.get_base_url() == 'http://example.com:9000'


def test_config_get_timeout(temp_config):
    """Test timeout retrieval."""
    assert temp_config.get_timeout() == 30

    temp_config.data['timeout'] = 60
    assert temp_config.get_timeout() == 60


def test_config_get_retry_config(temp_config):
    """Test retry configuration retrieval."""
    retry_config = temp_config.get_retry_config()

    assert retry_config['max_retries'] == 5
    assert retry_config['retry_base_delay'] == 1.0
    assert retry_config['retry_max_delay'] == 30.0

    temp_config.data['max_retries'] = 2
    temp_config.data['retry_base_delay'] = 0.5

    retry_config = temp_config.get_retry_config()
    assert retry_config['max_retries'] == 2
    assert retry_config['retry_base_delay'] == 0.5


def test_config_get_chunk_and_batch_config(temp_config):
    """Test chunking and batching settings."""
    chunk_config = temp_config.get_chunk_config()
    batch_config = temp_config.get_batch_config()

    assert chunk_config == {
        'chunk_size': 10 * 1024 * 1024,
        'max_concurrent_chunks': 3,
        'chunk_timeout': 60.0,
    }
    assert batch_config == {
        'large_file_threshold': 50 * 1024 * 1024,
        'small_file_concurrency': 4,
    }


def test_config_get_ledger_path(temp_config):
    """Test the ledger defaults next to the config file and can be overridden."""
    assert temp_config.get_ledger_path() == temp_config.config_path.parent / 'ledger.json'

    temp_config.data['ledger_path'] = '/tmp/elsewhere/ledger.json'
    assert temp_config.get_ledger_path() == Path('/tmp/elsewhere/ledger.json')


def test_config_directory_created_if_missing(tmp_path):
    """Test that config directory is created if it doesn't exist."""
    config_path = tmp_path / 'nested' / 'deep' / '.mediagrid' / 'config.json'

    assert not config_path.parent.exists()

    config = Config(config_path)
    assert config_path.parent.exists()
    assert config_path.exists()
