"""Tests for CLI configuration module."""

import json

from cli.config import Config


def test_config_creates_default_file(tmp_path):
    config_path = tmp_path / '.fileshare' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()
    assert config.data['timeout'] == 30
    assert config.data['max_retries'] == 3
    assert config.get_chunk_size() == 5 * 1024 * 1024
    assert config.get_chunked_threshold() == 5 * 1024 * 1024


def test_config_loads_existing_file(tmp_path):
    config_path = tmp_path / '.fileshare' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text(json.dumps({
        'server_host': 'files.example.com',
        'server_port': 8080,
        'chunk_size': 1024,
    }))

    config = Config(config_path)

    assert config.get_base_url() == 'http://files.example.com:8080'
    assert config.get_chunk_size() == 1024
    assert config.get_chunked_threshold() == 5 * 1024 * 1024
    assert config.data['max_retries'] == 3


def test_corrupt_config_is_backed_up(tmp_path):
    config_path = tmp_path / '.fileshare' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text('{broken')

    config = Config(config_path)

    assert config.data['timeout'] == 30
    assert config_path.with_suffix('.json.bak').read_text() == '{broken'


def test_save_round_trip(temp_config):
    temp_config.data['timeout'] = 5
    temp_config.save()

    assert Config(temp_config.config_path).get_timeout() == 5
