"""Shared pytest fixtures for all tests."""

import pytest
from fastapi.testclient import TestClient

from cli.config import Config
from fileshare.chunk_store import ChunkStore
from fileshare.metadata_store import MetadataStore


class FakeClock:
    """Settable clock for sweep tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def chunk_store(tmp_path):
    """
    Chunk store rooted in a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        ChunkStore instance
    """
    store = ChunkStore(tmp_path / 'chunks')
    store.ensure_root()
    return store


@pytest.fixture
def metadata_store(tmp_path):
    """Loaded, empty record store in a temporary directory."""
    store = MetadataStore(tmp_path / 'db.json')
    store.load()
    return store


@pytest.fixture
def uploads_dir(tmp_path):
    path = tmp_path / 'uploads'
    path.mkdir()
    return path


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """
    Point the server's data directory at a temporary path.

    Returns:
        Path to the data directory
    """
    path = tmp_path / 'data'
    monkeypatch.setenv('FILESHARE_DATA_DIR', str(path))
    for name in ('FILESHARE_DB_PATH', 'FILESHARE_UPLOADS_DIR', 'FILESHARE_CHUNKS_DIR'):
        monkeypatch.delenv(name, raising=False)
    return path


@pytest.fixture
def api_client(data_dir):
    """
    FastAPI test client with startup and shutdown hooks run.

    Yields:
        TestClient bound to a fresh data directory
    """
    from fileshare.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def temp_config(tmp_path):
    """
    Create temporary CLI config instance.

    Returns:
        Config instance with temp config file
    """
    config_dir = tmp_path / '.fileshare'
    config_dir.mkdir()
    return Config(config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path
