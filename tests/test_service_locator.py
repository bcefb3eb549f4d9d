"""Tests for startup wiring through the service locator."""

import pytest
from fastapi.testclient import TestClient

from fileshare import service_locator
from fileshare.exceptions import FileShareException
from fileshare.metadata_store import MetadataStore
from fileshare.session_registry import UploadSessionRegistry


def test_getters_raise_before_startup():
    service_locator.reset()

    with pytest.raises(FileShareException, match="not initialized"):
        service_locator.get_metadata_store()
    with pytest.raises(FileShareException, match="not initialized"):
        service_locator.get_upload_service()


def test_startup_wires_and_shutdown_clears(data_dir):
    from fileshare.main import app

    with TestClient(app):
        assert isinstance(service_locator.get_metadata_store(), MetadataStore)
        assert isinstance(service_locator.get_session_registry(), UploadSessionRegistry)
        assert service_locator.get_metadata_store().db_path == data_dir / 'db.json'

    with pytest.raises(FileShareException):
        service_locator.get_session_registry()
