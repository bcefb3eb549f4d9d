"""Service locator for components wired at startup."""

from typing import Optional

from fileshare.exceptions import FileShareException
from fileshare.metadata_store import MetadataStore
from fileshare.services.group_service import GroupService
from fileshare.services.retrieval_service import RetrievalService
from fileshare.services.upload_service import UploadService
from fileshare.session_registry import UploadSessionRegistry

_metadata_store: Optional[MetadataStore] = None
_session_registry: Optional[UploadSessionRegistry] = None
_upload_service: Optional[UploadService] = None
_retrieval_service: Optional[RetrievalService] = None
_group_service: Optional[GroupService] = None


def _require(component, name: str):
    if component is None:
        raise FileShareException(f"{name} is not initialized")
    return component


def set_metadata_store(store: Optional[MetadataStore]):
    """Set global metadata store instance"""
    global _metadata_store
    _metadata_store = store


def get_metadata_store() -> MetadataStore:
    """Get global metadata store instance"""
    return _require(_metadata_store, "Metadata store")


def set_session_registry(registry: Optional[UploadSessionRegistry]):
    """Set global upload session registry instance"""
    global _session_registry
    _session_registry = registry


def get_session_registry() -> UploadSessionRegistry:
    """Get global upload session registry instance"""
    return _require(_session_registry, "Session registry")


def set_upload_service(service: Optional[UploadService]):
    """Set global upload service instance"""
    global _upload_service
    _upload_service = service


def get_upload_service() -> UploadService:
    """Get global upload service instance"""
    return _require(_upload_service, "Upload service")


def set_retrieval_service(service: Optional[RetrievalService]):
    """Set global retrieval service instance"""
    global _retrieval_service
    _retrieval_service = service


def get_retrieval_service() -> RetrievalService:
    """Get global retrieval service instance"""
    return _require(_retrieval_service, "Retrieval service")


def set_group_service(service: Optional[GroupService]):
    """Set global group service instance"""
    global _group_service
    _group_service = service


def get_group_service() -> GroupService:
    """Get global group service instance"""
    return _require(_group_service, "Group service")


def reset():
    """Drop every registered component."""
    set_metadata_store(None)
    set_session_registry(None)
    set_upload_service(None)
    set_retrieval_service(None)
    set_group_service(None)
