"""Service layer for business logic."""

from fileshare.services.group_service import GroupService
from fileshare.services.retrieval_service import RetrievalService
from fileshare.services.upload_service import UploadService

__all__ = [
    "GroupService",
    "RetrievalService",
    "UploadService",
]
