"""Pydantic schemas for API requests and responses."""

from fileshare.schemas.common import ErrorResponse, HealthResponse
from fileshare.schemas.files import (
    CreateGroupRequest,
    CreateGroupResponse,
    FileInfoResponse,
    GroupInfoResponse,
    GroupMember
)
from fileshare.schemas.uploads import (
    ChunkUploadResponse,
    CompleteUploadRequest,
    InitUploadRequest,
    InitUploadResponse,
    UploadResponse
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "CreateGroupRequest",
    "CreateGroupResponse",
    "FileInfoResponse",
    "GroupInfoResponse",
    "GroupMember",
    "ChunkUploadResponse",
    "CompleteUploadRequest",
    "InitUploadRequest",
    "InitUploadResponse",
    "UploadResponse"
]
