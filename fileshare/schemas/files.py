"""Pydantic schemas for file and group lookup endpoints."""

from typing import List, Optional
from pydantic import BaseModel


class FileInfoResponse(BaseModel):
    """Response model for file metadata."""
    success: bool = True
    filename: str
    size: int
    originalSize: Optional[int] = None
    compressed: bool
    compressionRatio: Optional[float] = None
    uploadDate: str


class GroupMember(BaseModel):
    """One file listed in a group."""
    id: str
    filename: str
    size: int
    compressed: bool
    uploadDate: Optional[str] = None


class CreateGroupRequest(BaseModel):
    """Request model for creating a group."""
    fileIds: Optional[List[str]] = None
    groupName: Optional[str] = None


class CreateGroupResponse(BaseModel):
    """Response model for a created group."""
    success: bool = True
    groupCode: str
    name: str
    fileCount: int
    files: List[GroupMember]


class GroupInfoResponse(BaseModel):
    """Response model for group lookup."""
    success: bool = True
    groupCode: str
    name: str
    fileCount: int
    createdAt: str
    files: List[GroupMember]
