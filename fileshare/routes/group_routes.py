"""Group API routes."""

import asyncio

from fastapi import APIRouter, Depends, status

from fileshare.schemas.files import (
    CreateGroupRequest,
    CreateGroupResponse,
    GroupInfoResponse,
    GroupMember
)
from fileshare.service_locator import get_group_service
from fileshare.services.group_service import GroupService

router = APIRouter(prefix="/api", tags=["Groups"])


@router.post("/group", response_model=CreateGroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    request: CreateGroupRequest,
    group_service: GroupService = Depends(get_group_service)
):
    """
    Share several uploaded files under one code.

    Raises:
        - 400: fileIds missing or empty
        - 404: A file code does not exist (fileId names the first one)
    """
    group, files = await asyncio.to_thread(
        group_service.create_group, request.fileIds, request.groupName
    )
    return CreateGroupResponse(
        groupCode=group.id,
        name=group.name,
        fileCount=group.fileCount,
        files=[
            GroupMember(id=f.id, filename=f.filename, size=f.size, compressed=f.compressed)
            for f in files
        ],
    )


@router.get("/group/{code}", response_model=GroupInfoResponse)
async def get_group(
    code: str,
    group_service: GroupService = Depends(get_group_service)
):
    """
    List the files of a group. Members whose record is gone are left out.

    Raises:
        - 404: Group not found
    """
    group, files = group_service.get_group(code)
    return GroupInfoResponse(
        groupCode=group.id,
        name=group.name,
        fileCount=len(files),
        createdAt=group.createdAt,
        files=[
            GroupMember(
                id=f.id,
                filename=f.filename,
                size=f.size,
                compressed=f.compressed,
                uploadDate=f.uploadDate,
            )
            for f in files
        ],
    )
