"""Pydantic schemas for upload endpoints."""

from typing import Optional
from pydantic import BaseModel


class InitUploadRequest(BaseModel):
    """
    Request model for starting a chunked upload.

    Fields are optional at the schema level so that a missing filename or
    chunk count is reported as INVALID_PARAMS rather than a 422.
    """
    uploadId: Optional[str] = None
    filename: Optional[str] = None
    totalChunks: Optional[int] = None
    fileSize: Optional[int] = None
    mimeType: Optional[str] = None
    chunkSize: Optional[int] = None


class InitUploadResponse(BaseModel):
    """Response model for a started chunked upload."""
    success: bool = True
    uploadId: str
    totalChunks: int
    chunkSize: int


class ChunkUploadResponse(BaseModel):
    """Response model for a received chunk."""
    success: bool = True
    receivedChunks: int
    totalChunks: int
    duplicate: bool = False


class CompleteUploadRequest(BaseModel):
    """Request model for finishing a chunked upload."""
    uploadId: str
    compress: bool = False


class UploadResponse(BaseModel):
    """Response model for a stored file, chunked or single-shot."""
    success: bool = True
    code: str
    filename: str
    size: int
    originalSize: Optional[int] = None
    compressed: bool
    compressionRatio: Optional[float] = None
    uploadTime: int
