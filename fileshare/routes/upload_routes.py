"""Upload API routes: chunked upload protocol and single-shot upload."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from fileshare.exceptions import EmptyChunkError
from fileshare.metadata_store import FileRecord
from fileshare.schemas.uploads import (
    ChunkUploadResponse,
    CompleteUploadRequest,
    InitUploadRequest,
    InitUploadResponse,
    UploadResponse
)
from fileshare.service_locator import get_upload_service
from fileshare.services.upload_service import UploadService
from fileshare.utils import now_ms

router = APIRouter(prefix="/api", tags=["Upload"])


def to_upload_response(record: FileRecord) -> UploadResponse:
    return UploadResponse(
        code=record.id,
        filename=record.filename,
        size=record.size,
        originalSize=record.originalSize,
        compressed=record.compressed,
        compressionRatio=record.compressionRatio,
        uploadTime=now_ms(),
    )


def parse_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes", "on")


@router.post("/upload/init", response_model=InitUploadResponse)
async def init_upload(
    request: InitUploadRequest,
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Start a chunked upload session.

    Parameters:
        - uploadId: Optional client-chosen session id
        - filename, totalChunks, fileSize: Declared file shape
        - mimeType, chunkSize: Optional hints

    Returns:
        - uploadId: Session id to use for chunks and completion

    Raises:
        - 400: Missing filename or non-positive counts
    """
    session = await upload_service.init_upload(
        filename=request.filename,
        total_chunks=request.totalChunks,
        file_size=request.fileSize,
        mime_type=request.mimeType,
        upload_id=request.uploadId,
        chunk_size=request.chunkSize,
    )
    return InitUploadResponse(
        uploadId=session.session_id,
        totalChunks=session.total_chunks,
        chunkSize=session.chunk_size,
    )


@router.post("/upload/chunk", response_model=ChunkUploadResponse)
async def upload_chunk(
    upload_id: str = Form(..., alias="uploadId"),
    chunk_index: int = Form(..., alias="chunkIndex"),
    chunk: Optional[UploadFile] = File(None),
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Receive one chunk of a session, in any order.

    Re-sending an index that was already stored is reported with
    duplicate=true and leaves the session unchanged.

    Raises:
        - 400: Unknown session, empty chunk or index out of range
        - 413: Chunk too large
    """
    if chunk is None:
        raise EmptyChunkError("No chunk uploaded")

    # one byte past the limit is enough to detect an oversize chunk
    payload = await chunk.read(upload_service.max_chunk_bytes + 1)
    receipt = await upload_service.upload_chunk(upload_id, chunk_index, payload)

    return ChunkUploadResponse(
        receivedChunks=receipt.received_chunks,
        totalChunks=receipt.total_chunks,
        duplicate=receipt.duplicate,
    )


@router.post("/upload/complete", response_model=UploadResponse)
async def complete_upload(
    request: CompleteUploadRequest,
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Assemble a fully received session and return its share code.

    Raises:
        - 400: Unknown session, incomplete upload or chunk missing on disk
        - 500: Assembly failed
    """
    record = await upload_service.complete_upload(request.uploadId, request.compress)
    return to_upload_response(record)


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    optimized: Optional[str] = Form(None),
    upload_service: UploadService = Depends(get_upload_service)
):
    """
    Upload a whole file in one request.

    Parameters:
        - file: File to upload (multipart/form-data)
        - optimized: "true" to store gzip-compressed when that is smaller

    Raises:
        - 400: No file in the request
        - 413: File too large
    """
    record = await upload_service.upload_file(
        filename=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        source=file.file if file is not None else None,
        compress_requested=parse_flag(optimized),
    )
    return to_upload_response(record)
