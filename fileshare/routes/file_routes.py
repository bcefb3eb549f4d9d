"""File retrieval API routes."""

from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from fileshare.schemas.files import FileInfoResponse
from fileshare.service_locator import get_retrieval_service
from fileshare.services.retrieval_service import RetrievalService

router = APIRouter(prefix="/api", tags=["Files"])


@router.get("/download/{code}", response_model=FileInfoResponse)
async def get_file_info(
    code: str,
    retrieval_service: RetrievalService = Depends(get_retrieval_service)
):
    """
    Get metadata for a file code without downloading it.

    Raises:
        - 400: Code belongs to a group
        - 404: Unknown code, or the stored file is gone
    """
    record = retrieval_service.describe(code)
    return FileInfoResponse(
        filename=record.filename,
        size=record.size,
        originalSize=record.originalSize,
        compressed=record.compressed,
        compressionRatio=record.compressionRatio,
        uploadDate=record.uploadDate,
    )


@router.get("/file/{code}")
async def download_file(
    code: str,
    retrieval_service: RetrievalService = Depends(get_retrieval_service)
):
    """
    Stream a file, decompressing it if it was stored compressed.

    Returns:
        - File bytes as an attachment

    Raises:
        - 400: Code belongs to a group (isGroup=true, nothing is streamed)
        - 404: Unknown code, or the stored file is gone
        - 500: Stored file cannot be decompressed (strict mode only)
    """
    download = retrieval_service.open_download(code)
    return StreamingResponse(
        download.stream,
        media_type=download.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{quote(download.record.filename, safe="")}"'
        }
    )
