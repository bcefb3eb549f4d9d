"""Upload service: chunked upload sessions and single-shot uploads."""

import asyncio
import zlib
from pathlib import Path
from typing import BinaryIO, Optional

from common.constants import DEFAULT_MIMETYPE, STREAM_PIECE_SIZE
from common.logging_config import get_logger
from fileshare.assembler import Assembler
from fileshare.compression import compress_file, should_compress
from fileshare.exceptions import (
    CodeAllocationError,
    NoFileError,
    OversizeChunkError,
    OversizeFileError,
)
from fileshare.metadata_store import FileRecord, MetadataStore, build_file_record
from fileshare.session_registry import ChunkReceipt, UploadSession, UploadSessionRegistry
from fileshare.utils import make_stored_filename

logger = get_logger(__name__)


class UploadService:
    def __init__(
        self,
        registry: UploadSessionRegistry,
        assembler: Assembler,
        store: MetadataStore,
        uploads_dir: Path,
        max_file_bytes: int,
        max_chunk_bytes: int,
    ):
        self.registry = registry
        self.assembler = assembler
        self.store = store
        self.uploads_dir = Path(uploads_dir)
        self.max_file_bytes = max_file_bytes
        self.max_chunk_bytes = max_chunk_bytes

    async def init_upload(
        self,
        filename: str,
        total_chunks: int,
        file_size: int,
        mime_type: Optional[str] = None,
        upload_id: Optional[str] = None,
        chunk_size: Optional[int] = None,
    ) -> UploadSession:
        return await self.registry.init_session(
            filename=filename,
            total_chunks=total_chunks,
            total_size=file_size,
            content_type=mime_type,
            session_id=upload_id,
            chunk_size=chunk_size,
        )

    async def upload_chunk(self, upload_id: str, chunk_index: int, payload: bytes) -> ChunkReceipt:
        """
        Raises:
            OversizeChunkError: If payload exceeds the chunk limit
            UnknownSessionError, InvalidParamsError, EmptyChunkError: See registry
        """
        if len(payload) > self.max_chunk_bytes:
            raise OversizeChunkError(self.max_chunk_bytes)
        return await self.registry.accept_chunk(upload_id, chunk_index, payload)

    async def complete_upload(self, upload_id: str, compress: bool = False) -> FileRecord:
        return await self.assembler.complete(upload_id, compress)

    async def upload_file(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        source: Optional[BinaryIO],
        compress_requested: bool = False,
    ) -> FileRecord:
        """
        Store a whole file received in one request.

        Compression is attempted when requested and the file is at least
        10 KiB; the compressed artifact is kept only if it is smaller,
        and any compression failure falls back to the original bytes.

        Raises:
            NoFileError: If no file was sent
            OversizeFileError: If the file exceeds the size limit
        """
        if source is None or not filename:
            raise NoFileError("No file uploaded")

        return await asyncio.to_thread(
            self._store_file, filename, content_type or DEFAULT_MIMETYPE, source, compress_requested
        )

    def _store_file(
        self, filename: str, content_type: str, source: BinaryIO, compress_requested: bool
    ) -> FileRecord:
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        artifact = self.uploads_dir / make_stored_filename("file", filename)

        original_size = self._receive(source, artifact)
        logger.info(
            f"Processing upload request for file: {filename}, size: {original_size} bytes, type: {content_type}"
        )

        compressed = False
        stored_size = original_size
        if compress_requested and not should_compress(True, original_size):
            logger.info(f"File too small for compression: {filename} ({original_size} bytes)")
        elif compress_requested:
            artifact, stored_size, compressed = self._try_compress(artifact, original_size)

        record = build_file_record(
            filename=filename,
            stored_filename=artifact.name,
            content_type=content_type,
            original_size=original_size,
            stored_size=stored_size,
            compressed=compressed,
        )
        try:
            committed = self.store.commit_file(record)
        except (OSError, CodeAllocationError):
            artifact.unlink(missing_ok=True)
            raise

        logger.info(
            f"File upload successful: {filename}, size: {stored_size} bytes, "
            f"code: {committed.id}, compressed: {compressed}"
        )
        return committed

    def _receive(self, source: BinaryIO, dest: Path) -> int:
        """Copy the request body to ``dest``, enforcing the size limit."""
        written = 0
        try:
            with open(dest, 'wb') as out:
                while True:
                    piece = source.read(STREAM_PIECE_SIZE)
                    if not piece:
                        break
                    written += len(piece)
                    if written > self.max_file_bytes:
                        raise OversizeFileError(self.max_file_bytes)
                    out.write(piece)
        except Exception:
            dest.unlink(missing_ok=True)
            raise
        return written

    def _try_compress(self, artifact: Path, original_size: int):
        """
        Returns:
            (artifact path, stored size, compressed flag) after keeping
            whichever of the original and the gzip version is smaller
        """
        gz_path = artifact.with_name(f"{artifact.name}.gz")
        logger.info(f"Compressing file: {artifact.name} ({original_size} bytes)")
        try:
            gz_size = compress_file(artifact, gz_path)
        except (OSError, zlib.error) as e:
            logger.error(f"Compression error: {e}")
            gz_path.unlink(missing_ok=True)
            return artifact, original_size, False

        if gz_size == 0 or gz_size >= original_size:
            logger.info(
                f"Compression did not reduce file size: {original_size} -> {gz_size} bytes. Using original file."
            )
            gz_path.unlink(missing_ok=True)
            return artifact, original_size, False

        artifact.unlink(missing_ok=True)
        logger.info(
            f"File compressed: {original_size} -> {gz_size} bytes ({original_size / gz_size:.2f}x ratio)"
        )
        return gz_path, gz_size, True
