"""Assembles a completed upload session's chunks into a committed artifact."""

import asyncio
import os
from pathlib import Path
from typing import Tuple

from common.logging_config import get_logger
from fileshare.chunk_store import ChunkStore
from fileshare.compression import output_pipeline, should_compress
from fileshare.exceptions import (
    AssemblyFailedError,
    CodeAllocationError,
    IncompleteUploadError,
    MissingChunkError,
)
from fileshare.metadata_store import FileRecord, MetadataStore, build_file_record
from fileshare.session_registry import UploadSession, UploadSessionRegistry
from fileshare.utils import make_stored_filename

logger = get_logger(__name__)


class Assembler:
    """
    Turns a complete session into a stored artifact and a FileRecord.

    Chunks are concatenated strictly by ascending index, whatever order
    they arrived in. When compression is requested the bytes pass through
    the gzip filter on their way to the artifact; if the result is not
    smaller than the raw data, the compressed artifact is discarded and the
    chunks are assembled again uncompressed.
    """

    def __init__(
        self,
        registry: UploadSessionRegistry,
        chunk_store: ChunkStore,
        store: MetadataStore,
        uploads_dir: Path,
    ):
        self.registry = registry
        self.chunk_store = chunk_store
        self.store = store
        self.uploads_dir = Path(uploads_dir)

    async def complete(self, session_id: str, compress_requested: bool = False) -> FileRecord:
        """
        Validate, assemble and commit a session, then evict it.

        The session's lock is held throughout, so a second completion call
        for the same id waits and then finds the session gone.

        Args:
            session_id: Upload session id
            compress_requested: Client asked for gzip storage

        Returns:
            The committed FileRecord

        Raises:
            UnknownSessionError: If the session is not registered
            IncompleteUploadError: If chunks are still outstanding
            MissingChunkError: If a received chunk is absent on disk
            AssemblyFailedError: On I/O failure while assembling or committing
        """
        session = await self.registry.get(session_id)

        async with session.lock:
            session = await self.registry.get(session_id)

            if not await self.registry.is_complete(session_id):
                raise IncompleteUploadError(session.received_count, session.total_chunks)

            compress = should_compress(compress_requested, session.total_size)
            if compress_requested and not compress:
                logger.info(
                    f"File too small for compression: {session.filename} ({session.total_size} bytes)"
                )

            logger.info(
                f"Completing upload: {session.filename}, all {session.total_chunks} chunks received"
                f"{' with compression' if compress else ''} [upload_id={session_id}]"
            )

            try:
                record = await asyncio.to_thread(self._assemble_and_commit, session, compress)
            except MissingChunkError as e:
                await self.registry.forget_chunk(session_id, e.index)
                on_disk = await asyncio.to_thread(self.chunk_store.list_chunk_indices, session_id)
                logger.warning(
                    f"Upload {session_id} is missing chunk {e.index} on disk "
                    f"({len(on_disk)}/{session.total_chunks} chunk files present)"
                )
                raise

            await self.registry.evict(session_id)

        logger.info(
            f"Chunked upload successful: {record.filename}, size: {record.size} bytes, "
            f"code: {record.id}, compressed: {record.compressed}"
        )
        return record

    def _assemble_and_commit(self, session: UploadSession, compress: bool) -> FileRecord:
        artifact, raw_size = self._build_artifact(session, compress)
        stored_size = artifact.stat().st_size

        if compress and stored_size >= raw_size:
            logger.info(
                f"Compression did not reduce file size: {raw_size} -> {stored_size} bytes. Using original file."
            )
            artifact.unlink(missing_ok=True)
            compress = False
            artifact, raw_size = self._build_artifact(session, compress)
            stored_size = artifact.stat().st_size
        elif compress:
            logger.info(
                f"File compressed: {raw_size} -> {stored_size} bytes "
                f"({raw_size / stored_size:.2f}x ratio)"
            )

        if raw_size != session.total_size:
            logger.warning(
                f"Upload {session.session_id} declared {session.total_size} bytes "
                f"but assembled {raw_size}"
            )

        record = build_file_record(
            filename=session.filename,
            stored_filename=artifact.name,
            content_type=session.content_type,
            original_size=raw_size,
            stored_size=stored_size,
            compressed=compress,
            chunked=True,
        )
        try:
            return self.store.commit_file(record)
        except (OSError, CodeAllocationError) as e:
            artifact.unlink(missing_ok=True)
            raise AssemblyFailedError(f"Failed to record upload {session.session_id}: {e}") from e

    def _build_artifact(self, session: UploadSession, compress: bool) -> Tuple[Path, int]:
        """
        Write all chunks, in index order, into a new artifact.

        Output goes to a ``.part`` file that is renamed into place only
        once complete; on any failure the partial file is removed.

        Returns:
            (artifact path, number of raw bytes written)
        """
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        artifact = self.uploads_dir / make_stored_filename("chunked", session.filename, compressed=compress)
        partial = artifact.with_name(f"{artifact.name}.part")

        try:
            raw_size = self._write_chunks(session, partial, compress)
            os.replace(partial, artifact)
        except MissingChunkError:
            partial.unlink(missing_ok=True)
            raise
        except OSError as e:
            partial.unlink(missing_ok=True)
            logger.error(f"Assembly failed for upload {session.session_id}: {e}", exc_info=True)
            raise AssemblyFailedError(f"Failed to complete upload: {e}") from e

        logger.info(f"File assembly complete: {artifact.name}")
        return artifact, raw_size

    def _write_chunks(self, session: UploadSession, dest: Path, compress: bool) -> int:
        written = 0
        with output_pipeline(dest, compress) as out:
            for index in range(session.total_chunks):
                # the registry's counts can drift from disk; check each file
                if not self.chunk_store.chunk_exists(session.session_id, index):
                    raise MissingChunkError(index)
                try:
                    for piece in self.chunk_store.read_chunk_streaming(session.session_id, index):
                        out.write(piece)
                        written += len(piece)
                except FileNotFoundError:
                    raise MissingChunkError(index)
        return written
