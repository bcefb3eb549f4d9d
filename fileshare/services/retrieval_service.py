"""Retrieval service: resolves share codes and streams artifacts back."""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Tuple

from common.constants import DEFAULT_MIMETYPE
from common.logging_config import get_logger
from fileshare.compression import DECOMPRESSION_ERRORS, iter_decompressed, iter_raw, probe_gzip
from fileshare.exceptions import (
    ArtifactMissingError,
    DecompressionFailedError,
    IsGroupError,
    NotFoundError,
)
from fileshare.metadata_store import FileRecord, MetadataStore

logger = get_logger(__name__)


@dataclass
class Download:
    """An artifact ready to be streamed to the client."""
    record: FileRecord
    media_type: str
    stream: Iterator[bytes]


class RetrievalService:
    """
    Looks up codes and opens artifacts for download.

    Compressed artifacts are decompressed on the fly. If a compressed
    artifact cannot be decoded and ``decompression_fallback`` is on, the
    raw stored bytes are served under the stored (gzip) content type
    instead of failing the request. The client then receives gzip data
    it did not ask for; turning the flag off makes this a hard error.
    """

    def __init__(self, store: MetadataStore, uploads_dir: Path, decompression_fallback: bool = True):
        self.store = store
        self.uploads_dir = Path(uploads_dir)
        self.decompression_fallback = decompression_fallback

    def resolve_file(self, code: str) -> Tuple[FileRecord, Path]:
        """
        Resolve a code to a file record and its artifact path.

        Raises:
            IsGroupError: If the code names a group
            NotFoundError: If the code names nothing
            ArtifactMissingError: If the record's artifact is gone from disk
        """
        record = self.store.get_file(code)
        if record is None:
            group = self.store.get_group(code)
            if group is not None:
                raise IsGroupError(group.id, group.fileCount)
            raise NotFoundError("File not found")

        path = self.uploads_dir / record.storedFilename
        if not path.is_file():
            logger.warning(f"Artifact {record.storedFilename} for code {code} is missing from storage")
            raise ArtifactMissingError("File not found on server")

        return record, path

    def describe(self, code: str) -> FileRecord:
        record, _ = self.resolve_file(code)
        return record

    def open_download(self, code: str) -> Download:
        """
        Resolve a code and prepare its byte stream.

        Raises:
            IsGroupError, NotFoundError, ArtifactMissingError: See resolve_file
            DecompressionFailedError: If decoding fails and fallback is off
        """
        record, path = self.resolve_file(code)

        if not record.compressed:
            logger.info(f"File download: {record.filename}, size: {record.size} bytes")
            return Download(record, record.mimetype or DEFAULT_MIMETYPE, iter_raw(path))

        logger.info(f"Decompressing file for download: {record.filename}")
        if not probe_gzip(path):
            if not self.decompression_fallback:
                raise DecompressionFailedError(f"Stored file for {code} could not be decompressed")
            logger.error(
                f"Decompression error for {record.filename}, sending raw stored bytes instead"
            )
            return Download(record, record.mimetype or DEFAULT_MIMETYPE, iter_raw(path))

        logger.info(f"File download: {record.filename}, size: {record.size} bytes, compressed")
        return Download(
            record,
            record.originalMimetype or DEFAULT_MIMETYPE,
            self._stream_decompressed(record, path),
        )

    def _stream_decompressed(self, record: FileRecord, path: Path) -> Iterator[bytes]:
        # headers are already on the wire once streaming starts, so a
        # failure here can only end the body early
        try:
            yield from iter_decompressed(path)
        except DECOMPRESSION_ERRORS as e:
            logger.error(f"Decompression error mid-stream for {record.filename}: {e}")
            if not self.decompression_fallback:
                raise DecompressionFailedError(f"Stored file for {record.id} is corrupt") from e
