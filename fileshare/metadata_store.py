"""
JSON record store for committed files and groups.

Holds ``{"files": [...], "groups": [...]}`` in one JSON document. The
document is loaded once at startup, kept in memory, and rewritten
atomically after every commit. Share codes are allocated inside the
commit critical section so two concurrent commits can never claim the
same code.
"""

import json
import os
import secrets
import threading
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.constants import COMPRESSED_MIMETYPE, DEFAULT_MIMETYPE
from common.logging_config import get_logger
from fileshare.utils import allocate_code, compression_ratio, get_current_timestamp, now_ms, random_code

logger = get_logger(__name__)


@dataclass(frozen=True)
class FileRecord:
    """
    Committed file. Field names follow the persisted JSON keys.
    """
    id: str
    internalId: str
    filename: str
    storedFilename: str
    mimetype: str
    size: int
    compressed: bool = False
    originalMimetype: Optional[str] = None
    originalSize: Optional[int] = None
    compressionRatio: Optional[float] = None
    uploadDate: str = field(default_factory=get_current_timestamp)
    chunked: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileRecord':
        return cls(
            id=data['id'],
            internalId=data.get('internalId') or data['id'],
            filename=data['filename'],
            storedFilename=data['storedFilename'],
            mimetype=data.get('mimetype') or DEFAULT_MIMETYPE,
            size=int(data.get('size') or 0),
            compressed=bool(data.get('compressed')),
            originalMimetype=data.get('originalMimetype'),
            originalSize=data.get('originalSize'),
            compressionRatio=_as_float(data.get('compressionRatio')),
            uploadDate=data.get('uploadDate') or '',
            chunked=bool(data.get('chunked')),
        )


@dataclass(frozen=True)
class GroupRecord:
    """
    Named, ordered collection of file codes. Never mutated.
    """
    id: str
    name: str
    fileIds: List[str]
    fileCount: int
    createdAt: str = field(default_factory=get_current_timestamp)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GroupRecord':
        file_ids = list(data.get('fileIds') or [])
        return cls(
            id=data['id'],
            name=data.get('name') or '',
            fileIds=file_ids,
            fileCount=int(data.get('fileCount', len(file_ids))),
            createdAt=data.get('createdAt') or '',
        )


def build_file_record(
    filename: str,
    stored_filename: str,
    content_type: str,
    original_size: int,
    stored_size: int,
    compressed: bool,
    chunked: bool = False,
) -> FileRecord:
    """
    Build an uncommitted FileRecord (its code is assigned on commit).

    Compressed artifacts are typed application/gzip and keep the
    client's content type in ``originalMimetype``.
    """
    return FileRecord(
        id='',
        internalId=f"{now_ms()}-{secrets.token_hex(3)}",
        filename=filename,
        storedFilename=stored_filename,
        mimetype=COMPRESSED_MIMETYPE if compressed else content_type,
        size=stored_size,
        compressed=compressed,
        originalMimetype=content_type if compressed else None,
        originalSize=original_size if compressed else None,
        compressionRatio=compression_ratio(original_size, stored_size) if compressed else None,
        chunked=chunked,
    )


def _as_float(value) -> Optional[float]:
    # older stores kept the ratio as a "2.50" string
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class MetadataStore:
    """
    Thread-safe persistent store of FileRecords and GroupRecords.

    Files and groups share one code namespace. Commits are serialized by
    a lock and replace the in-memory tables only after the document is on
    disk, so lookups never wait on a commit and never see a record that
    failed to persist.
    """

    def __init__(self, db_path: Path, code_generator=random_code):
        """
        Args:
            db_path: Path of the JSON document
            code_generator: Source of candidate share codes
        """
        self._db_path = Path(db_path)
        self._code_generator = code_generator
        self._commit_lock = threading.Lock()
        self._files: Dict[str, FileRecord] = {}
        self._groups: Dict[str, GroupRecord] = {}

    @property
    def db_path(self) -> Path:
        return self._db_path

    def load(self) -> bool:
        """
        Load records from disk, creating an empty document if none exists.

        An unreadable document is logged and treated as empty.

        Returns:
            True if an existing document was loaded
        """
        with self._commit_lock:
            if not self._db_path.exists():
                logger.info(f"No record store at {self._db_path}, creating an empty one")
                self._write({}, {})
                self._files, self._groups = {}, {}
                return False

            files: Dict[str, FileRecord] = {}
            groups: Dict[str, GroupRecord] = {}
            try:
                with open(self._db_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                for entry in data.get('files') or []:
                    record = FileRecord.from_dict(entry)
                    files[record.id] = record
                # stores written before groups existed have no "groups" key
                for entry in data.get('groups') or []:
                    group = GroupRecord.from_dict(entry)
                    groups[group.id] = group
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Error reading record store {self._db_path}: {e}")
                self._files, self._groups = {}, {}
                return False

            self._files, self._groups = files, groups
            logger.info(
                f"Record store loaded from {self._db_path} "
                f"({len(files)} file(s), {len(groups)} group(s))"
            )
            return True

    def _write(self, files: Dict[str, FileRecord], groups: Dict[str, GroupRecord]) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            'files': [asdict(record) for record in files.values()],
            'groups': [asdict(group) for group in groups.values()],
        }
        tmp_path = self._db_path.with_name(f"{self._db_path.name}.tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self._db_path)

    def code_exists(self, code: str) -> bool:
        return code in self._files or code in self._groups

    def commit_file(self, record: FileRecord) -> FileRecord:
        """
        Assign a fresh share code to ``record``, append it and persist.

        Returns:
            The committed record carrying its code

        Raises:
            CodeAllocationError: If no free code could be drawn
            OSError: If the store cannot be written (nothing is recorded)
        """
        with self._commit_lock:
            code = allocate_code(self.code_exists, self._code_generator)
            committed = replace(record, id=code, internalId=record.internalId or code)
            files = dict(self._files)
            files[code] = committed
            self._write(files, self._groups)
            self._files = files
        logger.info(f"Committed file {committed.filename} as {code}")
        return committed

    def commit_group(self, name: str, file_ids: List[str]) -> GroupRecord:
        """
        Create and persist a group over existing file codes.

        Returns:
            The committed group record

        Raises:
            KeyError: With the first file code that is not in the store
            CodeAllocationError: If no free code could be drawn
            OSError: If the store cannot be written (nothing is recorded)
        """
        with self._commit_lock:
            for file_id in file_ids:
                if file_id not in self._files:
                    raise KeyError(file_id)
            code = allocate_code(self.code_exists, self._code_generator)
            group = GroupRecord(id=code, name=name, fileIds=list(file_ids), fileCount=len(file_ids))
            groups = dict(self._groups)
            groups[code] = group
            self._write(self._files, groups)
            self._groups = groups
        logger.info(f"Committed group {name!r} as {code} ({len(file_ids)} file(s))")
        return group

    def get_file(self, code: str) -> Optional[FileRecord]:
        return self._files.get(code)

    def get_group(self, code: str) -> Optional[GroupRecord]:
        return self._groups.get(code)
