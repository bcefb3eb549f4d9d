"""Manages per-session chunk files on disk: write, stream and remove."""

import os
import secrets
import shutil
from pathlib import Path
from typing import Iterator, List

from common.constants import STREAM_PIECE_SIZE


class ChunkStore:
    """
    Scratch storage for chunked uploads.

    Layout: ``<root>/<session_id>/<index>``. A chunk file only appears
    under its final name once completely written, so its presence means
    the chunk is whole.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Ensure the chunks root directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def session_dir(self, session_id: str) -> Path:
        return self.root / session_id

    def create_session_dir(self, session_id: str) -> Path:
        """
        Allocate working storage for a session.

        Returns:
            Path of the session directory
        """
        path = self.session_dir(session_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_chunk_path(self, session_id: str, index: int) -> Path:
        return self.session_dir(session_id) / str(index)

    def write_chunk(self, session_id: str, index: int, data: bytes) -> None:
        """
        Durably write a chunk.

        Data goes to a temporary file that is fsynced and renamed into
        place, replacing any file already stored under the index. The
        registry decides whether an index is new; whatever is on disk
        for it is never trusted.

        Args:
            session_id: Upload session id
            index: Zero-based chunk index
            data: Chunk payload

        Raises:
            OSError: If the write fails
        """
        target = self.get_chunk_path(session_id, index)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_name(f".{index}.{secrets.token_hex(4)}.tmp")
        try:
            with open(tmp_path, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def chunk_exists(self, session_id: str, index: int) -> bool:
        return self.get_chunk_path(session_id, index).is_file()

    def read_chunk_streaming(
        self, session_id: str, index: int, piece_size: int = STREAM_PIECE_SIZE
    ) -> Iterator[bytes]:
        """
        Stream chunk data in pieces.

        Raises:
            FileNotFoundError: If the chunk does not exist
            OSError: If a read fails
        """
        with open(self.get_chunk_path(session_id, index), 'rb') as f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def list_chunk_indices(self, session_id: str) -> List[int]:
        """
        List chunk indices present on disk for a session, ascending.
        """
        path = self.session_dir(session_id)
        if not path.is_dir():
            return []
        return sorted(int(p.name) for p in path.iterdir() if p.name.isdigit())

    def remove_session(self, session_id: str) -> bool:
        """
        Delete a session's chunk directory.

        Returns:
            True if a directory was removed, False if there was none

        Raises:
            OSError: If removal fails
        """
        path = self.session_dir(session_id)
        if not path.exists():
            return False
        shutil.rmtree(path)
        return True

    def list_session_dirs(self) -> List[Path]:
        """List every session directory under the root."""
        if not self.root.is_dir():
            return []
        return [p for p in self.root.iterdir() if p.is_dir()]
