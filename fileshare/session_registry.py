"""Registry of in-progress chunked upload sessions."""

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from common.constants import DEFAULT_CHUNK_SIZE_BYTES, DEFAULT_MIMETYPE, SESSION_TTL_SECONDS
from common.logging_config import get_logger
from fileshare.chunk_store import ChunkStore
from fileshare.exceptions import EmptyChunkError, InvalidParamsError, UnknownSessionError
from fileshare.utils import generate_session_id, is_valid_session_id

logger = get_logger(__name__)


@dataclass
class UploadSession:
    """
    Bookkeeping for one in-progress chunked upload.

    ``received`` holds indices whose chunk file is on disk; ``pending``
    holds indices whose write is in flight.
    """
    session_id: str
    filename: str
    total_chunks: int
    total_size: int
    content_type: str
    chunk_size: int
    created_at: float
    work_dir: Path
    received: Set[int] = field(default_factory=set)
    pending: Set[int] = field(default_factory=set)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def received_count(self) -> int:
        return len(self.received)

    def is_complete(self) -> bool:
        return len(self.received) == self.total_chunks


@dataclass(frozen=True)
class ChunkReceipt:
    """Outcome of a chunk upload."""
    received_chunks: int
    total_chunks: int
    duplicate: bool = False


class UploadSessionRegistry:
    """
    Lock-guarded table of upload sessions.

    The table lock covers every read-modify-write on a session's index
    sets. Chunk bytes are written outside it so that different indices
    of one session are stored in parallel. Each session additionally
    carries its own lock, held by the assembler for the whole of a
    completion.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            chunk_store: Scratch storage for session chunks
            ttl_seconds: Age after which the sweep evicts a session
            clock: Returns the current time in epoch seconds
        """
        self.chunk_store = chunk_store
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._sessions: Dict[str, UploadSession] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    async def init_session(
        self,
        filename: str,
        total_chunks: int,
        total_size: int,
        content_type: Optional[str] = None,
        session_id: Optional[str] = None,
        chunk_size: Optional[int] = None,
    ) -> UploadSession:
        """
        Create a session with an empty received set.

        Re-initialising a live session id with the same filename, chunk
        count and size returns that session unchanged. Different
        parameters replace it, dropping the chunks it had received. Any
        chunk files already on disk under the id are removed before a new
        session starts.

        Raises:
            InvalidParamsError: On missing filename, non-positive counts, a bad
                id, or re-initialising a session that is mid-write or completing
        """
        if not filename or not str(filename).strip():
            raise InvalidParamsError("filename is required")
        if total_chunks is None or total_chunks <= 0:
            raise InvalidParamsError("totalChunks must be a positive integer")
        if total_size is None or total_size <= 0:
            raise InvalidParamsError("fileSize must be a positive integer")
        if session_id is None:
            session_id = generate_session_id()
        elif not is_valid_session_id(session_id):
            raise InvalidParamsError("uploadId may only contain letters, digits, '-' and '_'")

        async with self._lock:
            existing = self._sessions.get(session_id)
            if existing is not None:
                if (existing.filename, existing.total_chunks, existing.total_size) == (
                    filename, total_chunks, total_size
                ):
                    logger.info(f"Upload {session_id} already initialized, reusing session")
                    return existing
                if existing.pending or existing.lock.locked():
                    raise InvalidParamsError(
                        f"Upload {session_id} is busy and cannot be re-initialized"
                    )
                logger.info(
                    f"Upload {session_id} re-initialized with new parameters, "
                    f"discarding {existing.received_count} received chunk(s)"
                )
                del self._sessions[session_id]

            await asyncio.to_thread(self.chunk_store.remove_session, session_id)
            work_dir = await asyncio.to_thread(self.chunk_store.create_session_dir, session_id)
            session = UploadSession(
                session_id=session_id,
                filename=filename,
                total_chunks=total_chunks,
                total_size=total_size,
                content_type=content_type or DEFAULT_MIMETYPE,
                chunk_size=chunk_size or DEFAULT_CHUNK_SIZE_BYTES,
                created_at=self.clock(),
                work_dir=work_dir,
            )
            self._sessions[session_id] = session

        logger.info(f"Upload initialized: {filename}, {total_chunks} chunks, {total_size} bytes [upload_id={session_id}]")
        return session

    async def get(self, session_id: str) -> UploadSession:
        """
        Raises:
            UnknownSessionError: If the session is not registered
        """
        async with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        return session

    async def accept_chunk(self, session_id: str, index: int, payload: bytes) -> ChunkReceipt:
        """
        Store one chunk and mark its index received.

        An index that is already received (or being written) is reported
        as a duplicate and not stored again.

        Raises:
            UnknownSessionError: If the session is not registered
            InvalidParamsError: If index is outside [0, total_chunks)
            EmptyChunkError: If payload is empty
            OSError: If the chunk cannot be written
        """
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise UnknownSessionError(session_id)
            if index < 0 or index >= session.total_chunks:
                raise InvalidParamsError(
                    f"chunkIndex {index} out of range for {session.total_chunks} chunks"
                )
            if index in session.received or index in session.pending:
                logger.info(f"Duplicate chunk {index} for upload {session_id} ignored")
                return ChunkReceipt(session.received_count, session.total_chunks, duplicate=True)
            if not payload:
                raise EmptyChunkError("Empty chunk received")
            session.pending.add(index)

        try:
            await asyncio.to_thread(self.chunk_store.write_chunk, session_id, index, payload)
        except OSError:
            async with self._lock:
                session.pending.discard(index)
            logger.error(f"Failed to store chunk {index} for upload {session_id}", exc_info=True)
            raise

        async with self._lock:
            session.pending.discard(index)
            current = self._sessions.get(session_id)
            registered = current is session
            if registered:
                session.received.add(index)
            receipt = ChunkReceipt(session.received_count, session.total_chunks)

        if not registered:
            # evicted while the write was in flight; a newer session under
            # the same id owns the directory now
            if current is None:
                await asyncio.to_thread(self._remove_storage, session_id)
            raise UnknownSessionError(session_id)

        if receipt.received_chunks % 5 == 0 or receipt.received_chunks == receipt.total_chunks:
            logger.info(
                f"Upload {session_id}: {receipt.received_chunks}/{receipt.total_chunks} chunks received"
            )
        return receipt

    async def forget_chunk(self, session_id: str, index: int) -> None:
        """Drop an index from the received set so the chunk can be sent again."""
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.received.discard(index)

    async def is_complete(self, session_id: str) -> bool:
        """
        Raises:
            UnknownSessionError: If the session is not registered
        """
        session = await self.get(session_id)
        async with self._lock:
            return session.is_complete()

    async def evict(self, session_id: str) -> bool:
        """
        Remove a session and its chunk storage. Idempotent.

        Returns:
            True if a session was registered under this id
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        await asyncio.to_thread(self._remove_storage, session_id)
        return session is not None

    async def evict_expired(self) -> List[str]:
        """
        Evict every session older than the retention window.

        Sessions in the middle of a completion are skipped. Chunk
        directories left behind with no live session (e.g. from before a
        restart) are removed once they are older than the window too.

        Returns:
            Ids of evicted sessions
        """
        now = self.clock()
        cutoff = now - self.ttl_seconds

        async with self._lock:
            expired = [
                sid for sid, session in self._sessions.items()
                if session.created_at < cutoff and not session.lock.locked()
            ]
            for sid in expired:
                del self._sessions[sid]
            live = set(self._sessions)

        for sid in expired:
            await asyncio.to_thread(self._remove_storage, sid)
            logger.info(f"Cleaned up abandoned upload: {sid}")

        for path in await asyncio.to_thread(self.chunk_store.list_session_dirs):
            if path.name in live or path.name in expired:
                continue
            try:
                if path.stat().st_mtime >= cutoff:
                    continue
            except OSError:
                continue
            await asyncio.to_thread(self._remove_storage, path.name)
            logger.info(f"Removed orphaned chunk directory: {path.name}")

        return expired

    def _remove_storage(self, session_id: str) -> None:
        try:
            self.chunk_store.remove_session(session_id)
        except OSError as e:
            logger.error(f"Failed to clean up chunks for upload {session_id}: {e}")
