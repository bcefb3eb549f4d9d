"""Streaming gzip filter for artifacts: compress on write, decompress on read."""

import gzip
import shutil
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

from common.constants import COMPRESSION_LEVEL, COMPRESSION_THRESHOLD_BYTES, STREAM_PIECE_SIZE

# errors a corrupt or truncated gzip stream can raise while reading
DECOMPRESSION_ERRORS = (OSError, EOFError, zlib.error)


def should_compress(requested: bool, size: int) -> bool:
    """Compression is only attempted when requested and size >= 10 KiB."""
    return bool(requested) and size >= COMPRESSION_THRESHOLD_BYTES


@contextmanager
def output_pipeline(dest: Path, compress: bool) -> Iterator[BinaryIO]:
    """
    Open the write side of an artifact.

    When ``compress`` is set, bytes written to the yielded object pass
    through a gzip compressor before reaching ``dest``. Both layers are
    flushed and closed on exit.

    Args:
        dest: Output file path
        compress: Wrap the file with a gzip filter

    Yields:
        Writable binary file object
    """
    with open(dest, 'wb') as sink:
        if compress:
            with gzip.GzipFile(fileobj=sink, mode='wb', compresslevel=COMPRESSION_LEVEL, mtime=0) as gz:
                yield gz
        else:
            yield sink


def compress_file(src: Path, dest: Path) -> int:
    """
    Gzip ``src`` into ``dest`` without loading it into memory.

    Returns:
        Size of ``dest`` in bytes
    """
    with open(src, 'rb') as source, output_pipeline(dest, compress=True) as out:
        shutil.copyfileobj(source, out, STREAM_PIECE_SIZE)
    return dest.stat().st_size


def iter_raw(path: Path, piece_size: int = STREAM_PIECE_SIZE) -> Iterator[bytes]:
    with open(path, 'rb') as f:
        while True:
            piece = f.read(piece_size)
            if not piece:
                break
            yield piece


def iter_decompressed(path: Path, piece_size: int = STREAM_PIECE_SIZE) -> Iterator[bytes]:
    """
    Stream the decompressed content of a gzip artifact.

    Raises:
        OSError, EOFError, zlib.error: If the data is not valid gzip
    """
    with gzip.open(path, 'rb') as f:
        while True:
            piece = f.read(piece_size)
            if not piece:
                break
            yield piece


def probe_gzip(path: Path) -> bool:
    """
    Check that a gzip artifact starts with a decodable header and block.

    Returns:
        True if the first piece decompresses cleanly
    """
    try:
        with gzip.open(path, 'rb') as f:
            f.read(STREAM_PIECE_SIZE)
        return True
    except DECOMPRESSION_ERRORS:
        return False
