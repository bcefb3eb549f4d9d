"""Utility functions for CLI operations."""

import math
import re
from typing import Optional
from urllib.parse import unquote

_DISPOSITION_FILENAME = re.compile(r'filename="([^"]*)"')


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def count_chunks(file_size: int, chunk_size: int) -> int:
    """Number of chunks needed to send ``file_size`` bytes."""
    return max(1, math.ceil(file_size / chunk_size))


def filename_from_disposition(header: Optional[str]) -> Optional[str]:
    """
    Extract the url-encoded filename from a Content-Disposition header.

    Returns:
        Decoded filename, or None if the header carries none
    """
    if not header:
        return None
    match = _DISPOSITION_FILENAME.search(header)
    if not match or not match.group(1):
        return None
    # never let a server-chosen name climb out of the output directory
    return unquote(match.group(1)).replace('/', '_').replace('\\', '_')
