"""Utility helper functions for the file share server."""

import re
import secrets
import time
import uuid
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Callable

from common.constants import CODE_ALLOCATION_ATTEMPTS, SHARE_CODE_BYTES
from fileshare.exceptions import CodeAllocationError

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def random_code() -> str:
    """
    Generate a share code of 2 * SHARE_CODE_BYTES lowercase hex characters.

    With 3 random bytes the code space holds 16**6 (~16.8 million) codes.
    Drawing n codes independently collides with probability of roughly
    n**2 / (2 * 16**6): about 0.3% after 1,000 codes and 45% after 4,000,
    which is why allocation goes through ``allocate_code``.

    Returns:
        Random share code, e.g. "3fa9c1"
    """
    return secrets.token_hex(SHARE_CODE_BYTES)


def allocate_code(
    is_taken: Callable[[str], bool],
    generator: Callable[[], str] = random_code,
    attempts: int = CODE_ALLOCATION_ATTEMPTS,
) -> str:
    """
    Draw share codes until one is not already in use.

    Args:
        is_taken: Predicate telling whether a code already names a file or group
        generator: Code source (injectable for tests)
        attempts: Maximum number of draws

    Returns:
        An unused share code

    Raises:
        CodeAllocationError: If every draw collided
    """
    for _ in range(attempts):
        code = generator()
        if not is_taken(code):
            return code
    raise CodeAllocationError(f"Could not allocate a unique share code after {attempts} attempts")


def generate_session_id() -> str:
    """Generate a server-issued upload session id."""
    return uuid.uuid4().hex


def is_valid_session_id(session_id: str) -> bool:
    """Session ids name a scratch directory, so only a safe charset is allowed."""
    return bool(SESSION_ID_PATTERN.match(session_id or ""))


def now_ms() -> int:
    return int(time.time() * 1000)


def get_current_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        Timestamp such as "2024-01-01T12:00:00.000Z"
    """
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_stored_filename(prefix: str, original_filename: str, compressed: bool = False) -> str:
    """
    Build a unique artifact filename that keeps the original extension.

    Args:
        prefix: "file" for single-shot uploads, "chunked" for assembled ones
        original_filename: Client-supplied filename
        compressed: Append ".gz" when the artifact is gzip data

    Returns:
        Filename such as "chunked-1700000000000-9f2c41d0.pdf.gz"
    """
    ext = PurePath(original_filename or "").suffix
    # extensions can carry path separators on hostile input
    if not re.match(r"^\.[A-Za-z0-9_-]{1,16}$", ext):
        ext = ""
    name = f"{prefix}-{now_ms()}-{secrets.token_hex(4)}{ext}"
    return f"{name}.gz" if compressed else name


def compression_ratio(original_size: int, stored_size: int) -> float:
    """original/stored, rounded to two decimals (informational only)."""
    if stored_size <= 0:
        return 0.0
    return round(original_size / stored_size, 2)
