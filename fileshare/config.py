"""Configuration settings for the file share server."""

import os
from dataclasses import dataclass
from pathlib import Path

from common.constants import (
    DEFAULT_DATA_DIR,
    DEFAULT_HOST,
    DEFAULT_PORT,
    MAX_CHUNK_SIZE_BYTES,
    MAX_FILE_SIZE_BYTES,
    SESSION_TTL_SECONDS,
    SWEEP_INTERVAL_SECONDS,
)
from common.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    data_dir: Path
    db_path: Path
    uploads_dir: Path
    chunks_dir: Path
    max_file_bytes: int
    max_chunk_bytes: int
    session_ttl_seconds: int
    sweep_interval_seconds: int
    decompression_fallback: bool


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {raw!r} (using {default})")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    """
    Build settings from FILESHARE_* environment variables.

    Paths not given explicitly are placed under FILESHARE_DATA_DIR.
    """
    data_dir = Path(os.environ.get("FILESHARE_DATA_DIR", DEFAULT_DATA_DIR))

    return Settings(
        host=os.environ.get("FILESHARE_HOST", DEFAULT_HOST),
        port=_env_int("FILESHARE_PORT", DEFAULT_PORT),
        data_dir=data_dir,
        db_path=Path(os.environ.get("FILESHARE_DB_PATH", data_dir / "db.json")),
        uploads_dir=Path(os.environ.get("FILESHARE_UPLOADS_DIR", data_dir / "uploads")),
        chunks_dir=Path(os.environ.get("FILESHARE_CHUNKS_DIR", data_dir / "chunks")),
        max_file_bytes=_env_int("FILESHARE_MAX_FILE_BYTES", MAX_FILE_SIZE_BYTES),
        max_chunk_bytes=_env_int("FILESHARE_MAX_CHUNK_BYTES", MAX_CHUNK_SIZE_BYTES),
        session_ttl_seconds=_env_int("FILESHARE_SESSION_TTL_SECONDS", SESSION_TTL_SECONDS),
        sweep_interval_seconds=_env_int("FILESHARE_SWEEP_INTERVAL_SECONDS", SWEEP_INTERVAL_SECONDS),
        decompression_fallback=_env_bool("FILESHARE_DECOMPRESSION_FALLBACK", True),
    )
