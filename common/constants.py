"""Project-wide constants (size limits, thresholds, timing)."""

KIB: int = 1024
MIB: int = 1024 * KIB

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 5000
DEFAULT_DATA_DIR: str = "./data"

MAX_FILE_SIZE_BYTES: int = 100 * MIB  # single-shot upload limit
MAX_CHUNK_SIZE_BYTES: int = 15 * MIB  # per-chunk upload limit
DEFAULT_CHUNK_SIZE_BYTES: int = 5 * MIB  # client chunk size hint

COMPRESSION_THRESHOLD_BYTES: int = 10 * KIB
COMPRESSION_LEVEL: int = 6
COMPRESSED_MIMETYPE: str = "application/gzip"
DEFAULT_MIMETYPE: str = "application/octet-stream"

SESSION_TTL_SECONDS: int = 24 * 3600
SWEEP_INTERVAL_SECONDS: int = 3600

SHARE_CODE_BYTES: int = 3  # 6 hex characters
CODE_ALLOCATION_ATTEMPTS: int = 10

STREAM_PIECE_SIZE: int = 64 * KIB
