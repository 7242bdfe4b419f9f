"""Project-wide constants (default limits, timings, endpoints)."""

DEFAULT_SERVER_URL: str = "http://localhost:8080"

DEFAULT_PAGE_SIZE: int = 20
DASHBOARD_RECENT_FILES: int = 5

MAX_FILES_PER_DROP: int = 10
MAX_FILE_SIZE_BYTES: int = 32 * 1024 * 1024  # 32 MiB per file

# Progress stays below 100 until the server confirms the batch.
MAX_IN_FLIGHT_PROGRESS: int = 99
SUCCESS_EVICTION_SECONDS: float = 3.0

UPLOAD_READ_SIZE_BYTES: int = 64 * 1024
DOWNLOAD_CHUNK_SIZE_BYTES: int = 8192

DEFAULT_MIME_TYPE: str = "application/octet-stream"
