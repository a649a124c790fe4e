"""Project-wide constants (chunk sizing, retry policy, storage naming)."""

CHUNK_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MiB per chunk
LARGE_FILE_THRESHOLD_BYTES: int = 50 * 1024 * 1024  # files above this go through the chunked path
MAX_CHUNK_BYTES: int = 50 * 1024 * 1024  # largest request body the chunk endpoint accepts

MAX_CONCURRENT_CHUNKS: int = 3
SMALL_FILE_CONCURRENCY: int = 4

MAX_CHUNK_RETRIES: int = 5
BASE_RETRY_DELAY_SECONDS: float = 1.0
MAX_RETRY_DELAY_SECONDS: float = 30.0
RETRY_JITTER_RATIO: float = 0.3
CHUNK_TIMEOUT_SECONDS: float = 60.0
COMPLETED_UPLOAD_TTL_SECONDS: float = 15 * 60.0  # how long a reassembled upload answers late chunk retries

CHUNKS_DIR_NAME: str = ".chunks"
CHUNK_PART_SEPARATOR: str = ".part"
ASSEMBLING_SUFFIX: str = ".assembling"
SCRATCH_SUFFIX: str = ".tmp"

LEDGER_KEY_PREFIX: str = "upload_progress_"

VIDEO_EXTENSIONS: tuple[str, ...] = (".mp4", ".mkv", ".mov", ".avi", ".wmv", ".flv", ".webm", ".m4v")

DEFAULT_UPLOADS_DIR: str = "./uploads"
DEFAULT_SERVER_HOST: str = "0.0.0.0"
DEFAULT_SERVER_PORT: int = 5000
