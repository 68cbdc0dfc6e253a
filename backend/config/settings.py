"""
Central configuration for backend settings.
"""
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Path buffering radius (meters) applied to drawn/recorded/imported tracks
BUFFER_RADIUS_M: float = float(os.getenv("EXPLORE_BUFFER_RADIUS_M", "15"))

# Holes are only considered city blocks strictly inside this band (square meters)
MIN_BLOCK_AREA_M2: float = float(os.getenv("EXPLORE_MIN_BLOCK_AREA_M2", "50"))
MAX_BLOCK_AREA_M2: float = float(os.getenv("EXPLORE_MAX_BLOCK_AREA_M2", "5000000"))

# Concurrent street lookups per batch (Overpass informal budget is ~2 req/s)
ORACLE_BATCH_SIZE: int = int(os.getenv("EXPLORE_ORACLE_BATCH_SIZE", "3"))

# Overpass street oracle
ORACLE_URL: str = os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")
ORACLE_TIMEOUT_S: float = float(os.getenv("OVERPASS_TIMEOUT_S", "25"))
# Answer used when a lookup fails. False fills the block, True keeps the hole.
ORACLE_FAIL_SAFE_HAS_STREETS: bool = _env_bool("OVERPASS_FAIL_SAFE_HAS_STREETS", False)

# Per-part progress messages are only emitted above this many polygons
MULTIPOLYGON_PROGRESS_THRESHOLD: int = 5

# Persisted progress metadata
APP_VERSION: str = os.getenv("EXPLORE_APP_VERSION", "1.1")
EXPORT_DESCRIPTION: str = "TrailBlazer - Cleared Area"

# Leave fail-safe answers out of the block cache so later scans ask Overpass again
ORACLE_RETRY_FAILED_LOOKUPS: bool = _env_bool("OVERPASS_RETRY_FAILED_LOOKUPS", False)

# Logging: rotating explorer.log under LOG_DIR plus an in-memory buffer for /api/logs
LOG_DIR: str = os.getenv("LOG_DIR", os.path.join(os.path.dirname(__file__), "..", "logs"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE_MAX_BYTES: int = int(os.getenv("LOG_FILE_MAX_BYTES", "5000000"))
LOG_FILE_BACKUPS: int = int(os.getenv("LOG_FILE_BACKUPS", "5"))
LOG_BUFFER_SIZE: int = int(os.getenv("RING_BUFFER_SIZE", "2000"))
LOG_BUFFER_MIN_LEVEL: str = os.getenv("RING_BUFFER_MIN_LEVEL", "INFO").upper()
