from pathlib import Path
import os

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]

load_dotenv(ROOT / ".env")


def _int_list(raw: str) -> tuple[int, ...]:
    values = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        values.append(int(part))
    return tuple(sorted(set(values)))


DB_URL = os.getenv("RUNSTATS_DB_URL")
DB_PATH = Path(os.getenv("RUNSTATS_DB_PATH", ROOT / "data" / "runstats.db"))
API_HOST = os.getenv("RUNSTATS_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("RUNSTATS_API_PORT", "8000"))
RUN_MODE = os.getenv("RUN_MODE", "dev").lower()
TIMEZONE = os.getenv("RUNSTATS_TZ", "UTC")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "RUNSTATS_CORS_ORIGINS",
        "http://127.0.0.1:8788,http://localhost:8788",
    ).split(",")
    if origin.strip()
]

# Best efforts catalog (meters) and retained ranks per distance
TARGET_DISTANCES = _int_list(
    os.getenv("RUNSTATS_TARGET_DISTANCES", "1000,5000,10000,15000,20000,21097,30000,40000,42195")
)
BEST_EFFORT_RETENTION = int(os.getenv("RUNSTATS_BEST_EFFORT_RETENTION", "25"))
TOP_RANK_CUTOFF = int(os.getenv("RUNSTATS_TOP_RANK_CUTOFF", "25"))

# Segment validation
DISTANCE_TOLERANCE = float(os.getenv("RUNSTATS_DISTANCE_TOLERANCE", "0.05"))
MIN_PACE_SEC_PER_KM = float(os.getenv("RUNSTATS_MIN_PACE_SEC_PER_KM", "120"))
MAX_PACE_SEC_PER_KM = float(os.getenv("RUNSTATS_MAX_PACE_SEC_PER_KM", "720"))

# HR zones configuration (% of max HR)
HR_MAX = float(os.getenv("RUNSTATS_HR_MAX", "186"))
HR_ZONE_PCTS = (0.63, 0.71, 0.78, 0.85, 0.92)

# "Easy aerobic" pace band used by the monthly comparison (4:50-5:10/km)
TARGET_PACE_MIN_SEC = float(os.getenv("RUNSTATS_TARGET_PACE_MIN_SEC", "290"))
TARGET_PACE_MAX_SEC = float(os.getenv("RUNSTATS_TARGET_PACE_MAX_SEC", "310"))

# Time-based staleness window for session-driven kinds
FRESHNESS_SECONDS = int(os.getenv("RUNSTATS_FRESHNESS_SECONDS", "3600"))

# Per-kind computation locks
LOCK_DIR = Path(os.getenv("RUNSTATS_LOCK_DIR", "/tmp"))
LOCK_RETRIES = int(os.getenv("RUNSTATS_LOCK_RETRIES", "5"))
LOCK_RETRY_SEC = float(os.getenv("RUNSTATS_LOCK_RETRY_SEC", "0.5"))
LOCK_TTL_SECONDS = int(os.getenv("RUNSTATS_LOCK_TTL_SECONDS", str(60 * 30)))
