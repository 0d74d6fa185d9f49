import os


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default)


def _env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


def _env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return float(val)


# Timeouts (seconds)
REQUEST_TIMEOUT = _env_float("AUDIT_REQUEST_TIMEOUT", 30)
SECONDARY_TIMEOUT = _env_float("AUDIT_SECONDARY_TIMEOUT", 5)
LINK_TIMEOUT = _env_float("AUDIT_LINK_TIMEOUT", 5)
PIPELINE_TIMEOUT = _env_float("AUDIT_PIPELINE_TIMEOUT", 60)
MAX_REDIRECTS = _env_int("AUDIT_MAX_REDIRECTS", 10)

# Concurrency
EXTRACTOR_WORKERS = _env_int("AUDIT_EXTRACTOR_WORKERS", 8)
LINK_CHECK_CONCURRENCY = _env_int("AUDIT_LINK_CHECK_CONCURRENCY", 10)
MAX_LINKS_TO_CHECK = _env_int("AUDIT_MAX_LINKS_TO_CHECK", 100)
AUDIT_WORKERS = _env_int("AUDIT_WORKERS", 4)
AUDIT_QUEUE_SIZE = _env_int("AUDIT_QUEUE_SIZE", 100)
# per client address, slowapi syntax
AUDIT_RATE_LIMIT = _env_str("AUDIT_RATE_LIMIT", "10/hour")

# Ideal length bands
TITLE_MIN_LENGTH = _env_int("AUDIT_TITLE_MIN_LENGTH", 45)
TITLE_MAX_LENGTH = _env_int("AUDIT_TITLE_MAX_LENGTH", 60)
DESCRIPTION_MIN_LENGTH = _env_int("AUDIT_DESCRIPTION_MIN_LENGTH", 120)
DESCRIPTION_MAX_LENGTH = _env_int("AUDIT_DESCRIPTION_MAX_LENGTH", 160)

SLOW_LOAD_TIME_MS = _env_int("AUDIT_SLOW_LOAD_TIME_MS", 3000)
ROBOTS_MAX_CHARS = _env_int("AUDIT_ROBOTS_MAX_CHARS", 5000)

# Score penalties (start at 100, subtract per detected issue)
PENALTY_MISSING_TITLE = 10
PENALTY_MISSING_DESCRIPTION = 10
PENALTY_TITLE_TOO_LONG = 5
PENALTY_DESCRIPTION_TOO_LONG = 5
PENALTY_MISSING_H1 = 10
PENALTY_MULTIPLE_H1 = 5
PENALTY_IMAGE_MISSING_ALT = 2
PENALTY_IMAGES_MAX = 20
PENALTY_SLOW_LOAD = 10

# Empty means the in-memory store
DATABASE_URL = _env_str("DATABASE_URL", "")
LOG_LEVEL = _env_str("LOG_LEVEL", "INFO")

USER_AGENT = _env_str(
    "AUDIT_USER_AGENT",
    "Mozilla/5.0 (compatible; SiteAudit/1.0; +https://github.com/site-audit)",
)
