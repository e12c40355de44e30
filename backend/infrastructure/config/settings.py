import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# The project-root .env is the primary development config source and must win
# over stale shell variables.
load_dotenv(override=True)


def _get_env_int(key: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"environment variable {key} expects an integer, got {raw}") from exc


def _get_env_float(key: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"environment variable {key} expects a float, got {raw}") from exc


def _get_env_path(key: str, default: Path) -> Path:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw.strip()).expanduser()


# ===== Base paths =====
#
# NOTE:
# - All backend code lives under `<repo>/backend/`.
# - Runtime artifacts (collection document, backups, photo drops) live under
#   `<repo>/data` and `<repo>/sources`, never under `<repo>/backend/`.

INFRASTRUCTURE_DIR = Path(__file__).resolve().parent.parent  # backend/infrastructure/
_BACKEND_DIR = INFRASTRUCTURE_DIR.parent  # backend/

if _BACKEND_DIR.name == "backend":
    PROJECT_ROOT = _BACKEND_DIR.parent
else:
    PROJECT_ROOT = Path.cwd()


# ===== Collection store =====

DATA_DIR = _get_env_path("DATA_DIR", PROJECT_ROOT / "data")
MOVIES_FILE_NAME = os.getenv("MOVIES_FILE_NAME", "movies.json").strip() or "movies.json"
MOVIES_MAX_BACKUPS = _get_env_int("MOVIES_MAX_BACKUPS", 10) or 10
COLLECTION_VERSION = "1.0"


# ===== Photo import =====

SOURCES_DIR = _get_env_path("SOURCES_DIR", PROJECT_ROOT / "sources")
PROCESSED_DIR = _get_env_path("PROCESSED_DIR", SOURCES_DIR / "processed")
DEFAULT_CSV_FILE_NAME = os.getenv("DEFAULT_CSV_FILE_NAME", "Movie-List-Cabinet-Photos.csv").strip()

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

# Bounded pending queue for watched photo drops.
PHOTO_QUEUE_MAX = _get_env_int("PHOTO_QUEUE_MAX", 100) or 100
# A dropped file must keep the same size for this long before it is analyzed.
PHOTO_STABILITY_S = _get_env_float("PHOTO_STABILITY_S", 2.0)
PHOTO_STABILITY_POLL_S = _get_env_float("PHOTO_STABILITY_POLL_S", 0.1) or 0.1
# Auto-added candidates below this confidence get a visible confidence note.
AUTO_ACCEPT_CONFIDENCE = _get_env_float("AUTO_ACCEPT_CONFIDENCE", 0.9)
PHOTO_STATUS_HISTORY = _get_env_int("PHOTO_STATUS_HISTORY", 50) or 50


# ===== Vision (Anthropic Messages API) =====

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "").strip()
ANTHROPIC_BASE_URL = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com").strip()
ANTHROPIC_VERSION = os.getenv("ANTHROPIC_VERSION", "2023-06-01").strip()
VISION_MODEL = os.getenv("VISION_MODEL", "claude-sonnet-4-20250514").strip()
VISION_MAX_TOKENS = _get_env_int("VISION_MAX_TOKENS", 4096) or 4096
VISION_TIMEOUT_S = _get_env_float("VISION_TIMEOUT_S", 120.0) or 120.0


# ===== Barcode / product lookup =====

UPCITEMDB_LOOKUP_URL = os.getenv(
    "UPCITEMDB_LOOKUP_URL", "https://api.upcitemdb.com/prod/trial/lookup"
).strip()
UPCITEMDB_TIMEOUT_S = _get_env_float("UPCITEMDB_TIMEOUT_S", 10.0) or 10.0
HTTP_USER_AGENT = os.getenv("HTTP_USER_AGENT", "MovieCollection/1.0").strip()

# TMDB API
TMDB_BASE_URL = os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3").strip()
TMDB_API_TOKEN = os.getenv("TMDB_API_TOKEN", "").strip()
TMDB_API_KEY = os.getenv("TMDB_API_KEY", "").strip()
TMDB_TIMEOUT_S = _get_env_float("TMDB_TIMEOUT_S", 5.0) or 5.0
