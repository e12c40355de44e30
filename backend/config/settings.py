import os

from dotenv import load_dotenv

# Service-side settings: focus on HTTP/runtime switches.
# Infrastructure env/path settings live under `backend/infrastructure/config/`.
load_dotenv(override=True)


def _get_env_int(key: str, default: int) -> int:
    """Read an integer env var; default when unset."""
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"environment variable {key} expects an integer, got {raw}") from exc


def _get_env_bool(key: str, default: bool) -> bool:
    """Read a boolean env var (true/false/1/0/yes/no/on/off)."""
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    return raw.lower() in {"1", "true", "y", "yes", "on"}


# ===== FastAPI / Uvicorn =====

SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = _get_env_int("SERVER_PORT", 3000)
SERVER_RELOAD = _get_env_bool("SERVER_RELOAD", False)
SERVER_LOG_LEVEL = os.getenv("SERVER_LOG_LEVEL", "info")

# The collection cache and the photo queue live in-process: exactly one worker.
UVICORN_CONFIG = {
    "host": SERVER_HOST,
    "port": SERVER_PORT,
    "reload": SERVER_RELOAD,
    "log_level": SERVER_LOG_LEVEL,
    "workers": 1,
}

# ===== Runtime =====

APP_ENV = os.getenv("APP_ENV", "development").strip().lower() or "development"
# In production unexpected errors are reported as "Internal server error".
IS_PRODUCTION = APP_ENV == "production"

# Start the sources-dir watcher on startup (photo drops are imported automatically).
PHOTO_WATCHER_ENABLE = _get_env_bool("PHOTO_WATCHER_ENABLE", True)

# ===== Uploads =====

UPLOAD_MAX_BYTES = _get_env_int("UPLOAD_MAX_BYTES", 20 * 1024 * 1024) or 20 * 1024 * 1024
UPLOAD_ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
