from __future__ import annotations

import re
from typing import Any, Optional

from domain.collection.errors import MovieValidationError

ALLOWED_FORMATS: tuple[str, ...] = ("dvd", "bluray", "4k", "mixed", "bluray_4k")
ALLOWED_UPGRADE_TARGETS: tuple[Optional[str], ...] = ("4k", "bluray", None)
ALLOWED_SOURCES: tuple[str, ...] = ("manual", "csv_import", "photo_import")

DEFAULT_FORMAT = "dvd"

MAX_TITLE_LENGTH = 500
MAX_NOTES_LENGTH = 2000

_YEAR_RE = re.compile(r"^\d{4}$")

# Ordered (keywords, format) rules; every keyword must appear. First match wins.
FORMAT_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("blu", "4k"), "bluray_4k"),
    (("dvd", "blu"), "mixed"),
    (("4k",), "4k"),
    (("ultra hd",), "4k"),
    (("blu",), "bluray"),
    (("dvd",), "dvd"),
)


def normalize_format(value: Any) -> str:
    """Coerce free-form format text ("Blu-ray", "4K Ultra HD", ...) into ALLOWED_FORMATS."""
    if value is None:
        return DEFAULT_FORMAT
    f = str(value).strip().lower()
    if not f:
        return DEFAULT_FORMAT
    if f in ALLOWED_FORMATS:
        return f
    for keywords, result in FORMAT_RULES:
        if all(k in f for k in keywords):
            return result
    return DEFAULT_FORMAT


def coerce_upgrade_target(value: Any, *, fallback: Optional[str] = None) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str) and value in ALLOWED_UPGRADE_TARGETS:
        return value
    return fallback


def coerce_release_date(value: Any) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    return s if _YEAR_RE.match(s) else ""


def coerce_source(value: Any) -> str:
    s = str(value or "").strip()
    return s if s in ALLOWED_SOURCES else "manual"


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def coerce_text(value: Any) -> str:
    return "" if value is None else str(value)


def sanitize_source_file(value: Any) -> Optional[str]:
    """Keep only the basename; records never reference a server path."""
    if not value:
        return None
    name = str(value).replace("\\", "/").rsplit("/", 1)[-1].strip()
    if name in ("", ".", ".."):
        return None
    return name


def validate_limits(*, title: Any = None, notes: Any = None, require_title: bool = False) -> None:
    """Hard limits shared by manual create/update and import confirm."""
    if require_title and not str(title or "").strip():
        raise MovieValidationError("Title is required")
    if title is not None and len(str(title)) > MAX_TITLE_LENGTH:
        raise MovieValidationError("Title exceeds maximum length")
    if notes is not None and len(str(notes)) > MAX_NOTES_LENGTH:
        raise MovieValidationError("Notes exceed maximum length")
