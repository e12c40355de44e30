from __future__ import annotations

import logging
import os
import shutil
import time
from pathlib import Path
from typing import List, Optional, Sequence

from application.ports.source_archive_port import SourceArchivePort

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "upload-"


def sanitize_filename(name: str) -> str:
    """Basename only; both separators are treated as path components."""
    return os.path.basename(str(name or "").replace("\\", "/")).strip()


def is_path_within(path: Path, directory: Path) -> bool:
    resolved = Path(path).resolve()
    root = Path(directory).resolve()
    return resolved == root or root in resolved.parents


def has_allowed_extension(name: str, extensions: Sequence[str]) -> bool:
    return Path(name).suffix.lower() in tuple(e.lower() for e in extensions)


def upload_file_name(original_name: str) -> str:
    """`upload-<epoch ms><ext>`; the client-supplied name only contributes its extension."""
    ext = Path(sanitize_filename(original_name)).suffix.lower()
    return f"{UPLOAD_PREFIX}{int(time.time() * 1000)}{ext}"


class SourceFileArchive(SourceArchivePort):
    """Import artifacts: `<sources>/` holds pending drops, `<processed>/` the archived ones."""

    def __init__(self, *, sources_dir: Path, processed_dir: Path, image_extensions: Sequence[str]) -> None:
        self._sources_dir = Path(sources_dir)
        self._processed_dir = Path(processed_dir)
        self._image_extensions = tuple(image_extensions)

    @property
    def sources_dir(self) -> Path:
        return self._sources_dir

    @property
    def processed_dir(self) -> Path:
        return self._processed_dir

    def ensure_directories(self) -> None:
        self._sources_dir.mkdir(parents=True, exist_ok=True)
        self._processed_dir.mkdir(parents=True, exist_ok=True)

    def is_image(self, name: str | Path) -> bool:
        return has_allowed_extension(str(name), self._image_extensions)

    def resolve_source(self, file_name: str) -> Optional[Path]:
        name = sanitize_filename(file_name)
        if not name or name in (".", ".."):
            return None
        candidate = self._sources_dir / name
        if not is_path_within(candidate, self._sources_dir):
            return None
        return candidate

    def archive(self, source: Path | str) -> Optional[Path]:
        src = Path(source)
        if not src.exists():
            logger.debug("Nothing to archive, %s is gone", src)
            return None
        if not is_path_within(src, self._sources_dir):
            logger.warning("Refusing to archive %s: outside %s", src, self._sources_dir)
            return None

        self._processed_dir.mkdir(parents=True, exist_ok=True)
        dest = self._processed_dir / src.name
        shutil.move(str(src), str(dest))
        logger.info("Archived %s -> %s", src.name, self._processed_dir)
        return dest

    def list_pending_images(self) -> List[str]:
        if not self._sources_dir.is_dir():
            return []
        return sorted(p.name for p in self._sources_dir.iterdir() if p.is_file() and self.is_image(p.name))

    def save_upload(self, original_name: str, content: bytes) -> Path:
        self._sources_dir.mkdir(parents=True, exist_ok=True)
        dest = self._sources_dir / upload_file_name(original_name)
        dest.write_bytes(content)
        return dest

    @staticmethod
    def discard(path: Optional[Path]) -> None:
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            pass
