from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol


class SourceArchivePort(Protocol):
    def resolve_source(self, file_name: str) -> Optional[Path]:
        """Map an upload/drop basename onto a path inside the sources dir (None if it escapes)."""
        ...

    def archive(self, source: Path | str) -> Optional[Path]:
        """Move a source artifact into the processed dir; no-op (None) when it is already gone."""
        ...
