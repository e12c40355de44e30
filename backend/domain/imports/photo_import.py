from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from domain.collection.movie_record import MovieRecord
from domain.imports.candidate import MovieCandidate, SkippedCandidate


class PhotoImportState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCESS = "success"
    NO_MOVIES_FOUND = "no_movies_found"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (PhotoImportState.SUCCESS, PhotoImportState.NO_MOVIES_FOUND, PhotoImportState.ERROR)


@dataclass(frozen=True)
class PhotoImportEvent:
    """A state transition for one submitted image."""

    file: str
    state: PhotoImportState
    added: int = 0
    skipped: int = 0
    detected: int = 0
    # barcode | vision
    detector: Optional[str] = None
    error: Optional[str] = None
    needs_setup: bool = False
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "file": self.file,
            "status": self.state.value,
            "at": self.at.isoformat(),
        }
        if self.state.is_terminal:
            out.update({"added": self.added, "skipped": self.skipped, "detected": self.detected})
        if self.detector:
            out["detector"] = self.detector
        if self.error:
            out["error"] = self.error
        if self.needs_setup:
            out["needsSetup"] = True
        return out


@dataclass(frozen=True)
class AutoCommitResult:
    added: list[MovieRecord] = field(default_factory=list)
    skipped: list[SkippedCandidate] = field(default_factory=list)


@dataclass(frozen=True)
class PhotoImportResult:
    file: str
    state: PhotoImportState
    movies: list[MovieCandidate] = field(default_factory=list)
    added: list[MovieRecord] = field(default_factory=list)
    skipped: list[SkippedCandidate] = field(default_factory=list)
    detector: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "file": self.file,
            "status": self.state.value,
            "movies": [m.to_dict() for m in self.movies],
            "added": len(self.added),
            "skipped": [s.to_dict() for s in self.skipped],
        }
        if self.detector:
            out["detector"] = self.detector
        if self.error:
            out["error"] = self.error
        return out
