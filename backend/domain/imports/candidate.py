from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

DEFAULT_CONFIDENCE = 0.5


def _as_float(value: Any, default: float) -> float:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    if f != f:  # NaN
        return default
    return f


@dataclass(frozen=True)
class MovieCandidate:
    """An unconfirmed detection from vision, barcode or CSV; not yet a MovieRecord."""

    title: str
    format: str = "DVD"
    notes: str = ""
    genre: str = ""
    release_date: str = ""
    actors: str = ""
    # 0.0-1.0 detection certainty
    confidence: float = DEFAULT_CONFIDENCE

    @classmethod
    def from_payload(cls, raw: dict[str, Any], *, default_confidence: float = DEFAULT_CONFIDENCE) -> "MovieCandidate":
        """Accept both camelCase (vision/HTTP) and snake_case keys."""
        release = raw.get("releaseDate", raw.get("release_date"))
        confidence = raw.get("confidence")
        return cls(
            title=str(raw.get("title") or "").strip(),
            format=str(raw.get("format") or "DVD"),
            notes=str(raw.get("notes") or ""),
            genre=str(raw.get("genre") or ""),
            release_date=str(release or ""),
            actors=str(raw.get("actors") or ""),
            confidence=_as_float(confidence, default_confidence) if confidence else default_confidence,
        )

    def with_notes(self, notes: str) -> "MovieCandidate":
        return replace(self, notes=notes)

    def to_record_data(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "format": self.format,
            "notes": self.notes,
            "genre": self.genre,
            "releaseDate": self.release_date,
            "actors": self.actors,
        }

    def to_dict(self) -> dict[str, Any]:
        return {**self.to_record_data(), "confidence": self.confidence}


@dataclass(frozen=True)
class ReconciledCandidate:
    candidate: MovieCandidate
    is_duplicate: bool = False
    existing_title: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.candidate.to_dict(),
            "isDuplicate": self.is_duplicate,
            "existingTitle": self.existing_title,
        }


@dataclass(frozen=True)
class SkippedCandidate:
    candidate: MovieCandidate
    reason: str = "duplicate"
    existing_title: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.candidate.to_dict(),
            "reason": self.reason,
            "existingTitle": self.existing_title,
        }
