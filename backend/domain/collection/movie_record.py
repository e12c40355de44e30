from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class MovieRecord:
    """A physical disc in the collection.

    Attribute names are snake_case; the persisted document and the HTTP API
    use the camelCase keys produced by `to_dict`.
    """

    id: str
    title: str
    format: str = "dvd"
    notes: str = ""
    want_to_upgrade: bool = False
    # 4k | bluray | None
    upgrade_target: Optional[str] = None
    genre: str = ""
    release_date: str = ""
    actors: str = ""
    date_added: str = ""
    date_modified: str = ""
    # manual | csv_import | photo_import
    source: str = "manual"
    source_file: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "format": self.format,
            "notes": self.notes,
            "wantToUpgrade": self.want_to_upgrade,
            "upgradeTarget": self.upgrade_target,
            "genre": self.genre,
            "releaseDate": self.release_date,
            "actors": self.actors,
            "dateAdded": self.date_added,
            "dateModified": self.date_modified,
            "source": self.source,
            "sourceFile": self.source_file,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "MovieRecord":
        """Rebuild a record from the persisted document (values are trusted as stored)."""
        return cls(
            id=str(raw.get("id") or ""),
            title=str(raw.get("title") or ""),
            format=str(raw.get("format") or "dvd"),
            notes=str(raw.get("notes") or ""),
            want_to_upgrade=bool(raw.get("wantToUpgrade") or False),
            upgrade_target=raw.get("upgradeTarget"),
            genre=str(raw.get("genre") or ""),
            release_date=str(raw.get("releaseDate") or ""),
            actors=str(raw.get("actors") or ""),
            date_added=str(raw.get("dateAdded") or ""),
            date_modified=str(raw.get("dateModified") or ""),
            source=str(raw.get("source") or "manual"),
            source_file=raw.get("sourceFile"),
        )
