from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

from application.ports.movie_store_port import MovieStorePort
from domain.collection import (
    CollectionCorruptedError,
    MovieFilters,
    MovieRecord,
    apply_filters,
)
from domain.collection.formats import (
    coerce_bool,
    coerce_release_date,
    coerce_source,
    coerce_text,
    coerce_upgrade_target,
    normalize_format,
    sanitize_source_file,
    validate_limits,
)

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "movies-"
BACKUP_SUFFIX = ".json"

# byFormat keys reported by get_stats(); bluray_4k gets its own bucket.
STATS_FORMAT_KEYS = ("dvd", "bluray", "4k", "mixed", "bluray_4k")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _backup_stamp() -> str:
    # Lexicographic order == chronological order.
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")


class JsonMovieStore(MovieStorePort):
    """File-backed collection store.

    The collection document `{version, lastModified, movies}` is loaded once
    and cached. Every mutation copies the current file into `backups/`, prunes
    old backups, then overwrites the primary document (write-through).

    Limitation: single process, single writer. Callers run on one event loop
    thread; no lock is taken here.
    """

    def __init__(
        self,
        *,
        data_dir: Path,
        file_name: str = "movies.json",
        max_backups: int = 10,
        version: str = "1.0",
    ) -> None:
        self._data_dir = Path(data_dir)
        self._path = self._data_dir / file_name
        self._backups_dir = self._data_dir / "backups"
        self._max_backups = max(int(max_backups), 0)
        self._version = version
        self._cache: Optional[Dict[str, Any]] = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def backups_dir(self) -> Path:
        return self._backups_dir

    # ---------------------------------------------------------------- lifecycle

    def _ensure_directories(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._backups_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> Dict[str, Any]:
        """Return the cached collection document, reading it from disk on first use."""
        if self._cache is not None:
            return self._cache

        self._ensure_directories()
        if not self._path.exists():
            self._cache = {"version": self._version, "lastModified": _now_iso(), "movies": []}
            return self._cache

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise CollectionCorruptedError(f"collection document is not valid JSON: {self._path}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("movies"), list):
            raise CollectionCorruptedError(f"collection document has no movies list: {self._path}")

        self._cache = data
        logger.info("Loaded %d movies from %s", len(data["movies"]), self._path)
        return self._cache

    def reload(self) -> Dict[str, Any]:
        self._cache = None
        return self.load()

    def close(self) -> None:
        self._cache = None

    # ------------------------------------------------------------- persistence

    def list_backups(self) -> List[Path]:
        if not self._backups_dir.exists():
            return []
        return sorted(
            p
            for p in self._backups_dir.iterdir()
            if p.name.startswith(BACKUP_PREFIX) and p.name.endswith(BACKUP_SUFFIX)
        )

    def _create_backup(self) -> None:
        if not self._path.exists():
            return
        backup_path = self._backups_dir / f"{BACKUP_PREFIX}{_backup_stamp()}{BACKUP_SUFFIX}"
        shutil.copyfile(self._path, backup_path)

        backups = self.list_backups()
        for stale in backups[: max(len(backups) - self._max_backups, 0)]:
            stale.unlink()
            logger.debug("Pruned backup %s", stale.name)

    def _save(self, movies: List[Dict[str, Any]]) -> None:
        """Persist a new movies list; the cache only changes once the file is replaced."""
        self._ensure_directories()
        self._create_backup()

        data = {**self.load(), "movies": movies, "lastModified": _now_iso()}
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self._path)
        self._cache = data

    # ------------------------------------------------------------------ records

    def _records(self) -> List[MovieRecord]:
        return [MovieRecord.from_dict(m) for m in self.load()["movies"]]

    @staticmethod
    def _build_record(data: Mapping[str, Any], *, now: str) -> MovieRecord:
        title = coerce_text(data.get("title")).strip()
        notes = coerce_text(data.get("notes"))
        validate_limits(title=title, notes=notes, require_title=True)
        return MovieRecord(
            id=str(uuid4()),
            title=title,
            format=normalize_format(data.get("format")),
            notes=notes,
            want_to_upgrade=coerce_bool(data.get("wantToUpgrade", False)),
            upgrade_target=coerce_upgrade_target(data.get("upgradeTarget")),
            genre=coerce_text(data.get("genre")),
            release_date=coerce_release_date(data.get("releaseDate")),
            actors=coerce_text(data.get("actors")),
            date_added=now,
            date_modified=now,
            source=coerce_source(data.get("source")),
            source_file=sanitize_source_file(data.get("sourceFile")),
        )

    def get_all(self, filters: Optional[MovieFilters] = None) -> List[MovieRecord]:
        return apply_filters(self._records(), filters)

    def get_by_id(self, movie_id: str) -> Optional[MovieRecord]:
        for raw in self.load()["movies"]:
            if raw.get("id") == movie_id:
                return MovieRecord.from_dict(raw)
        return None

    def create(self, data: Mapping[str, Any]) -> MovieRecord:
        doc = self.load()
        record = self._build_record(data, now=_now_iso())
        self._save([*doc["movies"], record.to_dict()])
        logger.info("Created movie id=%s source=%s", record.id, record.source)
        return record

    def bulk_create(self, items: Sequence[Mapping[str, Any]]) -> List[MovieRecord]:
        """Create many records with one backup and one write."""
        if not items:
            return []
        doc = self.load()
        now = _now_iso()
        # Build everything first so a bad item leaves the document untouched.
        created = [self._build_record(item, now=now) for item in items]
        self._save([*doc["movies"], *(r.to_dict() for r in created)])
        logger.info("Bulk-created %d movies", len(created))
        return created

    def update(self, movie_id: str, updates: Mapping[str, Any]) -> Optional[MovieRecord]:
        doc = self.load()
        index = next((i for i, m in enumerate(doc["movies"]) if m.get("id") == movie_id), -1)
        if index == -1:
            return None

        current = MovieRecord.from_dict(doc["movies"][index])
        changes: Dict[str, Any] = {}

        if "title" in updates:
            title = coerce_text(updates["title"]).strip()
            validate_limits(title=title, require_title=True)
            changes["title"] = title
        if "format" in updates:
            changes["format"] = normalize_format(updates["format"])
        if "notes" in updates:
            notes = coerce_text(updates["notes"])
            validate_limits(notes=notes)
            changes["notes"] = notes
        if "wantToUpgrade" in updates:
            changes["want_to_upgrade"] = coerce_bool(updates["wantToUpgrade"])
        if "upgradeTarget" in updates:
            changes["upgrade_target"] = coerce_upgrade_target(
                updates["upgradeTarget"], fallback=current.upgrade_target
            )
        if "genre" in updates:
            changes["genre"] = coerce_text(updates["genre"])
        if "releaseDate" in updates:
            changes["release_date"] = coerce_release_date(updates["releaseDate"])
        if "actors" in updates:
            changes["actors"] = coerce_text(updates["actors"])

        updated = replace(current, **changes, date_modified=_now_iso())
        movies = list(doc["movies"])
        movies[index] = updated.to_dict()
        self._save(movies)
        return updated

    def remove(self, movie_id: str) -> bool:
        doc = self.load()
        index = next((i for i, m in enumerate(doc["movies"]) if m.get("id") == movie_id), -1)
        if index == -1:
            return False
        self._save(doc["movies"][:index] + doc["movies"][index + 1 :])
        logger.info("Removed movie id=%s", movie_id)
        return True

    def get_stats(self) -> Dict[str, Any]:
        movies = self._records()
        by_format = {key: 0 for key in STATS_FORMAT_KEYS}
        for m in movies:
            if m.format in by_format:
                by_format[m.format] += 1
        return {
            "total": len(movies),
            "byFormat": by_format,
            "wantToUpgrade": sum(1 for m in movies if m.want_to_upgrade),
        }

    def export_document(self) -> Dict[str, Any]:
        doc = self.load()
        return {
            "version": doc.get("version", self._version),
            "lastModified": doc.get("lastModified"),
            "movies": [dict(m) for m in doc["movies"]],
        }
