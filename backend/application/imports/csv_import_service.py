from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from application.imports.reconciler import ImportReconciler, InteractivePolicy
from application.ports.movie_store_port import MovieStorePort
from domain.collection import MAX_NOTES_LENGTH, MAX_TITLE_LENGTH, MovieRecord
from domain.imports import MovieCandidate, SkippedCandidate

logger = logging.getLogger(__name__)

CSV_IMPORT_SOURCE = "csv_import"

# Header aliases, first non-empty wins.
_TITLE_COLUMNS = ("Title", "title")
_FORMAT_COLUMNS = ("Format", "format")
_NOTES_COLUMNS = ("Notes / Collection Info", "Notes", "notes")


def _first(row: Mapping[str, Any], keys: Iterable[str], default: str = "") -> str:
    for key in keys:
        value = row.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return default


def _within_limits(candidate: MovieCandidate) -> bool:
    return len(candidate.title) <= MAX_TITLE_LENGTH and len(candidate.notes) <= MAX_NOTES_LENGTH


def map_csv_row(row: Mapping[str, Any]) -> MovieCandidate:
    return MovieCandidate(
        title=_first(row, _TITLE_COLUMNS),
        format=_first(row, _FORMAT_COLUMNS, "DVD"),
        notes=_first(row, _NOTES_COLUMNS),
        confidence=1.0,
    )


@dataclass(frozen=True)
class CsvImportResult:
    imported: int
    movies: List[MovieRecord] = field(default_factory=list)
    skipped: List[SkippedCandidate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "movies": [m.to_dict() for m in self.movies],
            "skipped": [s.to_dict() for s in self.skipped],
        }


class CsvImportService:
    """Bulk import of a spreadsheet export (one movie per row)."""

    def __init__(self, *, store: MovieStorePort, reconciler: ImportReconciler) -> None:
        self._store = store
        self._reconciler = reconciler
        self._policy = InteractivePolicy(name="csv_import", tracks_accepted=True)

    @staticmethod
    def read_rows(path: Path) -> List[MovieCandidate]:
        with path.open("r", encoding="utf-8-sig", newline="") as fh:
            reader = csv.DictReader(fh)
            rows = [map_csv_row({(k or "").strip(): v for k, v in row.items()}) for row in reader]
        return [r for r in rows if r.title]

    def import_rows(self, candidates: List[MovieCandidate]) -> CsvImportResult:
        # Over-limit rows are reported, not fatal for the rest of the file.
        invalid = [SkippedCandidate(candidate=c, reason="invalid") for c in candidates if not _within_limits(c)]
        valid = [c for c in candidates if _within_limits(c)]

        reconciled = self._reconciler.reconcile(valid, policy=self._policy)
        skipped = [
            SkippedCandidate(candidate=r.candidate, existing_title=r.existing_title)
            for r in reconciled
            if r.is_duplicate
        ] + invalid
        to_create = [
            {**r.candidate.to_record_data(), "source": CSV_IMPORT_SOURCE, "wantToUpgrade": False}
            for r in reconciled
            if not r.is_duplicate
        ]
        created = self._store.bulk_create(to_create) if to_create else []
        return CsvImportResult(imported=len(created), movies=list(created), skipped=skipped)

    def import_file(self, path: Path | str) -> CsvImportResult:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"CSV file not found: {path}")

        result = self.import_rows(self.read_rows(path))
        logger.info(
            "CSV import from %s: imported=%d skipped=%d",
            path.name,
            result.imported,
            len(result.skipped),
        )
        return result
