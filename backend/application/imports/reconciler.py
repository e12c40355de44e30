"""Import reconciliation.

Every import path (photo upload, barcode, watched drop) funnels candidates
through one duplicate-matching loop. What happens to a unique candidate is
decided by a policy:

- InteractivePolicy: annotate only; a human confirms later via confirm_import().
- AutoCommitPolicy: accept everything that is not a duplicate, tagging
  low-confidence detections so they can be reviewed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

from application.ports.movie_store_port import MovieStorePort
from application.ports.source_archive_port import SourceArchivePort
from domain.collection import ImportValidationError, MovieRecord, MovieValidationError, find_duplicate
from domain.collection.formats import MAX_NOTES_LENGTH, MAX_TITLE_LENGTH, sanitize_source_file, validate_limits
from domain.imports import AutoCommitResult, MovieCandidate, ReconciledCandidate, SkippedCandidate

logger = logging.getLogger(__name__)

PHOTO_IMPORT_SOURCE = "photo_import"


class ReconcilePolicy(Protocol):
    name: str
    # When True, accepted candidates join the "existing" list so later
    # candidates in the same batch dedup against them.
    tracks_accepted: bool

    def accept(self, candidate: MovieCandidate) -> MovieCandidate:
        ...


@dataclass(frozen=True)
class InteractivePolicy:
    name: str = "interactive"
    tracks_accepted: bool = False

    def accept(self, candidate: MovieCandidate) -> MovieCandidate:
        return candidate


@dataclass(frozen=True)
class AutoCommitPolicy:
    accept_confidence: float = 0.9
    name: str = "auto_commit"
    tracks_accepted: bool = True

    def accept(self, candidate: MovieCandidate) -> MovieCandidate:
        if candidate.confidence >= self.accept_confidence:
            return candidate.with_notes(candidate.notes[:MAX_NOTES_LENGTH])
        # Half-up, so 0.625 reads as 63%.
        pct = int(candidate.confidence * 100 + 0.5)
        suffix = f" [Confidence: {pct}%]"
        notes = candidate.notes[: MAX_NOTES_LENGTH - len(suffix)]
        return candidate.with_notes(f"{notes}{suffix}".strip())


class ImportReconciler:
    def __init__(
        self,
        *,
        store: MovieStorePort,
        archive: Optional[SourceArchivePort] = None,
        auto_policy: Optional[AutoCommitPolicy] = None,
    ) -> None:
        self._store = store
        self._archive = archive
        self._auto_policy = auto_policy or AutoCommitPolicy()

    def reconcile(
        self,
        candidates: Iterable[MovieCandidate],
        existing: Optional[Sequence[Any]] = None,
        *,
        policy: Optional[ReconcilePolicy] = None,
    ) -> List[ReconciledCandidate]:
        """Annotate candidates with duplicate information. Never writes to the store."""
        policy = policy or InteractivePolicy()
        pool: list[Any] = list(existing) if existing is not None else list(self._store.get_all())

        out: List[ReconciledCandidate] = []
        for candidate in candidates:
            duplicate = find_duplicate(candidate.title, pool)
            if duplicate is not None:
                out.append(
                    ReconciledCandidate(
                        candidate=candidate,
                        is_duplicate=True,
                        existing_title=getattr(duplicate, "title", None),
                    )
                )
                continue
            accepted = policy.accept(candidate)
            out.append(ReconciledCandidate(candidate=accepted))
            if policy.tracks_accepted:
                pool.append(accepted)
        return out

    def annotate_one(self, candidate: MovieCandidate, existing: Optional[Sequence[Any]] = None) -> ReconciledCandidate:
        return self.reconcile([candidate], existing)[0]

    def auto_commit(
        self,
        candidates: Sequence[MovieCandidate],
        *,
        source_file_name: Optional[str] = None,
        existing: Optional[Sequence[Any]] = None,
    ) -> AutoCommitResult:
        """Reconcile and commit without human confirmation (watched photo drops).

        A detection that can never be stored (title over the hard limit) is
        skipped with reason "invalid" instead of failing the whole photo.
        Notes are clamped by the policy so the confidence tag always fits.
        """
        usable: list[MovieCandidate] = []
        invalid: list[SkippedCandidate] = []
        for c in candidates:
            if not c.title.strip():
                continue
            if len(c.title.strip()) > MAX_TITLE_LENGTH:
                invalid.append(SkippedCandidate(candidate=c, reason="invalid"))
                continue
            usable.append(c)

        reconciled = self.reconcile(usable, existing, policy=self._auto_policy)
        skipped = [
            SkippedCandidate(candidate=r.candidate, reason="duplicate", existing_title=r.existing_title)
            for r in reconciled
            if r.is_duplicate
        ] + invalid
        source_file = sanitize_source_file(source_file_name)
        to_create = [
            {**r.candidate.to_record_data(), "source": PHOTO_IMPORT_SOURCE, "sourceFile": source_file}
            for r in reconciled
            if not r.is_duplicate
        ]
        added = self._store.bulk_create(to_create) if to_create else []
        for s in skipped:
            logger.info("Skipped %r: %s (matches %r)", s.candidate.title[:80], s.reason, s.existing_title)
        return AutoCommitResult(added=list(added), skipped=skipped)

    def confirm_import(
        self,
        selected: Sequence[Mapping[str, Any]],
        source_file_name: Optional[str] = None,
    ) -> List[MovieRecord]:
        """Commit human-confirmed candidates. All-or-nothing: one bad item aborts the batch."""
        source_file = sanitize_source_file(source_file_name)
        to_create: list[dict[str, Any]] = []
        for idx, item in enumerate(selected):
            if item.get("skip"):
                continue
            title = item.get("title")
            notes = item.get("notes")
            try:
                validate_limits(title=title, notes=notes, require_title=True)
            except MovieValidationError as exc:
                raise ImportValidationError(str(exc), index=idx) from exc
            candidate = MovieCandidate.from_payload(item)
            to_create.append({**candidate.to_record_data(), "source": PHOTO_IMPORT_SOURCE, "sourceFile": source_file})

        added = self._store.bulk_create(to_create) if to_create else []

        if source_file and self._archive is not None:
            src = self._archive.resolve_source(source_file)
            if src is None:
                logger.warning("Refusing to archive source outside sources dir: %r", source_file_name)
            else:
                self._archive.archive(src)
        return list(added)
