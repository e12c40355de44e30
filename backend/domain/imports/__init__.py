from domain.imports.candidate import MovieCandidate, ReconciledCandidate, SkippedCandidate
from domain.imports.photo_import import (
    AutoCommitResult,
    PhotoImportEvent,
    PhotoImportResult,
    PhotoImportState,
)

__all__ = [
    "AutoCommitResult",
    "MovieCandidate",
    "PhotoImportEvent",
    "PhotoImportResult",
    "PhotoImportState",
    "ReconciledCandidate",
    "SkippedCandidate",
]
