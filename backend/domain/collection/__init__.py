from domain.collection.errors import (
    CollectionCorruptedError,
    ImportValidationError,
    MovieValidationError,
    VisionNotConfiguredError,
    VisionServiceError,
)
from domain.collection.filters import ALLOWED_SORT_FIELDS, MovieFilters, apply_filters
from domain.collection.formats import (
    ALLOWED_FORMATS,
    ALLOWED_UPGRADE_TARGETS,
    MAX_NOTES_LENGTH,
    MAX_TITLE_LENGTH,
    normalize_format,
)
from domain.collection.movie_record import MovieRecord
from domain.collection.title_matching import find_duplicate, normalize_title

__all__ = [
    "ALLOWED_FORMATS",
    "ALLOWED_SORT_FIELDS",
    "ALLOWED_UPGRADE_TARGETS",
    "CollectionCorruptedError",
    "ImportValidationError",
    "MAX_NOTES_LENGTH",
    "MAX_TITLE_LENGTH",
    "MovieFilters",
    "MovieRecord",
    "MovieValidationError",
    "VisionNotConfiguredError",
    "VisionServiceError",
    "apply_filters",
    "find_duplicate",
    "normalize_format",
    "normalize_title",
]
