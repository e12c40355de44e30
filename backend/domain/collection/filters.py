from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Union

from domain.collection.movie_record import MovieRecord

# Public sort keys (API / persisted naming) -> MovieRecord attribute.
ALLOWED_SORT_FIELDS: dict[str, str] = {
    "title": "title",
    "format": "format",
    "genre": "genre",
    "releaseDate": "release_date",
    "actors": "actors",
    "notes": "notes",
    "dateAdded": "date_added",
    "dateModified": "date_modified",
}
_SNAKE_ALIASES = {attr: attr for attr in ALLOWED_SORT_FIELDS.values()}

DEFAULT_SORT_FIELD = "title"


@dataclass(frozen=True)
class MovieFilters:
    search: Optional[str] = None
    format: Union[str, Sequence[str], None] = None
    # None means "no filter"; strings "true"/"false" are accepted from query params.
    want_to_upgrade: Union[bool, str, None] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None


def resolve_sort_attr(sort_by: Optional[str]) -> str:
    """Map a requested sort key onto a record attribute; unknown keys fall back to title."""
    key = sort_by if isinstance(sort_by, str) else ""
    if key in ALLOWED_SORT_FIELDS:
        return ALLOWED_SORT_FIELDS[key]
    if key in _SNAKE_ALIASES:
        return _SNAKE_ALIASES[key]
    return ALLOWED_SORT_FIELDS[DEFAULT_SORT_FIELD]


def _sort_value(record: MovieRecord, attr: str) -> Any:
    value = getattr(record, attr, "") or ""
    if isinstance(value, str):
        return value.lower()
    return value


def apply_filters(records: Iterable[MovieRecord], filters: Optional[MovieFilters] = None) -> list[MovieRecord]:
    f = filters or MovieFilters()
    movies = list(records)

    if f.search:
        needle = str(f.search).lower()
        movies = [m for m in movies if needle in (m.title or "").lower()]

    if f.format:
        formats = [f.format] if isinstance(f.format, str) else list(f.format)
        movies = [m for m in movies if m.format in formats]

    if f.want_to_upgrade is not None:
        want = f.want_to_upgrade is True or f.want_to_upgrade == "true"
        movies = [m for m in movies if bool(m.want_to_upgrade) == want]

    attr = resolve_sort_attr(f.sort_by)
    # sorted() is stable; equal keys keep document order.
    return sorted(
        movies,
        key=lambda m: _sort_value(m, attr),
        reverse=f.sort_order == "desc",
    )
