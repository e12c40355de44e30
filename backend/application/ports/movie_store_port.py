from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from domain.collection import MovieFilters, MovieRecord


class MovieStorePort(Protocol):
    """Record store contract.

    Methods are synchronous on purpose: each mutation runs load -> mutate ->
    backup -> overwrite without yielding to the event loop.
    """

    def get_all(self, filters: Optional[MovieFilters] = None) -> List[MovieRecord]:
        ...

    def get_by_id(self, movie_id: str) -> Optional[MovieRecord]:
        ...

    def create(self, data: Mapping[str, Any]) -> MovieRecord:
        ...

    def update(self, movie_id: str, updates: Mapping[str, Any]) -> Optional[MovieRecord]:
        ...

    def remove(self, movie_id: str) -> bool:
        ...

    def bulk_create(self, items: Sequence[Mapping[str, Any]]) -> List[MovieRecord]:
        ...

    def get_stats(self) -> Dict[str, Any]:
        ...

    def export_document(self) -> Dict[str, Any]:
        ...
