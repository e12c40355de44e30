from __future__ import annotations

import csv
import io
from typing import Any, Dict

from application.ports.movie_store_port import MovieStorePort
from domain.collection import MovieFilters

CSV_HEADER = (
    "Title",
    "Format",
    "Genre",
    "Release Date",
    "Actors",
    "Notes",
    "Want to Upgrade",
    "Upgrade Target",
    "Date Added",
)


def export_json(store: MovieStorePort) -> Dict[str, Any]:
    return store.export_document()


def export_csv(store: MovieStorePort) -> str:
    """Spreadsheet-friendly dump of the collection, sorted by title."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for m in store.get_all(MovieFilters(sort_by="title", sort_order="asc")):
        writer.writerow(
            [
                m.title,
                m.format,
                m.genre,
                m.release_date,
                m.actors,
                m.notes,
                "Yes" if m.want_to_upgrade else "No",
                m.upgrade_target or "",
                m.date_added,
            ]
        )
    return buf.getvalue()
