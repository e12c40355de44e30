from __future__ import annotations

import argparse
import logging
from pathlib import Path

from application.imports.csv_import_service import CsvImportService
from application.imports.reconciler import ImportReconciler
from infrastructure.config.settings import (
    COLLECTION_VERSION,
    DATA_DIR,
    DEFAULT_CSV_FILE_NAME,
    MOVIES_FILE_NAME,
    MOVIES_MAX_BACKUPS,
    SOURCES_DIR,
)
from infrastructure.persistence.jsonfile import JsonMovieStore

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Import a spreadsheet export (one movie per row) into the collection.")
    p.add_argument(
        "csv_path",
        nargs="?",
        default=str(SOURCES_DIR / DEFAULT_CSV_FILE_NAME),
        help="CSV file with a header row (Title, Format, Notes).",
    )
    return p


def _run(csv_path: Path) -> int:
    store = JsonMovieStore(
        data_dir=DATA_DIR,
        file_name=MOVIES_FILE_NAME,
        max_backups=MOVIES_MAX_BACKUPS,
        version=COLLECTION_VERSION,
    )
    service = CsvImportService(store=store, reconciler=ImportReconciler(store=store))

    logger.info("Importing from: %s", csv_path)
    try:
        result = service.import_file(csv_path)
    except FileNotFoundError as exc:
        logger.error("Import failed: %s", exc)
        return 1

    logger.info("Successfully imported %d movies (%d duplicates skipped)", result.imported, len(result.skipped))
    return 0


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    args = _build_parser().parse_args()
    raise SystemExit(_run(Path(args.csv_path)))


if __name__ == "__main__":
    main()
