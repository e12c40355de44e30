from __future__ import annotations

from functools import lru_cache

from application.imports.csv_import_service import CsvImportService
from application.imports.photo_import_pipeline import PhotoImportPipeline, PhotoImportStatusTracker
from application.imports.reconciler import AutoCommitPolicy, ImportReconciler
from infrastructure.config.settings import (
    AUTO_ACCEPT_CONFIDENCE,
    COLLECTION_VERSION,
    DATA_DIR,
    IMAGE_EXTENSIONS,
    MOVIES_FILE_NAME,
    MOVIES_MAX_BACKUPS,
    PHOTO_QUEUE_MAX,
    PHOTO_STABILITY_POLL_S,
    PHOTO_STABILITY_S,
    PHOTO_STATUS_HISTORY,
    PROCESSED_DIR,
    SOURCES_DIR,
)
from infrastructure.enrichment import TMDBClient
from infrastructure.files.source_files import SourceFileArchive
from infrastructure.persistence.jsonfile import JsonMovieStore
from infrastructure.vision import BarcodeLookupService, ClaudeVisionClient, DiscCaseRecognizer
from infrastructure.watch.photo_watcher import PhotoWatcher


@lru_cache(maxsize=1)
def _build_movie_store() -> JsonMovieStore:
    return JsonMovieStore(
        data_dir=DATA_DIR,
        file_name=MOVIES_FILE_NAME,
        max_backups=MOVIES_MAX_BACKUPS,
        version=COLLECTION_VERSION,
    )


@lru_cache(maxsize=1)
def _build_source_archive() -> SourceFileArchive:
    return SourceFileArchive(
        sources_dir=SOURCES_DIR,
        processed_dir=PROCESSED_DIR,
        image_extensions=IMAGE_EXTENSIONS,
    )


@lru_cache(maxsize=1)
def _build_vision_client() -> ClaudeVisionClient:
    return ClaudeVisionClient()


@lru_cache(maxsize=1)
def _build_tmdb_client() -> TMDBClient:
    return TMDBClient()


@lru_cache(maxsize=1)
def _build_disc_case_recognizer() -> DiscCaseRecognizer:
    return DiscCaseRecognizer(_build_vision_client())


@lru_cache(maxsize=1)
def _build_barcode_service() -> BarcodeLookupService:
    return BarcodeLookupService(vision=_build_vision_client(), tmdb=_build_tmdb_client())


@lru_cache(maxsize=1)
def _build_reconciler() -> ImportReconciler:
    return ImportReconciler(
        store=_build_movie_store(),
        archive=_build_source_archive(),
        auto_policy=AutoCommitPolicy(accept_confidence=float(AUTO_ACCEPT_CONFIDENCE)),
    )


@lru_cache(maxsize=1)
def _build_csv_import_service() -> CsvImportService:
    return CsvImportService(store=_build_movie_store(), reconciler=_build_reconciler())


@lru_cache(maxsize=1)
def _build_status_tracker() -> PhotoImportStatusTracker:
    return PhotoImportStatusTracker(history=PHOTO_STATUS_HISTORY)


@lru_cache(maxsize=1)
def _build_photo_pipeline() -> PhotoImportPipeline:
    pipeline = PhotoImportPipeline(
        vision=_build_disc_case_recognizer(),
        barcode=_build_barcode_service(),
        reconciler=_build_reconciler(),
        archive=_build_source_archive(),
        queue_max=PHOTO_QUEUE_MAX,
        stability_s=float(PHOTO_STABILITY_S or 0.0),
        stability_poll_s=PHOTO_STABILITY_POLL_S,
    )
    pipeline.subscribe(_build_status_tracker())
    return pipeline


@lru_cache(maxsize=1)
def _build_photo_watcher() -> PhotoWatcher:
    return PhotoWatcher(
        pipeline=_build_photo_pipeline(),
        sources_dir=SOURCES_DIR,
        image_extensions=IMAGE_EXTENSIONS,
    )


def get_movie_store() -> JsonMovieStore:
    return _build_movie_store()


def get_source_archive() -> SourceFileArchive:
    return _build_source_archive()


def get_disc_case_recognizer() -> DiscCaseRecognizer:
    return _build_disc_case_recognizer()


def get_barcode_service() -> BarcodeLookupService:
    return _build_barcode_service()


def get_reconciler() -> ImportReconciler:
    return _build_reconciler()


def get_csv_import_service() -> CsvImportService:
    return _build_csv_import_service()


def get_photo_pipeline() -> PhotoImportPipeline:
    return _build_photo_pipeline()


def get_status_tracker() -> PhotoImportStatusTracker:
    return _build_status_tracker()


def get_photo_watcher() -> PhotoWatcher:
    return _build_photo_watcher()


async def shutdown_dependencies() -> None:
    """Best-effort shutdown hooks for long-lived adapters (watcher thread, HTTP sessions)."""
    if _build_photo_watcher.cache_info().currsize:
        _build_photo_watcher().stop()
    if _build_photo_pipeline.cache_info().currsize:
        await _build_photo_pipeline().close()

    for builder in (_build_barcode_service, _build_vision_client, _build_tmdb_client):
        if builder.cache_info().currsize:
            await builder().close()

    if _build_movie_store.cache_info().currsize:
        _build_movie_store().close()
