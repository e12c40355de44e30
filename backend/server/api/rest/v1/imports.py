from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, UploadFile

from application.imports.csv_import_service import CsvImportService
from application.imports.photo_import_pipeline import PhotoImportPipeline, PhotoImportStatusTracker
from application.imports.reconciler import ImportReconciler
from config.settings import UPLOAD_ALLOWED_MIME_TYPES, UPLOAD_MAX_BYTES
from domain.collection import ImportValidationError, MovieValidationError, VisionNotConfiguredError
from domain.imports import PhotoImportState
from infrastructure.config.settings import DEFAULT_CSV_FILE_NAME, IMAGE_EXTENSIONS
from infrastructure.files.source_files import SourceFileArchive, has_allowed_extension, sanitize_filename
from infrastructure.vision import BarcodeLookupService, DiscCaseRecognizer
from server.api.rest.dependencies import (
    get_barcode_service,
    get_csv_import_service,
    get_disc_case_recognizer,
    get_photo_pipeline,
    get_reconciler,
    get_source_archive,
    get_status_tracker,
)
from server.api.rest.errors import api_error, internal_error
from server.models.schemas import CsvImportRequest, ImportConfirmRequest, PhotoProcessRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/import", tags=["import"])

NEEDS_SETUP_MESSAGE = "AI vision not configured. Please set ANTHROPIC_API_KEY in your .env file."


async def _read_photo(photo: Optional[UploadFile]) -> bytes:
    if photo is None:
        raise api_error(400, "No photo uploaded")
    if (photo.content_type or "").lower() not in UPLOAD_ALLOWED_MIME_TYPES:
        raise api_error(400, "Invalid file type. Only JPEG, PNG, GIF, and WebP are allowed.")
    content = await photo.read(UPLOAD_MAX_BYTES + 1)
    if len(content) > UPLOAD_MAX_BYTES:
        raise api_error(413, "File too large")
    return content


@router.post("/upload")
async def upload_photo(
    photo: Optional[UploadFile] = File(default=None),
    vision: DiscCaseRecognizer = Depends(get_disc_case_recognizer),
    reconciler: ImportReconciler = Depends(get_reconciler),
    archive: SourceFileArchive = Depends(get_source_archive),
) -> Dict[str, Any]:
    """Analyze a shelf photo and return annotated candidates for review (nothing is saved)."""
    content = await _read_photo(photo)
    if not vision.is_configured():
        raise api_error(400, NEEDS_SETUP_MESSAGE, needsSetup=True)

    path = archive.save_upload(photo.filename or "", content)
    try:
        detected = await vision.identify_movies_from_photo(path)
        results = reconciler.reconcile(detected)
    except VisionNotConfiguredError:
        archive.discard(path)
        raise api_error(400, NEEDS_SETUP_MESSAGE, needsSetup=True)
    except Exception as e:
        archive.discard(path)
        raise internal_error(e, context="processing upload")

    # The upload stays in the sources dir until the import is confirmed.
    return {
        "success": True,
        "fileName": path.name,
        "movies": [r.to_dict() for r in results],
        "count": len(results),
    }


@router.post("/confirm")
async def confirm_import(
    req: ImportConfirmRequest,
    reconciler: ImportReconciler = Depends(get_reconciler),
) -> Dict[str, Any]:
    if req.movies is None:
        raise api_error(400, "Movies array is required")
    try:
        added = reconciler.confirm_import(req.movies, req.fileName)
    except ImportValidationError as e:
        raise api_error(400, str(e), index=e.index)
    except Exception as e:
        raise internal_error(e, context="confirming import")
    return {"success": True, "added": len(added), "movies": [m.to_dict() for m in added]}


@router.post("/barcode")
async def lookup_barcode(
    photo: Optional[UploadFile] = File(default=None),
    barcode: BarcodeLookupService = Depends(get_barcode_service),
    reconciler: ImportReconciler = Depends(get_reconciler),
    archive: SourceFileArchive = Depends(get_source_archive),
) -> Dict[str, Any]:
    content = await _read_photo(photo)
    if not barcode.is_configured():
        raise api_error(400, NEEDS_SETUP_MESSAGE, needsSetup=True)

    path = archive.save_upload(photo.filename or "", content)
    try:
        result = await barcode.lookup_movie_by_barcode(path)
    except VisionNotConfiguredError:
        raise api_error(400, NEEDS_SETUP_MESSAGE, needsSetup=True)
    except Exception as e:
        raise internal_error(e, context="processing barcode")
    finally:
        archive.discard(path)

    if not result.success or result.movie is None:
        raise api_error(400, result.error or "No barcode detected in image", barcode=result.barcode)

    annotated = reconciler.annotate_one(result.movie)
    return {
        "success": True,
        "barcode": result.barcode,
        "barcodeType": result.barcode_type,
        "productInfo": result.product_info,
        "movie": annotated.to_dict(),
    }


@router.post("/csv")
async def import_csv(
    req: Optional[CsvImportRequest] = Body(default=None),
    service: CsvImportService = Depends(get_csv_import_service),
    archive: SourceFileArchive = Depends(get_source_archive),
) -> Dict[str, Any]:
    requested = (req.path if req else None) or ""
    if requested:
        name = sanitize_filename(requested)
        if not has_allowed_extension(name, (".csv",)):
            raise api_error(400, "Only CSV files are allowed")
    else:
        name = DEFAULT_CSV_FILE_NAME

    csv_path = archive.resolve_source(name)
    if csv_path is None:
        raise api_error(400, "Invalid file path")

    try:
        result = service.import_file(csv_path)
    except FileNotFoundError:
        raise api_error(404, "CSV file not found")
    except MovieValidationError as e:
        raise api_error(400, str(e))
    except Exception as e:
        raise internal_error(e, context="importing CSV")

    return {
        "success": True,
        "message": f"Imported {result.imported} movies",
        "count": result.imported,
        "skipped": len(result.skipped),
    }


@router.get("/status")
async def import_status(
    pipeline: PhotoImportPipeline = Depends(get_photo_pipeline),
    tracker: PhotoImportStatusTracker = Depends(get_status_tracker),
) -> Dict[str, Any]:
    return {**pipeline.status(), "recent": tracker.recent()}


@router.post("/photo")
async def process_photo(
    req: PhotoProcessRequest,
    pipeline: PhotoImportPipeline = Depends(get_photo_pipeline),
    archive: SourceFileArchive = Depends(get_source_archive),
) -> Dict[str, Any]:
    """Run the auto-import pipeline on a file already sitting in the sources dir."""
    if not req.filename:
        raise api_error(400, "Filename is required")

    name = sanitize_filename(req.filename)
    if not has_allowed_extension(name, IMAGE_EXTENSIONS):
        raise api_error(400, "Invalid file type")

    image_path = archive.resolve_source(name)
    if image_path is None:
        raise api_error(400, "Invalid file path")
    if not Path(image_path).is_file():
        raise api_error(404, "Image file not found")
    if not pipeline.status()["configured"]:
        raise api_error(400, NEEDS_SETUP_MESSAGE, needsSetup=True)

    try:
        result = await pipeline.process_now(image_path)
    except Exception as e:
        raise internal_error(e, context="processing photo")
    if result.state is PhotoImportState.ERROR:
        raise internal_error(RuntimeError(result.error or "photo import failed"), context="processing photo")
    return {"success": True, **result.to_dict()}


@router.get("/pending")
async def list_pending(archive: SourceFileArchive = Depends(get_source_archive)) -> Dict[str, Any]:
    try:
        return {"files": archive.list_pending_images()}
    except OSError as e:
        raise internal_error(e, context="listing pending files")
