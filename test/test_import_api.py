import sys
import tempfile
import unittest
from pathlib import Path

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

from fastapi.testclient import TestClient

import server.api.rest.dependencies as deps
from application.imports.csv_import_service import CsvImportService
from application.imports.photo_import_pipeline import PhotoImportPipeline, PhotoImportStatusTracker
from application.imports.reconciler import ImportReconciler
from application.ports.barcode_port import BarcodeLookupResult
from domain.collection import MovieValidationError
from domain.imports import MovieCandidate
from infrastructure.files.source_files import SourceFileArchive
from infrastructure.persistence.jsonfile import JsonMovieStore
from server.main import app

_JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


class _StubVision:
    def __init__(self, movies=None, *, configured: bool = True) -> None:
        self._movies = list(movies or [])
        self._configured = configured

    def is_configured(self) -> bool:
        return self._configured

    async def identify_movies_from_photo(self, image_path: Path):
        if not Path(image_path).is_file():
            raise FileNotFoundError(image_path)
        return list(self._movies)


class _StubBarcode:
    def __init__(self, result: BarcodeLookupResult) -> None:
        self._result = result
        self.seen: list[Path] = []

    def is_configured(self) -> bool:
        return True

    async def lookup_movie_by_barcode(self, image_path: Path) -> BarcodeLookupResult:
        self.seen.append(Path(image_path))
        return self._result


class TestImportApi(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.sources = root / "sources"
        self.sources.mkdir()
        self.store = JsonMovieStore(data_dir=root / "data")
        self.archive = SourceFileArchive(
            sources_dir=self.sources,
            processed_dir=self.sources / "processed",
            image_extensions=(".jpg", ".jpeg", ".png", ".gif", ".webp"),
        )
        self.reconciler = ImportReconciler(store=self.store, archive=self.archive)
        self.vision = _StubVision(
            [MovieCandidate(title="Alien", format="Blu-ray", confidence=0.95), MovieCandidate(title="The Matrix")]
        )
        self.tracker = PhotoImportStatusTracker()
        self.pipeline = PhotoImportPipeline(
            vision=self.vision,
            reconciler=self.reconciler,
            archive=self.archive,
            stability_s=0,
        )
        self.pipeline.subscribe(self.tracker)

        app.dependency_overrides[deps.get_movie_store] = lambda: self.store
        app.dependency_overrides[deps.get_source_archive] = lambda: self.archive
        app.dependency_overrides[deps.get_reconciler] = lambda: self.reconciler
        app.dependency_overrides[deps.get_disc_case_recognizer] = lambda: self.vision
        app.dependency_overrides[deps.get_photo_pipeline] = lambda: self.pipeline
        app.dependency_overrides[deps.get_status_tracker] = lambda: self.tracker
        app.dependency_overrides[deps.get_csv_import_service] = lambda: CsvImportService(
            store=self.store, reconciler=self.reconciler
        )
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides = {}
        self._tmp.cleanup()

    def _upload(self, path: str = "/api/import/upload", *, mime: str = "image/jpeg", name: str = "shelf.jpg"):
        return self.client.post(path, files={"photo": (name, _JPEG, mime)})

    def test_upload_previews_then_confirm_commits_and_archives(self) -> None:
        self.store.create({"title": "Matrix"})

        resp = self._upload()
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["count"], 2)
        self.assertRegex(body["fileName"], r"^upload-\d+\.jpg$")
        self.assertEqual([m["isDuplicate"] for m in body["movies"]], [False, True])
        self.assertEqual(body["movies"][1]["existingTitle"], "Matrix")
        self.assertTrue((self.sources / body["fileName"]).exists())
        self.assertEqual(len(self.store.get_all()), 1)

        selected = [dict(body["movies"][0]), dict(body["movies"][1], skip=True)]
        resp = self.client.post("/api/import/confirm", json={"movies": selected, "fileName": body["fileName"]})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["added"], 1)
        self.assertEqual(resp.json()["movies"][0]["format"], "bluray")
        self.assertEqual(resp.json()["movies"][0]["sourceFile"], body["fileName"])
        self.assertFalse((self.sources / body["fileName"]).exists())
        self.assertTrue((self.sources / "processed" / body["fileName"]).exists())

    def test_upload_rejections(self) -> None:
        resp = self.client.post("/api/import/upload")
        self.assertEqual(resp.json(), {"error": "No photo uploaded"})

        resp = self._upload(mime="application/pdf", name="x.pdf")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Invalid file type", resp.json()["error"])

        self.vision._configured = False
        resp = self._upload()
        self.assertEqual(resp.status_code, 400)
        self.assertTrue(resp.json()["needsSetup"])
        self.assertEqual(list(self.sources.glob("upload-*")), [])

    def test_confirm_validation(self) -> None:
        resp = self.client.post("/api/import/confirm", json={"fileName": "x.jpg"})
        self.assertEqual(resp.json(), {"error": "Movies array is required"})

        resp = self.client.post(
            "/api/import/confirm", json={"movies": [{"title": "Alien"}, {"title": "y" * 501}]}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["index"], 1)
        self.assertEqual(self.store.get_all(), [])

    def test_barcode_preview_cleans_up_upload(self) -> None:
        barcode = _StubBarcode(
            BarcodeLookupResult(
                success=True,
                barcode="012345678905",
                barcode_type="UPC-A",
                product_info={"title": "Alien (Blu-ray)"},
                movie=MovieCandidate(title="Alien", format="bluray", confidence=1.0),
            )
        )
        app.dependency_overrides[deps.get_barcode_service] = lambda: barcode
        self.store.create({"title": "Alien"})

        resp = self._upload("/api/import/barcode")

        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["barcode"], "012345678905")
        self.assertEqual(body["barcodeType"], "UPC-A")
        self.assertTrue(body["movie"]["isDuplicate"])
        self.assertFalse(barcode.seen[0].exists())

    def test_barcode_failure(self) -> None:
        barcode = _StubBarcode(
            BarcodeLookupResult(success=False, barcode="012345678905", error="Barcode found but product not in UPC database")
        )
        app.dependency_overrides[deps.get_barcode_service] = lambda: barcode

        resp = self._upload("/api/import/barcode")

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(
            resp.json(),
            {"error": "Barcode found but product not in UPC database", "barcode": "012345678905"},
        )

    def test_csv_import(self) -> None:
        (self.sources / "list.csv").write_text("Title,Format\nAlien,DVD\n,DVD\n", encoding="utf-8")

        resp = self.client.post("/api/import/csv", json={"path": "../../list.csv"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["count"], 1)
        self.assertEqual(resp.json()["message"], "Imported 1 movies")

        resp = self.client.post("/api/import/csv", json={"path": "notes.txt"})
        self.assertEqual(resp.json(), {"error": "Only CSV files are allowed"})

        resp = self.client.post("/api/import/csv")
        self.assertEqual(resp.status_code, 404)

    def test_csv_import_reports_over_limit_rows(self) -> None:
        (self.sources / "list.csv").write_text(f"Title\nAlien\n{'T' * 501}\n", encoding="utf-8")

        resp = self.client.post("/api/import/csv", json={"path": "list.csv"})

        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["count"], 1)
        self.assertEqual(resp.json()["skipped"], 1)

    def test_csv_validation_failure_is_a_client_error(self) -> None:
        class _RejectingService:
            def import_file(self, path):
                raise MovieValidationError("Title exceeds maximum length")

        app.dependency_overrides[deps.get_csv_import_service] = lambda: _RejectingService()
        (self.sources / "list.csv").write_text("Title\nAlien\n", encoding="utf-8")

        resp = self.client.post("/api/import/csv", json={"path": "list.csv"})

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "Title exceeds maximum length"})

    def test_process_photo_and_status(self) -> None:
        (self.sources / "shelf.jpg").write_bytes(_JPEG)

        resp = self.client.get("/api/import/pending")
        self.assertEqual(resp.json(), {"files": ["shelf.jpg"]})

        resp = self.client.post("/api/import/photo", json={"filename": "../shelf.jpg"})
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["status"], "success")
        self.assertEqual(body["added"], 2)
        self.assertTrue((self.sources / "processed" / "shelf.jpg").exists())

        status = self.client.get("/api/import/status").json()
        self.assertEqual(status["queueLength"], 0)
        self.assertFalse(status["processing"])
        self.assertEqual(status["recent"][0]["status"], "success")

        self.assertEqual(self.client.get("/api/import/pending").json(), {"files": []})

    def test_process_photo_rejections(self) -> None:
        self.assertEqual(self.client.post("/api/import/photo", json={}).json(), {"error": "Filename is required"})
        self.assertEqual(
            self.client.post("/api/import/photo", json={"filename": "list.csv"}).json(),
            {"error": "Invalid file type"},
        )
        resp = self.client.post("/api/import/photo", json={"filename": "missing.jpg"})
        self.assertEqual(resp.status_code, 404)


if __name__ == "__main__":
    unittest.main()
