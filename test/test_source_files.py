import sys
import tempfile
import unittest
from pathlib import Path

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

from infrastructure.files.source_files import (
    SourceFileArchive,
    has_allowed_extension,
    sanitize_filename,
    upload_file_name,
)


class TestFileNameHelpers(unittest.TestCase):
    def test_sanitize_filename_keeps_basename_only(self) -> None:
        self.assertEqual(sanitize_filename("../../etc/passwd"), "passwd")
        self.assertEqual(sanitize_filename("..\\..\\shelf.jpg"), "shelf.jpg")
        self.assertEqual(sanitize_filename(" shelf.jpg "), "shelf.jpg")
        self.assertEqual(sanitize_filename(""), "")

    def test_upload_file_name_only_keeps_extension(self) -> None:
        name = upload_file_name("../My Shelf.JPG")
        self.assertRegex(name, r"^upload-\d+\.jpg$")

    def test_has_allowed_extension_is_case_insensitive(self) -> None:
        self.assertTrue(has_allowed_extension("a.WEBP", (".webp",)))
        self.assertFalse(has_allowed_extension("a.webp.exe", (".webp",)))


class TestSourceFileArchive(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.sources = root / "sources"
        self.archive = SourceFileArchive(
            sources_dir=self.sources,
            processed_dir=self.sources / "processed",
            image_extensions=(".jpg", ".png"),
        )
        self.archive.ensure_directories()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_resolve_source_stays_inside_sources_dir(self) -> None:
        self.assertEqual(self.archive.resolve_source("../shelf.jpg"), self.sources / "shelf.jpg")
        self.assertIsNone(self.archive.resolve_source(".."))
        self.assertIsNone(self.archive.resolve_source(""))

    def test_archive_moves_file_into_processed(self) -> None:
        src = self.sources / "shelf.jpg"
        src.write_bytes(b"img")

        dest = self.archive.archive(src)

        self.assertEqual(dest, self.sources / "processed" / "shelf.jpg")
        self.assertFalse(src.exists())
        self.assertEqual(dest.read_bytes(), b"img")
        self.assertIsNone(self.archive.archive(src))

    def test_archive_refuses_files_outside_sources_dir(self) -> None:
        outside = Path(self._tmp.name) / "elsewhere.jpg"
        outside.write_bytes(b"img")

        self.assertIsNone(self.archive.archive(outside))
        self.assertTrue(outside.exists())

    def test_list_pending_images_skips_other_files_and_dirs(self) -> None:
        (self.sources / "b.png").write_bytes(b"")
        (self.sources / "a.jpg").write_bytes(b"")
        (self.sources / "list.csv").write_text("Title\n", encoding="utf-8")
        (self.sources / "processed" / "old.jpg").write_bytes(b"")

        self.assertEqual(self.archive.list_pending_images(), ["a.jpg", "b.png"])

    def test_save_upload_and_discard(self) -> None:
        path = self.archive.save_upload("shelf.png", b"png")
        self.assertEqual(path.parent, self.sources)
        self.assertEqual(path.read_bytes(), b"png")

        self.archive.discard(path)
        self.archive.discard(path)
        self.archive.discard(None)
        self.assertFalse(path.exists())


if __name__ == "__main__":
    unittest.main()
