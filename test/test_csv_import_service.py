import sys
import tempfile
import unittest
from pathlib import Path

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

from application.imports.csv_import_service import CsvImportService, map_csv_row
from application.imports.reconciler import ImportReconciler
from infrastructure.persistence.jsonfile import JsonMovieStore


class TestCsvImportService(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.store = JsonMovieStore(data_dir=self.root / "data")
        self.service = CsvImportService(store=self.store, reconciler=ImportReconciler(store=self.store))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _csv(self, text: str, name: str = "movies.csv") -> Path:
        p = self.root / name
        p.write_text(text, encoding="utf-8")
        return p

    def test_empty_title_rows_are_dropped(self) -> None:
        result = self.service.import_file(self._csv("Title,Format\nAlien,DVD\n,DVD\n"))

        self.assertEqual(result.imported, 1)
        movies = self.store.get_all()
        self.assertEqual([m.title for m in movies], ["Alien"])
        self.assertEqual(movies[0].format, "dvd")
        self.assertEqual(movies[0].source, "csv_import")
        self.assertFalse(movies[0].want_to_upgrade)

    def test_column_aliases_and_trimming(self) -> None:
        text = (
            " Title , Format , Notes / Collection Info \n"
            "  The Thing , Blu-ray ,  Scream Factory  \n"
            "\n"
            "Heat,,\n"
        )
        result = self.service.import_file(self._csv(text))

        self.assertEqual(result.imported, 2)
        by_title = {m.title: m for m in self.store.get_all()}
        self.assertEqual(by_title["The Thing"].format, "bluray")
        self.assertEqual(by_title["The Thing"].notes, "Scream Factory")
        self.assertEqual(by_title["Heat"].format, "dvd")

    def test_lowercase_headers(self) -> None:
        row = map_csv_row({"title": "Alien", "format": "4K Ultra HD", "notes": "steelbook"})
        self.assertEqual((row.title, row.format, row.notes), ("Alien", "4K Ultra HD", "steelbook"))
        self.assertEqual(map_csv_row({"Title": "Alien"}).format, "DVD")

    def test_duplicates_are_skipped(self) -> None:
        self.store.create({"title": "Alien"})
        result = self.service.import_file(self._csv("Title\nALIEN\nHeat\nHeat\n"))

        self.assertEqual(result.imported, 1)
        self.assertEqual(len(result.skipped), 2)
        self.assertEqual(sorted(m.title for m in self.store.get_all()), ["Alien", "Heat"])

    def test_single_backup_for_the_whole_file(self) -> None:
        self.store.create({"title": "Seed"})
        self.service.import_file(self._csv("Title\nA1\nB2\nC3\n"))
        self.assertEqual(len(self.store.list_backups()), 1)

    def test_over_limit_rows_are_reported_not_fatal(self) -> None:
        long_title = "T" * 501
        long_notes = "n" * 2001
        result = self.service.import_file(
            self._csv(f"Title,Notes\nAlien,\n{long_title},\nHeat,{long_notes}\nJaws,boxed\n")
        )

        self.assertEqual(result.imported, 2)
        self.assertEqual([s.reason for s in result.skipped], ["invalid", "invalid"])
        self.assertEqual(sorted(m.title for m in self.store.get_all()), ["Alien", "Jaws"])

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            self.service.import_file(self.root / "nope.csv")


if __name__ == "__main__":
    unittest.main()
