import csv
import io
import sys
import tempfile
import unittest
from pathlib import Path

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

from application.collection.export import CSV_HEADER, export_csv, export_json
from infrastructure.persistence.jsonfile import JsonMovieStore


class TestCollectionExport(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.store = JsonMovieStore(data_dir=Path(self._tmp.name))
        self.store.bulk_create(
            [
                {"title": "Heat", "format": "bluray", "notes": 'Has "quotes", commas', "wantToUpgrade": True, "upgradeTarget": "4k"},
                {"title": "alien", "format": "dvd", "releaseDate": "1979"},
            ]
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_json_export_is_the_collection_document(self) -> None:
        doc = export_json(self.store)
        self.assertEqual(doc["version"], "1.0")
        self.assertTrue(doc["lastModified"])
        self.assertEqual([m["title"] for m in doc["movies"]], ["Heat", "alien"])

    def test_csv_export_sorted_by_title(self) -> None:
        rows = list(csv.reader(io.StringIO(export_csv(self.store))))

        self.assertEqual(tuple(rows[0]), CSV_HEADER)
        self.assertEqual([r[0] for r in rows[1:]], ["alien", "Heat"])
        self.assertEqual(rows[1][3], "1979")
        self.assertEqual(rows[2][5], 'Has "quotes", commas')
        self.assertEqual(rows[2][6:8], ["Yes", "4k"])
        self.assertEqual(rows[1][6:8], ["No", ""])


if __name__ == "__main__":
    unittest.main()
