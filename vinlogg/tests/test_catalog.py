import unittest
from unittest.mock import MagicMock

from vinlogg.catalog import ensure_wine
from vinlogg.db import InMemoryDbClient, WineRecord
from vinlogg.errors import DbError


class EnsureWineTests(unittest.TestCase):
    def test_existing_article_number_is_reused(self):
        db = InMemoryDbClient()
        first, created = ensure_wine(db, WineRecord(name="Rioja", article_number="42"))
        self.assertTrue(created)
        second, created = ensure_wine(db, WineRecord(name="Annan", article_number="42"))
        self.assertFalse(created)
        self.assertEqual(second.id, first.id)

    def test_concurrent_insert_returns_winner(self):
        winner = WineRecord(name="Rioja", article_number="42", id="w1")
        db = MagicMock()
        db.find_wine_by_article_number.side_effect = [None, winner]
        db.insert_wine.side_effect = DbError("duplicate key value")

        wine, created = ensure_wine(db, WineRecord(name="Rioja", article_number="42"))
        self.assertIs(wine, winner)
        self.assertFalse(created)

    def test_insert_failure_without_existing_row_propagates(self):
        db = MagicMock()
        db.find_wine_by_name_producer.return_value = None
        db.insert_wine.side_effect = DbError("connection lost")

        with self.assertRaises(DbError):
            ensure_wine(db, WineRecord(name="Rioja"))


if __name__ == "__main__":
    unittest.main()
