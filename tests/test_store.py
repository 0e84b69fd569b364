"""
Tests for record storage.
"""

import json
import tempfile
import threading
import unittest
from pathlib import Path

import support  # noqa: F401

from quraniq.errors import NotFound
from quraniq.store import CHAPTERS, USERS, InMemoryStore, JsonFileStore


class TestInMemoryStore(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryStore()

    def test_fields_round_trip(self):
        fields = {"title": "Patience", "content": "ṣabr / صبر", "nested": {"a": [1, 2]}}
        record = self.store.create(CHAPTERS, fields)

        self.assertEqual(self.store.get(CHAPTERS, record.id).fields, fields)
        self.assertEqual(record.to_dict(), {"id": record.id, **fields})

    def test_ids_unique(self):
        a = self.store.create(CHAPTERS, {"title": "a"})
        b = self.store.create(CHAPTERS, {"title": "a"})
        self.assertNotEqual(a.id, b.id)

    def test_returned_fields_are_copies(self):
        record = self.store.create(USERS, {"journeyProgress": {}})
        record.fields["journeyProgress"]["1"] = "changed"
        self.assertEqual(self.store.get(USERS, record.id).fields["journeyProgress"], {})

    def test_list_filters_in_creation_order(self):
        self.store.create(CHAPTERS, {"title": "one", "ownerId": "u1"})
        self.store.create(CHAPTERS, {"title": "two", "ownerId": "u2"})
        self.store.create(CHAPTERS, {"title": "three", "ownerId": "u1"})

        titles = [r.fields["title"] for r in self.store.list(CHAPTERS, ownerId="u1")]
        self.assertEqual(titles, ["one", "three"])
        self.assertEqual(self.store.list(USERS), [])

    def test_update_merges(self):
        record = self.store.create(USERS, {"name": "A", "email": "a@example.com"})
        updated = self.store.update(USERS, record.id, {"name": "B"})
        self.assertEqual(updated.fields, {"name": "B", "email": "a@example.com"})

    def test_list_while_updating(self):
        record = self.store.create(USERS, {"email": "a@example.com"})
        errors = []
        done = threading.Event()

        def read():
            try:
                while not done.is_set():
                    self.store.list(USERS, email="a@example.com")
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        readers = [threading.Thread(target=read) for _ in range(4)]
        for t in readers:
            t.start()
        for i in range(2000):
            self.store.update(USERS, record.id, {f"k{i}": {"step": i}})
        done.set()
        for t in readers:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(len(self.store.get(USERS, record.id).fields), 2001)

    def test_missing(self):
        with self.assertRaises(NotFound):
            self.store.get(USERS, "nope")
        with self.assertRaises(NotFound):
            self.store.update(USERS, "nope", {})


class TestJsonFileStore(unittest.TestCase):

    def test_persists_across_instances(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "db" / "store.json"
            store = JsonFileStore(path)
            record = store.create(CHAPTERS, {"title": "صبر", "ownerId": "u1"})
            store.update(CHAPTERS, record.id, {"content": "answer"})

            reopened = JsonFileStore(path)
            self.assertEqual(
                reopened.get(CHAPTERS, record.id).fields,
                {"title": "صبر", "ownerId": "u1", "content": "answer"},
            )
            self.assertIn("صبر", path.read_text(encoding="utf-8"))
            self.assertEqual(list(json.loads(path.read_text(encoding="utf-8"))), [CHAPTERS])


if __name__ == "__main__":
    unittest.main()
