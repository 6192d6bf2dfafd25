import tempfile
import unittest
from datetime import datetime, timezone

from google.api_core.exceptions import NotFound

from editaja.services.local_store import LocalStore


class TestLocalStore(unittest.TestCase):
    def setUp(self):
        self.store = LocalStore()
        styles = self.store.collection("styles")
        styles.document("a").set({"name": "Anime", "usageCount": 5, "tags": ["cute"]})
        styles.document("b").set({"name": "Ghibli", "usageCount": 9, "tags": ["film"]})
        styles.document("c").set({"name": "Sketch"})

    def names(self, query):
        return [doc.to_dict()["name"] for doc in query.get()]

    def test_where_order_and_limit(self):
        styles = self.store.collection("styles")
        self.assertEqual(self.names(styles.where("usageCount", ">=", 5).order_by("usageCount", "DESCENDING")), ["Ghibli", "Anime"])
        self.assertEqual(self.names(styles.where("tags", "array_contains", "film")), ["Ghibli"])
        # documents without the ordered field are dropped
        self.assertEqual(self.names(styles.order_by("usageCount").limit(1)), ["Anime"])

    def test_unknown_operator(self):
        with self.assertRaises(ValueError):
            self.store.collection("styles").where("name", "~", "x").get()

    def test_update_and_merge(self):
        ref = self.store.collection("styles").document("a")
        ref.update({"usageCount": 6})
        ref.set({"status": "Active"}, merge=True)
        self.assertEqual(ref.get().to_dict()["usageCount"], 6)
        self.assertEqual(ref.get().get("status"), "Active")

        with self.assertRaises(NotFound):
            self.store.collection("styles").document("missing").update({"x": 1})
        with self.assertRaises(KeyError):
            ref.get().get("prompt")

    def test_snapshots_are_copies(self):
        snapshot = self.store.collection("styles").document("a").get()
        snapshot.to_dict()["tags"].append("edited")
        self.assertEqual(self.store.collection("styles").document("a").get().to_dict()["tags"], ["cute"])

    def test_missing_document(self):
        snapshot = self.store.collection("styles").document("nope").get()
        self.assertFalse(snapshot.exists)
        self.assertIsNone(snapshot.to_dict())

    def test_reset(self):
        self.store.reset()
        self.assertEqual(self.store.collection("styles").get(), [])


class TestLocalStorePersistence(unittest.TestCase):
    def test_survives_restart(self):
        with tempfile.TemporaryDirectory() as data_dir:
            created = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
            LocalStore(data_dir).collection("topupPlans").document("p1").set({"price": 10000, "createdAt": created})

            reloaded = LocalStore(data_dir).collection("topupPlans").document("p1").get().to_dict()

            self.assertEqual(reloaded, {"price": 10000, "createdAt": created})
