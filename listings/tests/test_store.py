import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from listings.errors import CorruptStore, RemoteOperationError
from listings.records import Record
from listings.remote import InMemoryRemoteSession
from listings.store import DocumentStore

from testing_utils import STORE_PATH, RecordingRemoteServer


class DocumentStoreTests(unittest.TestCase):
    def setUp(self):
        self.server = RecordingRemoteServer()
        self.scratch_dir = tempfile.mkdtemp()
        self.store = DocumentStore(self.server, STORE_PATH, scratch_dir=self.scratch_dir)

    def tearDown(self):
        shutil.rmtree(self.scratch_dir, ignore_errors=True)

    def test_missing_store_loads_empty(self):
        self.assertEqual(self.store.load(), [])
        self.assertEqual(self.server.opened, 1)
        self.assertEqual(self.server.closed, 1)

    def test_corrupt_store_is_not_masked(self):
        self.server.objects[STORE_PATH] = b"{not json"
        with self.assertRaises(CorruptStore):
            self.store.load()

    def test_save_uses_safe_replace(self):
        self.server.objects[STORE_PATH] = b"[]"
        self.store.save([Record(id=1, title="Casa")])

        self.assertEqual(
            self.server.calls,
            [
                ("store", f"{STORE_PATH}.tmp"),
                ("remove", STORE_PATH),
                ("rename", f"{STORE_PATH}.tmp->{STORE_PATH}"),
            ],
        )
        self.assertNotIn(f"{STORE_PATH}.tmp", self.server.objects)
        payload = json.loads(self.server.objects[STORE_PATH])
        self.assertEqual(payload[0]["title"], "Casa")

    def test_first_save_ignores_missing_canonical(self):
        self.store.save([Record(id=1)])
        self.assertEqual(self.store.load(), [Record(id=1)])

    def test_scratch_file_is_removed(self):
        self.store.save([Record(id=1)])
        self.assertEqual(os.listdir(self.scratch_dir), [])

    def test_failed_temp_write_leaves_canonical_untouched(self):
        self.server.objects[STORE_PATH] = b'[{"id": 7, "images": []}]'
        with patch.object(
            InMemoryRemoteSession,
            "upload_file",
            side_effect=RemoteOperationError("disk full"),
        ):
            with self.assertRaises(RemoteOperationError):
                self.store.save([])

        self.assertEqual(self.server.objects[STORE_PATH], b'[{"id": 7, "images": []}]')
        self.assertEqual(os.listdir(self.scratch_dir), [])
        self.assertEqual(self.server.opened, self.server.closed)

    def test_save_of_load_keeps_content(self):
        self.store.save(
            [
                Record(id=1, title="A", details=[{"x": 1}], images=["1img1.jpg"]),
                Record(id=3, price="10", details="raw", extra={"featured": True}),
            ]
        )
        before = self.server.objects[STORE_PATH]
        self.store.save(self.store.load())
        self.assertEqual(self.server.objects[STORE_PATH], before)

    def test_reuses_caller_session(self):
        session = self.server.open()
        self.store.save([Record(id=1)], session)
        self.assertEqual(self.store.load(session), [Record(id=1)])
        self.assertTrue(session.is_open)
        self.assertEqual(self.server.opened, 1)


if __name__ == "__main__":
    unittest.main()
