import json
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from listings.app import create_app
from listings.config import Settings
from listings.dependencies import get_record_service
from listings.errors import RemoteConnectionError

from testing_utils import STORE_PATH, RecordingRemoteServer, make_service


def _images(*names):
    return [("images", (name, b"bytes-" + name.encode(), "image/jpeg")) for name in names]


class ListingsApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.server = RecordingRemoteServer()

    def setUp(self):
        self.server.reset()
        self.service = make_service(self.server)
        self.app = create_app()
        self.app.dependency_overrides[get_record_service] = lambda: self.service
        self.client = TestClient(self.app)

    def _stored(self):
        return json.loads(self.server.objects[STORE_PATH])

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "ok")

    def test_list_on_uninitialized_store(self):
        response = self.client.get("/api/imoveis")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

    def test_create_with_images(self):
        response = self.client.post(
            "/api/upload-imovel",
            data={"title": "Casa", "price": "500000", "details": '[{"x":1}]'},
            files=_images("a.jpg", "b.PNG"),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], 1)

        listings = self.client.get("/api/imoveis").json()
        self.assertEqual(
            listings,
            [
                {
                    "id": 1,
                    "title": "Casa",
                    "price": "500000",
                    "details": [{"x": 1}],
                    "images": ["1img1.jpg", "1img2.png"],
                }
            ],
        )
        self.assertEqual(self.server.objects["imoveis/1img1.jpg"], b"bytes-a.jpg")

    def test_create_without_images(self):
        response = self.client.post("/api/upload-imovel", data={"kind": "venda"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._stored()[0]["images"], [])
        self.assertEqual(self._stored()[0]["details"], [])

    def test_update_form_fields(self):
        self.client.post("/api/upload-imovel", data={"title": "Casa", "price": "1"}, files=_images("a.jpg"))

        response = self.client.put("/api/imoveis/1", data={"price": "2"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"id": 1, "title": "Casa", "price": "2", "details": [], "images": ["1img1.jpg"]},
        )

    def test_update_json_body_with_empty_string(self):
        self.client.post("/api/upload-imovel", data={"title": "Casa"})
        response = self.client.put("/api/imoveis/1", json={"title": "", "details": {"pool": True}})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["title"], "")
        self.assertEqual(self._stored()[0]["details"], {"pool": True})

    def test_update_replaces_images(self):
        self.client.post("/api/upload-imovel", data={"title": "Casa"}, files=_images("a.jpg", "b.jpg"))
        response = self.client.put("/api/imoveis/1", files=_images("c.png"))
        self.assertEqual(response.json()["images"], ["1img1.png"])
        self.assertNotIn("imoveis/1img2.jpg", self.server.objects)

    def test_update_missing_listing_is_404(self):
        response = self.client.put("/api/imoveis/99", data={"price": "2"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "Listing not found"})

    def test_update_rejects_non_object_json(self):
        response = self.client.put("/api/imoveis/1", json=[1, 2])
        self.assertEqual(response.status_code, 400)

    def test_delete(self):
        self.client.post("/api/upload-imovel", data={"title": "Casa"}, files=_images("a.jpg"))
        response = self.client.delete("/api/imoveis/1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True})
        self.assertEqual(self._stored(), [])
        self.assertNotIn("imoveis/1img1.jpg", self.server.objects)

    def test_delete_missing_listing_is_404(self):
        response = self.client.delete("/api/imoveis/5")
        self.assertEqual(response.status_code, 404)

    def test_storage_failure_is_generic_500(self):
        with patch.object(
            self.server, "open", side_effect=RemoteConnectionError("ftp.internal:21 refused")
        ):
            response = self.client.get("/api/imoveis")
        self.assertEqual(response.status_code, 500)
        self.assertNotIn("ftp.internal", response.text)

    def test_unexpected_failure_is_generic_json_500(self):
        self.app.dependency_overrides[get_record_service] = lambda: make_service(
            self.server, scratch_dir="/nonexistent/scratch"
        )
        client = TestClient(self.app, raise_server_exceptions=False)
        response = client.post("/api/upload-imovel", data={"title": "Casa"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": "Listing operation failed"})
        self.assertNotIn(STORE_PATH, self.server.objects)

    def test_update_json_null_is_stored(self):
        self.client.post("/api/upload-imovel", data={"title": "Casa"})
        response = self.client.put("/api/imoveis/1", json={"title": None})
        self.assertEqual(response.status_code, 200)
        self.assertIn("title", self._stored()[0])
        self.assertIsNone(self._stored()[0]["title"])

    def test_debug_routes_hidden_by_default(self):
        self.assertEqual(self.client.get("/debug/db").status_code, 404)


class DebugRoutesTests(unittest.TestCase):
    def setUp(self):
        self.server = RecordingRemoteServer()
        self.service = make_service(self.server)
        settings = Settings(enable_debug_routes=True)
        with patch("listings.app.get_settings", return_value=settings):
            app = create_app()
        app.dependency_overrides[get_record_service] = lambda: self.service
        self.client = TestClient(app)

    def test_list_remote_dir(self):
        self.client.post("/api/upload-imovel", data={"title": "Casa"}, files=_images("a.jpg"))
        response = self.client.get("/debug/ftp-ls", params={"dir": "imoveis"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"dir": "imoveis", "list": ["imoveis/1img1.jpg", "imoveis/dados.json"]},
        )

    def test_store_info(self):
        self.client.post("/api/upload-imovel", data={"title": "Casa"})
        payload = self.client.get("/debug/db").json()
        self.assertEqual(payload["remote_db"], STORE_PATH)
        self.assertGreater(payload["size"], 0)


if __name__ == "__main__":
    unittest.main()
