import io
import json
import os
import tempfile
from pathlib import Path

import httpx
from PIL import Image

from editaja.dependencies import get_file_storage, get_image_host
from editaja.services.file_storage import LocalFileStorage
from editaja.services.image_compression import compress_image, detect_image_format
from editaja.services.image_host import ImageHostClient, extract_image_id, guess_extension
from editaja.utils.exceptions import ValidationError
from tests.base import ApiTestCase, make_image

HOST = "https://gambar.editaja.com"


class FakeImageHost:
    """Records requests made to the PHP endpoints and answers like the real host."""

    def __init__(self, upload_status="success"):
        self.requests = []
        self.upload_status = upload_status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.url.host == "cdn.example":
            if path.endswith(".gif"):
                return httpx.Response(200, content=make_image("GIF"), headers={"content-type": "image/gif"})
            if path.endswith(".bin"):
                return httpx.Response(200, content=b"not an image at all", headers={"content-type": "image/jpeg"})
            return httpx.Response(200, content=make_image("PNG"), headers={"content-type": "image/jpeg"})
        if path.endswith("/upload.php"):
            if self.upload_status != "success":
                return httpx.Response(413, json={"status": "error", "message": "File too large"})
            return httpx.Response(
                200,
                json={
                    "status": "success",
                    "file_id": "editaja.com_img_abc",
                    "original_url": f"{HOST}/u/editaja.com_img_abc.jpg",
                    "optimized_url": f"{HOST}/u/editaja.com_img_abc_opt.webp",
                },
            )
        if path.endswith("/delete.php"):
            body = json.loads(request.content)
            return httpx.Response(200, json={"status": "success", "deleted": body["id"], "files_deleted": [body["id"]]})
        if path.endswith("/delete-user.php"):
            return httpx.Response(
                200, json={"status": "success", "deleted_folders": ["uploads/u1"], "deleted_files": ["a.jpg"]}
            )
        return httpx.Response(404, json={"status": "error", "message": "not found"})

    def form_text(self, index=0) -> str:
        return self.requests[index].content.decode("latin-1")


class UploadTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.host = FakeImageHost()
        client = ImageHostClient(HOST, "host-token", transport=httpx.MockTransport(self.host))
        self.app.dependency_overrides[get_image_host] = lambda: client
        self.uploads = tempfile.TemporaryDirectory()
        self.addCleanup(self.uploads.cleanup)
        storage = LocalFileStorage(self.uploads.name)
        self.app.dependency_overrides[get_file_storage] = lambda: storage


class TestUpload(UploadTestCase):
    def test_original_goes_to_image_host(self):
        account = self.signed_in()
        resp = self.client.post(
            "/api/v1/upload",
            data={"type": "original"},
            files={"file": ("me.png", make_image("PNG"), "image/png")},
            headers=account["headers"],
        )

        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["url"], f"{HOST}/u/editaja.com_img_abc_opt.webp")
        form = self.host.form_text()
        self.assertIn(account["uid"], form)
        self.assertIn('name="watermark_enabled"\r\n\r\n1', form)
        self.assertEqual(self.host.requests[0].headers["authorization"], "host-token")

    def test_watermark_setting_is_forwarded(self):
        self.put_settings("general", {"watermarkEnabled": False})
        self.client.post(
            "/api/v1/upload",
            data={"type": "original", "userId": "guest"},
            files={"file": ("me.jpg", make_image(), "image/jpeg")},
        )
        self.assertIn('name="watermark_enabled"\r\n\r\n0', self.host.form_text())

    def test_style_upload_is_stored_locally(self):
        resp = self.client.post(
            "/api/v1/upload",
            data={"type": "style"},
            files={"file": ("preview.png", make_image("PNG"), "image/png")},
        )
        url = resp.json()["url"]
        self.assertTrue(url.startswith("/uploads/styles/style_"))
        self.assertTrue((Path(self.uploads.name) / url[len("/uploads/"):]).is_file())
        self.assertEqual(self.host.requests, [])

    def test_rejects_non_images_and_bad_type(self):
        resp = self.client.post(
            "/api/v1/upload", data={"type": "original"}, files={"file": ("a.txt", b"hello", "text/plain")}
        )
        self.assert_error(resp, 400, "File must be an image")

        resp = self.client.post(
            "/api/v1/upload", data={"type": "generated"}, files={"file": ("a.jpg", make_image(), "image/jpeg")}
        )
        self.assert_error(resp, 400)

        self.assert_error(self.client.post("/api/v1/upload", data={"type": "original"}), 400, "No file provided")

    def test_image_host_failure(self):
        self.host.upload_status = "error"
        resp = self.client.post(
            "/api/v1/upload", data={"type": "original"}, files={"file": ("a.jpg", make_image(), "image/jpeg")}
        )
        self.assert_error(resp, 502, "File too large")

    def test_delete_local_upload(self):
        url = self.client.post(
            "/api/v1/upload", data={"type": "style"}, files={"file": ("p.png", make_image("PNG"), "image/png")}
        ).json()["url"]

        self.assert_error(self.client.delete("/api/v1/upload", params={"url": url}), 401)

        resp = self.client.delete("/api/v1/upload", params={"url": url}, headers=self.admin_key)
        self.assertTrue(resp.json()["deleted"])
        resp = self.client.delete("/api/v1/upload", params={"url": url}, headers=self.admin_key)
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["deleted"])

        resp = self.client.delete("/api/v1/upload", params={"url": "/uploads/../../etc/passwd"}, headers=self.admin_key)
        self.assert_error(resp, 400, "Invalid file path")

    def test_settings_logo(self):
        resp = self.client.post(
            "/api/v1/upload/settings",
            data={"type": "logo"},
            files={"file": ("logo.png", make_image("PNG"), "image/png")},
            headers=self.admin_key,
        )
        url = resp.json()["url"]
        self.assertTrue(url.startswith("/uploads/settings/logo_"))
        general = self.client.get("/api/v1/settings/public").json()["general"]
        self.assertEqual(general["logoPath"], url)

    def test_settings_favicon_size_limit(self):
        resp = self.client.post(
            "/api/v1/upload/settings",
            data={"type": "favicon"},
            files={"file": ("favicon.ico", b"\x00" * (1024 * 1024 + 1), "image/x-icon")},
            headers=self.admin_key,
        )
        self.assert_error(resp, 400, "File size must be less than 1MB")

    def test_settings_upload_rejects_other_extensions(self):
        for name in ("logo.html", "logo.svg", "logo.php"):
            resp = self.client.post(
                "/api/v1/upload/settings",
                data={"type": "logo"},
                files={"file": (name, make_image("PNG"), "image/png")},
                headers=self.admin_key,
            )
            self.assert_error(resp, 400, "Invalid file type. Allowed: png, jpg, jpeg, webp, gif, ico")
        self.assertEqual(list(Path(self.uploads.name).glob("settings/*")), [])

    def test_save_generated_copies_from_cdn(self):
        resp = self.client.post(
            "/api/v1/image/save-generated",
            json={"imageUrl": "https://cdn.example/out.jpg", "userId": "u1", "index": 2},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        upload = self.host.requests[1]
        form = upload.content.decode("latin-1")
        # Magic bytes win over the mislabelled content type
        self.assertIn("_2.png", form)
        self.assertIn('name="image_type"\r\n\r\ngenerated', form)

    def test_save_generated_reencodes_gif_as_png(self):
        resp = self.client.post(
            "/api/v1/image/save-generated",
            json={"imageUrl": "https://cdn.example/out.gif", "userId": "u1", "index": 0},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        form = self.host.form_text(1)
        self.assertIn("_0.png", form)
        self.assertIn("Content-Type: image/png", form)
        self.assertIn("\x89PNG", form)
        self.assertNotIn("GIF8", form)

    def test_save_generated_rejects_undecodable_bytes(self):
        resp = self.client.post(
            "/api/v1/image/save-generated",
            json={"imageUrl": "https://cdn.example/out.bin", "userId": "u1"},
        )
        self.assert_error(resp, 400, "Generated file is not a supported image")
        self.assertEqual(len(self.host.requests), 1)


class TestAdminImages(UploadTestCase):
    def test_delete_image(self):
        resp = self.client.post(
            "/api/v1/admin/images/delete",
            json={"imageUrl": f"{HOST}/u/editaja.com_img_abc.jpg", "userId": "u1"},
            headers=self.admin_key,
        )
        self.assertEqual(resp.json()["deleted"], "editaja.com_img_abc.jpg")

    def test_delete_image_rejects_foreign_names(self):
        resp = self.client.post(
            "/api/v1/admin/images/delete", json={"imageUrl": "https://x.test/photo.jpg"}, headers=self.admin_key
        )
        self.assert_error(resp, 400)

    def test_delete_user_folder(self):
        resp = self.client.post("/api/v1/admin/images/delete-user", json={"userId": "u1"}, headers=self.admin_key)
        self.assertEqual(resp.json()["deleted_folders"], ["uploads/u1"])


class TestImageHelpers(ApiTestCase):
    def test_extract_image_id(self):
        self.assertEqual(extract_image_id(f"{HOST}/a/editaja.com_img_1.webp?x=1"), "editaja.com_img_1.webp")
        with self.assertRaises(ValidationError):
            extract_image_id(f"{HOST}/a/other.webp")

    def test_guess_extension(self):
        self.assertEqual(guess_extension("image/png"), "png")
        self.assertEqual(guess_extension(None, "https://cdn.example/a.jpeg"), "jpg")
        self.assertEqual(guess_extension("image/jpeg", data=make_image("PNG")), "png")
        self.assertEqual(guess_extension("application/octet-stream", "https://cdn.example/a"), "jpg")
        self.assertEqual(guess_extension("image/jpeg", data=make_image("GIF")), "gif")

    def test_compress_small_image_unchanged(self):
        data = make_image("PNG")
        self.assertEqual(compress_image(data, 3), (data, "image/png"))

    def test_compress_large_image(self):
        noisy = Image.frombytes("RGB", (1200, 900), os.urandom(1200 * 900 * 3))
        buffer = io.BytesIO()
        noisy.save(buffer, format="PNG")
        data = buffer.getvalue()

        result, content_type = compress_image(data, max_size_mb=0.5)
        self.assertEqual(content_type, "image/jpeg")
        self.assertEqual(detect_image_format(result), "jpg")
        self.assertLess(len(result), len(data))

    def test_undecodable_data_passes_through(self):
        data = b"\xff\xd8\xff" + b"0" * 4096
        self.assertEqual(compress_image(data, max_size_mb=0.001), (data, "image/jpeg"))
