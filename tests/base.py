"""Shared test case: fresh store, cleared caches and a TestClient per test."""

import io
import unittest
from typing import Any, Dict, Optional

from fastapi.testclient import TestClient
from PIL import Image

from editaja.crud.settings import clear_settings_cache
from editaja.dependencies import generation_rate_limiter
from editaja.main import app
from editaja.services.local_store import get_local_store

ADMIN_KEY = "test-admin-key"


def make_image(fmt: str = "JPEG", size=(64, 48), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = get_local_store()
        self.db.reset()
        clear_settings_cache()
        generation_rate_limiter.reset()
        app.dependency_overrides.clear()
        self.app = app
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def signup(self, email: str = "user@example.com", password: str = "secret123") -> Dict[str, Any]:
        resp = self.client.post("/api/v1/auth/signup", json={"email": email, "password": password})
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    @staticmethod
    def bearer(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def signed_in(self, email: str = "user@example.com") -> Dict[str, Any]:
        """Sign up and return the account with ready-made auth headers."""
        account = self.signup(email)
        account["headers"] = self.bearer(account["token"])
        return account

    def make_admin(self, email: str = "admin@example.com") -> Dict[str, Any]:
        account = self.signed_in(email)
        self.db.collection("admins").document(account["uid"]).set({"isAdmin": True})
        return account

    @property
    def admin_key(self) -> Dict[str, str]:
        return {"X-Admin-Key": ADMIN_KEY}

    def put_settings(self, name: str, values: Dict[str, Any]) -> None:
        self.db.collection("settings").document(name).set(values)
        clear_settings_cache()

    def create_style(self, name: str = "Anime", prompt: str = "turn into anime", status: str = "Active", **extra) -> str:
        body = {"name": name, "prompt": prompt, "status": status, **extra}
        resp = self.client.post("/api/v1/admin/styles", json=body, headers=self.admin_key)
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()["id"]

    def assert_error(self, resp, status_code: int, message: Optional[str] = None):
        self.assertEqual(resp.status_code, status_code, resp.text)
        body = resp.json()
        self.assertIs(body["ok"], False)
        if message is not None:
            self.assertEqual(body["error"], message)
        return body
