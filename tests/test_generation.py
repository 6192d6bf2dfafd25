import unittest
from unittest import mock

import httpx

from editaja.dependencies import RateLimiter, get_image_generator
from editaja.services.ai.image_generator import ImageGenerator
from tests.base import ApiTestCase, make_image


def ai_handler(final_status="COMPLETED", create_status=200):
    calls = {"create": 0, "poll": 0, "keys": []}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["keys"].append(request.headers.get("x-freepik-api-key"))
        if request.method == "POST":
            calls["create"] += 1
            if create_status != 200:
                return httpx.Response(create_status, json={"message": "denied"})
            return httpx.Response(200, json={"data": {"task_id": "task-1", "status": "CREATED"}})
        calls["poll"] += 1
        if calls["poll"] < 2:
            return httpx.Response(200, json={"data": {"status": "IN_PROGRESS"}})
        return httpx.Response(
            200, json={"data": {"status": final_status, "generated": ["https://cdn.example/out.png"]}}
        )

    return handler, calls


class TestGenerate(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.put_settings("ai", {"apiKey": "real-key"})
        self.style_id = self.create_style("Anime", "anime look")
        self.use_ai()

    def use_ai(self, **kwargs):
        handler, self.calls = ai_handler(**kwargs)
        generator = ImageGenerator(poll_interval=0, transport=httpx.MockTransport(handler))
        self.app.dependency_overrides[get_image_generator] = lambda: generator

    def generate(self, headers=None, **form):
        data = {"styleId": self.style_id}
        data.update(form)
        return self.client.post(
            "/api/v1/ai/generate",
            data=data,
            files={"image": ("photo.jpg", make_image(), "image/jpeg")},
            headers=headers or {},
        )

    def test_signed_in_user_is_charged(self):
        account = self.signed_in()
        resp = self.generate(account["headers"])

        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["taskId"], "task-1")
        self.assertEqual(body["urls"], ["https://cdn.example/out.png"])
        self.assertEqual(body["tokensRemaining"], 90)
        self.assertEqual(self.calls["keys"][0], "real-key")

    def test_insufficient_tokens(self):
        account = self.signed_in()
        self.db.collection("userTokens").document(account["uid"]).update({"tokens": 5})

        body = self.assert_error(self.generate(account["headers"]), 402)
        self.assertEqual(body["details"], {"tokens": 5, "required": 10})
        self.assertEqual(self.calls["create"], 0)

    def test_failed_task_does_not_charge(self):
        self.use_ai(final_status="FAILED")
        account = self.signed_in()

        self.assert_error(self.generate(account["headers"]), 502, "Task FAILED")
        tokens = self.client.get("/api/v1/users/me/tokens", headers=account["headers"]).json()["tokens"]
        self.assertEqual(tokens, 100)

    def test_provider_error(self):
        self.use_ai(create_status=401)
        account = self.signed_in()
        resp = self.generate(account["headers"])
        self.assert_error(resp, 502)

    def test_anonymous_quota(self):
        headers = {"X-Anonymous-Id": "anon-42"}
        resp = self.generate(headers)
        self.assertEqual(resp.json()["anonymousRemaining"], 0)

        body = self.assert_error(self.generate(headers), 429)
        self.assertEqual(body["details"], {"max": 1, "count": 1})

    def test_prompt_from_request_overrides_style(self):
        account = self.signed_in()
        resp = self.generate(account["headers"], stylePrompt="custom prompt")
        self.assertEqual(resp.status_code, 200)

    def test_missing_fields(self):
        resp = self.client.post("/api/v1/ai/generate", data={"styleId": self.style_id})
        self.assert_error(resp, 400, "Missing image or styleId")

    def test_missing_api_key(self):
        self.put_settings("ai", {"apiKey": "YOUR_AI_API_KEY"})
        account = self.signed_in()
        self.assert_error(self.generate(account["headers"]), 500)

    def test_rate_limited(self):
        account = self.signed_in()
        self.db.collection("userTokens").document(account["uid"]).update({"tokens": 10_000})
        for _ in range(10):
            self.assertEqual(self.generate(account["headers"]).status_code, 200)
        self.assert_error(self.generate(account["headers"]), 429)


class TestApiKeyCheck(ApiTestCase):
    def override(self, status_code):
        transport = httpx.MockTransport(lambda request: httpx.Response(status_code, json={}))
        generator = ImageGenerator(transport=transport)
        self.app.dependency_overrides[get_image_generator] = lambda: generator

    def test_valid_key(self):
        self.override(400)
        resp = self.client.post("/api/v1/ai/test", json={"apiKey": "abc"}, headers=self.admin_key)
        self.assertEqual(resp.json()["valid"], True)

    def test_rejected_key(self):
        self.override(403)
        resp = self.client.post("/api/v1/ai/test", json={"apiKey": "abc"}, headers=self.admin_key)
        self.assertEqual(resp.json()["valid"], False)

    def test_admin_only(self):
        self.override(200)
        self.assert_error(self.client.post("/api/v1/ai/test", json={"apiKey": "abc"}), 401)


class TestSaveGeneration(ApiTestCase):
    def test_anonymous_save(self):
        resp = self.client.post(
            "/api/v1/generations",
            json={"styleId": "s1", "location": {"country": "Indonesia", "city": "Jakarta", "ip": "1.2.3.4"}},
        )
        generation_id = resp.json()["id"]
        stored = self.db.collection("generations").document(generation_id).get().to_dict()
        self.assertEqual(stored["userId"], "anonymous")
        self.assertEqual(stored["location"]["country"], "Indonesia")

    def test_save_failure_still_ok(self):
        with mock.patch("editaja.crud.generation.GenerationCRUD.save_generation", side_effect=RuntimeError("down")):
            resp = self.client.post("/api/v1/generations", json={"styleId": "s1"})
        self.assertEqual(resp.json(), {"ok": True, "id": "save-failed-but-ok"})


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRateLimiter(unittest.TestCase):
    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=2, window_seconds=60, timer=clock)
        self.assertTrue(limiter.is_allowed("a"))
        self.assertTrue(limiter.is_allowed("a"))
        self.assertFalse(limiter.is_allowed("a"))
        self.assertTrue(limiter.is_allowed("b"))

        clock.now += 61
        self.assertTrue(limiter.is_allowed("a"))

    def test_idle_keys_are_forgotten(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, timer=clock)
        for i in range(5000):
            limiter.is_allowed(f"anon-{i}")

        clock.now += 61
        limiter.is_allowed("latest")

        self.assertEqual(list(limiter.requests.keys()), ["latest"])

    def test_tracked_keys_are_bounded(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, max_keys=100)
        for i in range(500):
            limiter.is_allowed(f"anon-{i}")
        self.assertLessEqual(len(limiter.requests), 100)
