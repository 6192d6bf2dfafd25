from tests.base import ApiTestCase


class TestLocalAuth(ApiTestCase):
    def test_signup_creates_user_and_initial_tokens(self):
        account = self.signup("New@Example.com")

        self.assertTrue(account["ok"])
        self.assertEqual(account["email"], "new@example.com")
        self.assertEqual(account["tokens"], 100)
        self.assertTrue(self.db.collection("users").document(account["uid"]).get().exists)

    def test_signup_twice_is_rejected(self):
        self.signup()
        resp = self.client.post("/api/v1/auth/signup", json={"email": "user@example.com", "password": "secret123"})
        self.assert_error(resp, 400, "Email already registered")

    def test_signup_validates_body(self):
        resp = self.client.post("/api/v1/auth/signup", json={"email": "nope", "password": "x"})
        body = self.assert_error(resp, 400)
        self.assertEqual(body["code"], "VALIDATION_ERROR")

    def test_login(self):
        self.signup()
        resp = self.client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "secret123"})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["token"])

        resp = self.client.post("/api/v1/auth/login", json={"email": "user@example.com", "password": "wrong"})
        self.assert_error(resp, 401, "Invalid credentials")

    def test_missing_and_bad_tokens(self):
        self.assert_error(self.client.get("/api/v1/users/me"), 401, "Authorization header missing")
        resp = self.client.get("/api/v1/users/me", headers={"Authorization": "Token abc"})
        self.assert_error(resp, 401, "Invalid authorization header format")
        resp = self.client.get("/api/v1/users/me", headers=self.bearer("not-a-jwt"))
        self.assert_error(resp, 401, "Invalid token")

    def test_session_bootstrap(self):
        account = self.signed_in()
        resp = self.client.post("/api/v1/auth/session", headers=account["headers"])
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["tokens"], 100)


class TestUserEndpoints(ApiTestCase):
    def test_profile(self):
        account = self.signed_in()
        resp = self.client.get("/api/v1/users/me", headers=account["headers"])

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["user"]["uid"], account["uid"])
        self.assertEqual(body["tokens"], 100)
        self.assertFalse(body["isAdmin"])
        self.assertFalse(body["isBetaTester"])

    def test_profile_reports_admin_flag(self):
        admin = self.make_admin()
        resp = self.client.get("/api/v1/users/me", headers=admin["headers"])
        self.assertTrue(resp.json()["isAdmin"])

    def test_tokens(self):
        account = self.signed_in()
        resp = self.client.get("/api/v1/users/me/tokens", headers=account["headers"])
        self.assertEqual(resp.json(), {"ok": True, "tokens": 100})

    def test_generations_history_and_delete(self):
        account = self.signed_in()
        other = self.signed_in("other@example.com")
        for headers in (account["headers"], other["headers"]):
            resp = self.client.post(
                "/api/v1/generations",
                json={"styleId": "s1", "styleName": "Anime", "generatedImageUrls": ["https://cdn.example/a.png"]},
                headers=headers,
            )
            self.assertEqual(resp.status_code, 200)

        mine = self.client.get("/api/v1/users/me/generations", headers=account["headers"]).json()["generations"]
        theirs = self.client.get("/api/v1/users/me/generations", headers=other["headers"]).json()["generations"]
        self.assertEqual(len(mine), 1)

        resp = self.client.delete(f"/api/v1/users/me/generations/{theirs[0]['id']}", headers=account["headers"])
        self.assert_error(resp, 403)

        resp = self.client.delete(f"/api/v1/users/me/generations/{mine[0]['id']}", headers=account["headers"])
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/api/v1/users/me/generations", headers=account["headers"]).json()["generations"], [])

    def test_topups_are_listed_for_owner_only(self):
        account = self.signed_in()
        self.db.collection("topupTransactions").document("t1").set(
            {"userId": account["uid"], "orderId": "TOPUP-1", "diamonds": 100, "price": 10000, "status": "pending"}
        )
        self.db.collection("topupTransactions").document("t2").set(
            {"userId": "someone-else", "orderId": "TOPUP-2", "diamonds": 100, "price": 10000, "status": "pending"}
        )
        resp = self.client.get("/api/v1/users/me/topups", headers=account["headers"])
        self.assertEqual([t["orderId"] for t in resp.json()["transactions"]], ["TOPUP-1"])

    def test_revoked_session_is_rejected(self):
        account = self.signed_in()
        resp = self.client.post("/api/v1/admin/users/revoke", json={"userId": account["uid"]}, headers=self.admin_key)
        self.assertEqual(resp.json(), {"ok": True, "message": "User session revoked"})

        resp = self.client.get("/api/v1/users/me", headers=account["headers"])
        self.assert_error(resp, 401, "Session revoked")


class TestHealth(ApiTestCase):
    def test_health_and_root(self):
        self.assertTrue(self.client.get("/health").json()["ok"])
        self.assertTrue(self.client.get("/").json()["ok"])

    def test_unknown_route_uses_envelope(self):
        resp = self.client.get("/api/v1/nothing-here")
        self.assert_error(resp, 404)
