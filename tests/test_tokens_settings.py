from datetime import timedelta

from editaja.crud.tokens import TokenCRUD
from editaja.utils.timeutils import utcnow
from tests.base import ApiTestCase


class TestTokenBalance(ApiTestCase):
    def test_balance_initialised_from_settings(self):
        self.put_settings("tokens", {"initialTokens": 25})
        self.assertEqual(TokenCRUD(self.db).get_balance("u1"), 25)

    def test_deduct_and_insufficient(self):
        tokens = TokenCRUD(self.db)
        tokens.initialize("u1")
        self.assertEqual(tokens.deduct("u1", 30), 70)
        self.assertIsNone(tokens.deduct("u1", 500))
        self.assertEqual(tokens.get_balance("u1"), 70)

    def test_daily_reset_tops_up_but_never_lowers(self):
        yesterday = utcnow() - timedelta(days=1)
        self.db.collection("userTokens").document("low").set({"tokens": 5, "lastResetDate": yesterday})
        self.db.collection("userTokens").document("rich").set({"tokens": 900, "lastResetDate": yesterday})

        tokens = TokenCRUD(self.db)
        self.assertEqual(tokens.get_balance("low"), 100)
        self.assertEqual(tokens.get_balance("rich"), 900)

    def test_same_day_no_reset(self):
        self.db.collection("userTokens").document("u1").set({"tokens": 5, "lastResetDate": utcnow()})
        self.assertEqual(TokenCRUD(self.db).get_balance("u1"), 5)

    def test_add_creates_document(self):
        self.assertEqual(TokenCRUD(self.db).add("fresh", 40), 40)

    def test_set_rejects_negative(self):
        account = self.signed_in()
        resp = self.client.put(
            f"/api/v1/admin/users/{account['uid']}/tokens", json={"amount": -1}, headers=self.admin_key
        )
        self.assert_error(resp, 400, "Token balance cannot be negative")


class TestPublicSettings(ApiTestCase):
    def test_defaults(self):
        body = self.client.get("/api/v1/settings/public").json()

        self.assertEqual(body["general"]["websiteName"], "edit Aja")
        self.assertTrue(body["general"]["watermarkEnabled"])
        self.assertEqual(body["theme"]["primary"], "#0d0df2")
        self.assertTrue(body["socialMedia"]["whatsapp"])
        self.assertEqual(body["tokens"], {"tokenCostPerGenerate": 10, "maxAnonymousGenerations": 1})

    def test_anonymous_quota(self):
        body = self.client.get("/api/v1/settings/anonymous-quota", headers={"X-Anonymous-Id": "anon-1"}).json()
        self.assertEqual(body["remaining"], 1)
        self.assertTrue(body["canGenerate"])


class TestAdminSettings(ApiTestCase):
    def test_requires_admin(self):
        self.assert_error(self.client.get("/api/v1/admin/settings"), 401)
        user = self.signed_in()
        resp = self.client.get("/api/v1/admin/settings", headers=user["headers"])
        self.assert_error(resp, 403, "Admin access required")
        resp = self.client.get("/api/v1/admin/settings", headers={"X-Admin-Key": "wrong"})
        self.assert_error(resp, 401, "Invalid admin key")

    def test_signed_in_admin(self):
        admin = self.make_admin()
        resp = self.client.get("/api/v1/admin/settings", headers=admin["headers"])
        self.assertEqual(resp.status_code, 200)
        self.assertIn("tokens", resp.json()["settings"])

    def test_save_and_read_back(self):
        resp = self.client.put(
            "/api/v1/admin/settings/tokens", json={"tokenCostPerGenerate": 5}, headers=self.admin_key
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["settings"]["tokenCostPerGenerate"], 5)
        self.assertEqual(resp.json()["settings"]["initialTokens"], 100)

        body = self.client.get("/api/v1/settings/public").json()
        self.assertEqual(body["tokens"]["tokenCostPerGenerate"], 5)

    def test_validation_errors(self):
        resp = self.client.put("/api/v1/admin/settings/tokens", json={"initialTokens": -5}, headers=self.admin_key)
        self.assert_error(resp, 400)

        resp = self.client.put("/api/v1/admin/settings/midtrans", json={"serverKey": ""}, headers=self.admin_key)
        self.assert_error(resp, 400)

        resp = self.client.put("/api/v1/admin/settings/general", json={"websiteName": "  "}, headers=self.admin_key)
        self.assert_error(resp, 400)

        resp = self.client.put("/api/v1/admin/settings/unknown", json={}, headers=self.admin_key)
        self.assert_error(resp, 404)

    def test_secrets_are_masked(self):
        self.client.put(
            "/api/v1/admin/settings/midtrans",
            json={"serverKey": "SB-Mid-server-abcdefgh1234", "clientKey": "SB-Mid-client-xyz"},
            headers=self.admin_key,
        )
        self.client.put("/api/v1/admin/settings/ai", json={"apiKey": "FPSX-secret-key-9876"}, headers=self.admin_key)

        settings = self.client.get("/api/v1/admin/settings", headers=self.admin_key).json()["settings"]
        self.assertTrue(settings["midtrans"]["configured"])
        self.assertNotEqual(settings["midtrans"]["serverKey"], "SB-Mid-server-abcdefgh1234")
        self.assertEqual(settings["midtrans"]["clientKey"], "SB-Mid-client-xyz")
        self.assertNotIn("secret", settings["ai"]["apiKey"])

    def test_saving_masked_values_keeps_stored_secrets(self):
        self.client.put(
            "/api/v1/admin/settings/midtrans",
            json={"serverKey": "SB-Mid-server-abcdefgh1234", "clientKey": "SB-Mid-client-xyz"},
            headers=self.admin_key,
        )
        self.client.put("/api/v1/admin/settings/ai", json={"apiKey": "FPSX-secret-key-9876"}, headers=self.admin_key)

        midtrans = self.client.get("/api/v1/admin/settings/midtrans", headers=self.admin_key).json()["settings"]
        midtrans["isProduction"] = True
        resp = self.client.put("/api/v1/admin/settings/midtrans", json=midtrans, headers=self.admin_key)
        self.assertEqual(resp.status_code, 200, resp.text)

        ai = self.client.get("/api/v1/admin/settings/ai", headers=self.admin_key).json()["settings"]
        self.client.put("/api/v1/admin/settings/ai", json=ai, headers=self.admin_key)

        stored = self.db.collection("settings").document("midtrans").get().to_dict()
        self.assertEqual(stored["serverKey"], "SB-Mid-server-abcdefgh1234")
        self.assertTrue(stored["isProduction"])
        self.assertNotIn("configured", stored)
        self.assertEqual(self.db.collection("settings").document("ai").get().to_dict()["apiKey"], "FPSX-secret-key-9876")

    def test_blank_secret_keeps_stored_key_and_new_key_replaces_it(self):
        self.client.put("/api/v1/admin/settings/ai", json={"apiKey": "FPSX-secret-key-9876"}, headers=self.admin_key)

        self.client.put("/api/v1/admin/settings/ai", json={"apiKey": ""}, headers=self.admin_key)
        self.assertEqual(self.db.collection("settings").document("ai").get().to_dict()["apiKey"], "FPSX-secret-key-9876")

        self.client.put("/api/v1/admin/settings/ai", json={"apiKey": "FPSX-rotated-key-0001"}, headers=self.admin_key)
        self.assertEqual(self.db.collection("settings").document("ai").get().to_dict()["apiKey"], "FPSX-rotated-key-0001")

    def test_midtrans_without_server_key_is_rejected(self):
        resp = self.client.put(
            "/api/v1/admin/settings/midtrans",
            json={"serverKey": "", "clientKey": "SB-Mid-client-xyz"},
            headers=self.admin_key,
        )
        self.assert_error(resp, 400)
