import json

from tests.base import ApiTestCase


class TestStyles(ApiTestCase):
    def test_public_list_only_active(self):
        self.create_style("Anime", "anime look")
        self.create_style("Hidden", "hidden look", status="Inactive")

        styles = self.client.get("/api/v1/styles").json()["styles"]
        self.assertEqual([s["name"] for s in styles], ["Anime"])

        admin_styles = self.client.get("/api/v1/admin/styles", headers=self.admin_key).json()["styles"]
        self.assertEqual(len(admin_styles), 2)

    def test_get_style_and_404(self):
        style_id = self.create_style()
        resp = self.client.get(f"/api/v1/styles/{style_id}")
        self.assertEqual(resp.json()["style"]["prompt"], "turn into anime")
        self.assert_error(self.client.get("/api/v1/styles/missing"), 404, "Style not found")

    def test_create_requires_name_and_prompt(self):
        resp = self.client.post("/api/v1/admin/styles", json={"name": "x"}, headers=self.admin_key)
        self.assert_error(resp, 400)

    def test_search_prefix_then_contains(self):
        self.create_style("Watercolor", "soft paint", tags=["art"])
        self.create_style("Cyberpunk", "neon city at night", category="Futuristic")
        self.create_style("Neon Secret", "hidden", status="Inactive")

        names = [s["name"] for s in self.client.get("/api/v1/styles/search", params={"q": "Water"}).json()["styles"]]
        self.assertEqual(names, ["Watercolor"])

        names = [s["name"] for s in self.client.get("/api/v1/styles/search", params={"q": "neon"}).json()["styles"]]
        self.assertEqual(names, ["Cyberpunk"])

        names = [s["name"] for s in self.client.get("/api/v1/styles/search", params={"q": "ART"}).json()["styles"]]
        self.assertEqual(names, ["Watercolor"])

    def test_update_and_delete(self):
        style_id = self.create_style()
        resp = self.client.put(
            f"/api/v1/admin/styles/{style_id}", json={"status": "Inactive"}, headers=self.admin_key
        )
        self.assertEqual(resp.json()["style"]["status"], "Inactive")

        resp = self.client.delete(f"/api/v1/admin/styles/{style_id}", headers=self.admin_key)
        self.assertEqual(resp.status_code, 200)
        self.assert_error(self.client.delete(f"/api/v1/admin/styles/{style_id}", headers=self.admin_key), 404)

    def test_delete_all_returns_count(self):
        self.create_style("A", "a")
        self.create_style("B", "b")
        resp = self.client.delete("/api/v1/admin/styles", headers=self.admin_key)
        self.assertEqual(resp.json()["deleted"], 2)

    def test_import_skips_duplicate_prompts(self):
        self.create_style("Existing", "Make It Pop")
        items = [
            {"prompt": "make it pop"},
            {"prompt": "pixel art", "tags": ["retro", 3], "status": "Inactive"},
            {"prompt": "PIXEL ART"},
            {"imageUrl": "no prompt"},
        ]
        resp = self.client.post(
            "/api/v1/admin/styles/import",
            files={"file": ("styles.json", json.dumps(items), "application/json")},
            headers=self.admin_key,
        )
        body = resp.json()

        self.assertEqual(body["created"], 1)
        self.assertEqual(body["skipped"], 2)
        self.assertEqual(len(body["errors"]), 1)
        imported = self.client.get(f"/api/v1/styles/{body['ids'][0]}").json()["style"]
        self.assertTrue(imported["name"].startswith("STYLE-"))
        self.assertEqual(imported["status"], "Inactive")
        self.assertEqual(imported["tags"], ["retro"])

    def test_import_rejects_non_array(self):
        resp = self.client.post(
            "/api/v1/admin/styles/import",
            files={"file": ("styles.json", json.dumps({"prompt": "x"}), "application/json")},
            headers=self.admin_key,
        )
        self.assert_error(resp, 400, "JSON must be an array of styles")

    def test_trending_by_usage_with_fallback(self):
        first = self.create_style("First", "one")
        second = self.create_style("Second", "two")

        fallback = self.client.get("/api/v1/trending-styles").json()["styles"]
        self.assertEqual(len(fallback), 2)

        for style_id in (second, second, first):
            self.client.post("/api/v1/generations", json={"styleId": style_id, "styleName": "x"})

        trending = self.client.get("/api/v1/styles/trending").json()["styles"]
        self.assertEqual([s["id"] for s in trending], [second, first])
        self.assertEqual(trending[0]["usageCount"], 2)


class TestFavorites(ApiTestCase):
    def test_add_list_check_remove(self):
        account = self.signed_in()
        style_id = self.create_style("Anime", "anime look", imageUrl="/uploads/styles/a.png")

        resp = self.client.post("/api/v1/favorites", json={"styleId": style_id}, headers=account["headers"])
        self.assertEqual(resp.json()["id"], f"{account['uid']}_{style_id}")

        favorites = self.client.get("/api/v1/favorites", headers=account["headers"]).json()["favorites"]
        self.assertEqual(favorites[0]["styleName"], "Anime")
        self.assertEqual(favorites[0]["styleImageUrl"], "/uploads/styles/a.png")

        ids = self.client.get("/api/v1/favorites/ids", headers=account["headers"]).json()["styleIds"]
        self.assertEqual(ids, [style_id])
        self.assertTrue(self.client.get(f"/api/v1/favorites/{style_id}", headers=account["headers"]).json()["isFavorite"])

        self.client.delete(f"/api/v1/favorites/{style_id}", headers=account["headers"])
        self.assertFalse(self.client.get(f"/api/v1/favorites/{style_id}", headers=account["headers"]).json()["isFavorite"])

    def test_unknown_style(self):
        account = self.signed_in()
        resp = self.client.post("/api/v1/favorites", json={"styleId": "missing"}, headers=account["headers"])
        self.assert_error(resp, 404)

    def test_requires_auth(self):
        self.assert_error(self.client.get("/api/v1/favorites"), 401)
