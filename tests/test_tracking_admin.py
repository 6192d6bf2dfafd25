import asyncio
from datetime import timedelta
from unittest import mock

import httpx

from editaja.crud.visitor import VisitorCRUD
from editaja.dependencies import get_geolocation_client, get_image_host
from editaja.services.analytics import AnalyticsService
from editaja.services.geolocation import GeolocationClient, get_client_ip
from editaja.services.image_host import ImageHostClient
from editaja.utils.timeutils import utcnow
from tests.base import ApiTestCase
from tests.test_uploads import HOST, FakeImageHost


class TestVisitorTracking(ApiTestCase):
    def test_track_requires_session_and_page(self):
        resp = self.client.post("/api/v1/visitor/track", json={"page": "/"})
        self.assert_error(resp, 400, "sessionId and page are required")

    def test_track_upserts_session(self):
        body = {"sessionId": "s1", "page": "/", "userId": "u1"}
        self.assertEqual(self.client.post("/api/v1/visitor/track", json=body).json(), {"ok": True})
        first = self.db.collection("visitors").document("s1").get().to_dict()

        self.client.post("/api/v1/visitor/track", json={"sessionId": "s1", "page": "/pricing"})
        second = self.db.collection("visitors").document("s1").get().to_dict()

        self.assertEqual(second["createdAt"], first["createdAt"])
        self.assertEqual(second["page"], "/pricing")
        self.assertEqual(second["userId"], "u1")
        self.assertTrue(second["isActive"])
        self.assertEqual(VisitorCRUD(self.db).active_count(), 1)
        self.assertEqual(VisitorCRUD(self.db).today_count(), 1)

    def test_storage_failure_still_answers_ok(self):
        with mock.patch.object(VisitorCRUD, "track", side_effect=RuntimeError("store down")):
            resp = self.client.post("/api/v1/visitor/track", json={"sessionId": "s1", "page": "/"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["warning"], "Tracking failed but continuing")

    def test_stale_visitors_are_not_active(self):
        self.db.collection("visitors").document("old").set(
            {"isActive": True, "lastSeenAt": utcnow() - timedelta(minutes=10)}
        )
        self.assertEqual(VisitorCRUD(self.db).active_count(), 0)


class TestGeolocation(ApiTestCase):
    def test_client_ip_precedence(self):
        self.assertEqual(get_client_ip({"x-forwarded-for": "1.2.3.4, 10.0.0.1"}), "1.2.3.4")
        self.assertEqual(get_client_ip({"x-real-ip": "5.6.7.8"}, "9.9.9.9"), "5.6.7.8")
        self.assertEqual(get_client_ip({}, "9.9.9.9"), "9.9.9.9")
        self.assertEqual(get_client_ip({}), "unknown")

    def test_local_caller_is_unknown(self):
        data = self.client.get("/api/v1/geolocation").json()
        self.assertEqual(data["country"], "Unknown")
        self.assertEqual(data["city"], "Unknown")

    def test_ip_api_lookup(self):
        def handler(request):
            self.assertEqual(request.url.host, "ip-api.com")
            return httpx.Response(
                200,
                json={"status": "success", "country": "Indonesia", "city": "Jakarta", "countryCode": "ID", "query": "36.1.2.3"},
            )

        client = GeolocationClient(transport=httpx.MockTransport(handler))
        self.app.dependency_overrides[get_geolocation_client] = lambda: client
        data = self.client.get("/api/v1/geolocation", headers={"x-forwarded-for": "36.1.2.3"}).json()
        self.assertEqual(data, {"country": "Indonesia", "city": "Jakarta", "ip": "36.1.2.3", "countryCode": "ID"})

    def test_falls_back_to_ipapi_co(self):
        def handler(request):
            if request.url.host == "ip-api.com":
                return httpx.Response(200, json={"status": "fail"})
            return httpx.Response(200, json={"country_name": "Singapore", "city": "Singapore", "country_code": "SG"})

        client = GeolocationClient(transport=httpx.MockTransport(handler))
        data = asyncio.run(client.lookup("8.8.8.8"))
        self.assertEqual(data["country"], "Singapore")
        self.assertEqual(data["countryCode"], "SG")

    def test_both_providers_down(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        client = GeolocationClient(transport=httpx.MockTransport(handler))
        data = asyncio.run(client.lookup("8.8.8.8"))
        self.assertEqual(data["country"], "Unknown")
        self.assertEqual(data["ip"], "8.8.8.8")


class AdminTestCase(ApiTestCase):
    def add_generation(self, user_id="u1", style_name="Anime", days_ago=0, **extra):
        data = {
            "userId": user_id,
            "styleId": extra.pop("styleId", "style-1"),
            "styleName": style_name,
            "originalImageUrl": "",
            "generatedImageUrls": [],
            "createdAt": utcnow() - timedelta(days=days_ago),
            **extra,
        }
        _, ref = self.db.collection("generations").add(data)
        return ref.id

    def use_image_host(self) -> FakeImageHost:
        host = FakeImageHost()
        client = ImageHostClient(HOST, "host-token", transport=httpx.MockTransport(host))
        self.app.dependency_overrides[get_image_host] = lambda: client
        return host


class TestAdminAnalytics(AdminTestCase):
    def test_requires_admin(self):
        self.assert_error(self.client.get("/api/v1/admin/dashboard"), 401)
        account = self.signed_in()
        self.assert_error(
            self.client.get("/api/v1/admin/dashboard", headers=account["headers"]), 403, "Admin access required"
        )

    def test_invalid_period(self):
        resp = self.client.get("/api/v1/admin/analytics?period=year", headers=self.admin_key)
        self.assert_error(resp, 400)

    def test_analytics_for_period(self):
        self.add_generation("u1", "Anime", days_ago=1, location={"country": "Indonesia", "city": "Bandung"})
        self.add_generation("u1", "Anime", days_ago=2)
        self.add_generation("u2", "Ghibli", days_ago=3)
        self.add_generation("u2", "Ghibli", days_ago=40)

        analytics = self.client.get("/api/v1/admin/analytics?period=30days", headers=self.admin_key).json()["analytics"]

        self.assertEqual(analytics["totalGenerations"], 3)
        self.assertEqual(analytics["totalUsers"], 2)
        self.assertEqual(analytics["averagePerUser"], 1.5)
        self.assertEqual(analytics["popularStyles"][0], {"styleName": "Anime", "count": 2})
        self.assertEqual(analytics["userLocations"], [{"country": "Indonesia", "count": 1}])
        self.assertEqual(analytics["growthRate"], 200.0)
        self.assertEqual(analytics["topUsers"][0]["count"], 2)

        everything = AnalyticsService(self.db).get_analytics("all")
        self.assertEqual(everything["totalGenerations"], 4)
        self.assertEqual(everything["growthRate"], 0.0)

    def test_dashboard(self):
        self.create_style("Anime")
        self.create_style("Retired", status="Inactive")
        self.add_generation("anonymous", "Anime")
        self.add_generation("u1", "Anime", days_ago=10)
        self.client.post("/api/v1/visitor/track", json={"sessionId": "s1", "page": "/"})

        data = self.client.get("/api/v1/admin/dashboard", headers=self.admin_key).json()

        stats = data["stats"]
        self.assertEqual(stats["activeStyles"], 1)
        self.assertEqual(stats["dailyGenerations"], 1)
        self.assertEqual(stats["totalGenerations"], 2)
        self.assertEqual(stats["todayVisitors"], 1)
        self.assertEqual(stats["conversionRate"], 100.0)
        self.assertEqual(len(data["recentGenerations"]), 1)
        self.assertEqual(data["popularStyles"][0], {"name": "Anime", "count": 2})


class TestAdminGallery(AdminTestCase):
    def test_filters_and_style_names(self):
        self.add_generation("u1", "Anime", styleId="a", days_ago=1)
        newest = self.add_generation("u2", "Ghibli", styleId="g")
        self.add_generation("u2", "Anime", styleId="a", days_ago=2)

        everything = self.client.get("/api/v1/admin/gallery", headers=self.admin_key).json()
        self.assertEqual(everything["total"], 3)
        self.assertEqual(everything["generations"][0]["id"], newest)

        by_user = self.client.get("/api/v1/admin/gallery?userId=u2&styleId=a", headers=self.admin_key).json()
        self.assertEqual(by_user["total"], 1)

        names = self.client.get("/api/v1/admin/gallery/style-names", headers=self.admin_key).json()
        self.assertEqual(names["styleNames"], ["Anime", "Ghibli"])

    def test_delete_removes_hosted_images(self):
        host = self.use_image_host()
        generation_id = self.add_generation(
            originalImageUrl=f"{HOST}/u/editaja.com_img_a.jpg",
            generatedImageUrls=["https://cdn.other.example/x.png"],
        )

        resp = self.client.delete(f"/api/v1/admin/gallery/{generation_id}", headers=self.admin_key)

        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["imagesDeleted"], 1)
        self.assertEqual(len(host.requests), 1)
        self.assertFalse(self.db.collection("generations").document(generation_id).get().exists)

        self.assert_error(self.client.delete(f"/api/v1/admin/gallery/{generation_id}", headers=self.admin_key), 404)


class TestAdminUsers(AdminTestCase):
    def test_list_hides_admins_and_includes_anonymous(self):
        user = self.signed_in()
        admin = self.make_admin()
        self.add_generation(user["uid"])
        self.add_generation(user["uid"])
        self.add_generation("anonymous")
        self.add_generation(admin["uid"])

        users = self.client.get("/api/v1/admin/users", headers=self.admin_key).json()["users"]

        ids = [u["id"] for u in users]
        self.assertNotIn(admin["uid"], ids)
        self.assertEqual(users[0]["id"], user["uid"])
        self.assertEqual(users[0]["generationCount"], 2)
        anonymous = next(u for u in users if u["id"] == "anonymous")
        self.assertEqual(anonymous["email"], "Anonymous User")

    def test_user_detail_and_tokens(self):
        user = self.signed_in()
        path = f"/api/v1/admin/users/{user['uid']}"

        detail = self.client.get(path, headers=self.admin_key).json()
        self.assertEqual(detail["user"]["email"], "user@example.com")
        self.assertEqual(detail["tokens"]["tokens"], 100)
        self.assertEqual(detail["generationCount"], 0)
        self.assertFalse(detail["isBetaTester"])

        self.assertEqual(self.client.put(f"{path}/tokens", json={"amount": 40}, headers=self.admin_key).json()["tokens"], 40)
        self.assertEqual(self.client.post(f"{path}/tokens", json={"amount": 5}, headers=self.admin_key).json()["tokens"], 45)
        self.assert_error(
            self.client.post(f"{path}/tokens", json={"amount": 0}, headers=self.admin_key), 400, "Amount must be positive"
        )
        self.assert_error(self.client.put(f"{path}/tokens", json={"amount": -1}, headers=self.admin_key), 400)

        self.assert_error(self.client.get("/api/v1/admin/users/nobody", headers=self.admin_key), 404, "User not found")

    def test_grant_admin(self):
        user = self.signed_in()
        resp = self.client.put(f"/api/v1/admin/users/{user['uid']}/admin", json={"isAdmin": True}, headers=self.admin_key)
        self.assertTrue(resp.json()["isAdmin"])

        profile = self.client.get("/api/v1/admin/dashboard", headers=user["headers"])
        self.assertEqual(profile.status_code, 200)

    def test_revoke_sessions(self):
        user = self.signed_in()
        self.assert_error(self.client.post("/api/v1/admin/users/revoke", json={}, headers=self.admin_key), 400)

        resp = self.client.post("/api/v1/admin/users/revoke", json={"userId": user["uid"]}, headers=self.admin_key)
        self.assertEqual(resp.status_code, 200)
        self.assert_error(self.client.get("/api/v1/users/me", headers=user["headers"]), 401)

    def test_delete_user_cascades(self):
        host = self.use_image_host()
        user = self.signed_in()
        style_id = self.create_style()
        self.client.post("/api/v1/favorites", json={"styleId": style_id}, headers=user["headers"])
        self.add_generation(user["uid"], originalImageUrl=f"{HOST}/u/editaja.com_img_a.jpg")

        resp = self.client.delete(f"/api/v1/admin/users/{user['uid']}", headers=self.admin_key)

        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["generationsDeleted"], 1)
        self.assertEqual(body["favoritesDeleted"], 1)
        self.assertEqual(body["deletedFolders"], ["uploads/u1"])
        self.assertTrue(any(r.url.path.endswith("/delete-user.php") for r in host.requests))
        self.assertFalse(self.db.collection("users").document(user["uid"]).get().exists)
        self.assertFalse(self.db.collection("userTokens").document(user["uid"]).get().exists)


class TestAdminBilling(AdminTestCase):
    def add_topup(self, status, price, diamonds, bonus=0, user_id="u1"):
        self.db.collection("topupTransactions").add(
            {
                "orderId": f"TOPUP-{status}-{price}",
                "userId": user_id,
                "status": status,
                "price": price,
                "diamonds": diamonds,
                "bonus": bonus,
                "createdAt": utcnow(),
            }
        )

    def test_transactions_and_revenue(self):
        self.add_topup("settlement", 10000, 100)
        self.add_topup("settlement", 22500, 250, bonus=25, user_id="u2")
        self.add_topup("pending", 40000, 500)

        data = self.client.get("/api/v1/admin/billing/transactions", headers=self.admin_key).json()
        self.assertEqual(data["total"], 3)
        self.assertEqual(data["revenue"], 32500)
        self.assertEqual(data["diamondsSold"], 375)

        pending = self.client.get("/api/v1/admin/billing/transactions?status=pending", headers=self.admin_key).json()
        self.assertEqual(pending["total"], 1)
        self.assertEqual(pending["revenue"], 0)

        mine = self.client.get("/api/v1/admin/billing/transactions?userId=u2", headers=self.admin_key).json()
        self.assertEqual(mine["total"], 1)

        self.assert_error(
            self.client.get("/api/v1/admin/billing/transactions?status=bogus", headers=self.admin_key),
            400,
            "Invalid status filter",
        )

    def test_plan_management(self):
        defaults = self.client.get("/api/v1/admin/billing/plans", headers=self.admin_key).json()["plans"]
        self.assertEqual(len(defaults), 3)

        bad = self.client.post(
            "/api/v1/admin/billing/plans", json={"diamonds": 50, "price": 5000, "anchorPrice": 5000}, headers=self.admin_key
        )
        self.assert_error(bad, 400, "Anchor price must be greater than price")

        plan = self.client.post(
            "/api/v1/admin/billing/plans", json={"diamonds": 50, "price": 5000, "anchorPrice": 8000}, headers=self.admin_key
        ).json()["plan"]
        plans = self.client.get("/api/v1/admin/billing/plans", headers=self.admin_key).json()["plans"]
        self.assertEqual([p["id"] for p in plans], [plan["id"]])

        updated = self.client.put(
            f"/api/v1/admin/billing/plans/{plan['id']}", json={"popular": True}, headers=self.admin_key
        ).json()["plan"]
        self.assertTrue(updated["popular"])
        self.assertEqual(updated["price"], 5000)

        self.client.delete(f"/api/v1/admin/billing/plans/{plan['id']}", headers=self.admin_key)
        self.assert_error(
            self.client.delete(f"/api/v1/admin/billing/plans/{plan['id']}", headers=self.admin_key),
            404,
            "Top-up plan not found",
        )
