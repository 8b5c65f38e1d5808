"""
Tests for the dashboard app-management API and overview page.
"""
import os
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from launcher import create_app
from launcher.features.gateway.health import ProbeResult
from launcher.models.application import get_registry

ADMIN_PASSWORD = "correct-horse"


class StubProber:
    def __init__(self, reachable=True):
        self.reachable = reachable

    def probe(self, url):
        if self.reachable:
            return ProbeResult(True, status_code=200)
        return ProbeResult(False, error="connection error: [Errno 111] Connection refused")

    def is_reachable(self, url):
        return self.probe(url).reachable


class TestDashboardApi(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        tmp = Path(self.tmp.name)
        self.prober = StubProber()
        self.app = create_app(
            {
                "TESTING": True,
                "SECRET_KEY": "test-secret",
                "REGISTRY_PATH": str(tmp / "apps_registry.json"),
                "ADMIN_CONFIG_PATH": str(tmp / "admin_config.json"),
                "ADMIN_USERNAME": "admin",
                "ADMIN_PASSWORD": ADMIN_PASSWORD,
            },
            prober=self.prober,
        )
        self.client = self.app.test_client()
        resp = self.client.post("/login", data={"username": "admin", "password": ADMIN_PASSWORD})
        self.assertEqual(resp.status_code, 302)

    def tearDown(self):
        self.tmp.cleanup()

    def create(self, **overrides):
        payload = {
            "name": "CRM",
            "slug": "crm",
            "app_url": "https://crm.internal",
            "category": "Sales",
            "department": "Revenue",
            "tags": ["sales", "core"],
            "status": "running",
            "active": True,
        }
        payload.update(overrides)
        return self.client.post("/dashboard/api/apps", json=payload)

    def test_create_and_list(self):
        resp = self.create()
        self.assertEqual(resp.status_code, 201)
        app = resp.get_json()["app"]
        self.assertEqual(app["slug"], "crm")
        self.assertEqual(app["tags"], ["sales", "core"])

        listing = self.client.get("/dashboard/api/apps").get_json()
        self.assertEqual([a["slug"] for a in listing["apps"]], ["crm"])

    def test_create_from_form_data(self):
        resp = self.client.post(
            "/dashboard/api/apps",
            data={"name": "HR Portal", "app_url": "https://hr.internal", "tags": "people, onboarding", "active": "false"},
        )
        self.assertEqual(resp.status_code, 201)
        app = resp.get_json()["app"]
        self.assertEqual(app["slug"], "hr-portal")
        self.assertEqual(app["tags"], ["people", "onboarding"])
        self.assertFalse(app["active"])

    def test_create_requires_name_and_url(self):
        resp = self.client.post("/dashboard/api/apps", json={"name": "CRM"})
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.get_json()["success"])

    def test_duplicate_and_invalid_input_are_400(self):
        self.create()
        resp = self.create(name="CRM 2")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["error"], "App already registered")

        resp = self.create(slug="other", app_url="not a url")
        self.assertEqual(resp.status_code, 400)

    def test_update(self):
        app_id = self.create().get_json()["app"]["id"]
        resp = self.client.put(f"/dashboard/api/apps/{app_id}", json={"status": "under maintenance", "description": "Quarter close"})
        self.assertEqual(resp.status_code, 200)
        app = resp.get_json()["app"]
        self.assertEqual(app["status"], "under maintenance")
        self.assertEqual(app["description"], "Quarter close")
        self.assertEqual(app["app_url"], "https://crm.internal")

    def test_update_from_edit_form(self):
        app_id = self.create().get_json()["app"]["id"]
        resp = self.client.put(
            f"/dashboard/api/apps/{app_id}",
            data={
                "name": "CRM Suite",
                "slug": "crm",
                "app_url": "https://crm2.internal",
                "tags": "sales, suite",
                "status": "running",
                "active": "false",
            },
        )
        self.assertEqual(resp.status_code, 200)
        app = resp.get_json()["app"]
        self.assertEqual(app["name"], "CRM Suite")
        self.assertEqual(app["app_url"], "https://crm2.internal")
        self.assertEqual(app["tags"], ["sales", "suite"])
        self.assertFalse(app["active"])

    def test_list_filters_by_search_and_category(self):
        self.create(description="Leads and accounts")
        self.create(name="Wiki", slug="wiki", app_url="https://wiki.internal", category="Docs", description="Team notes")

        def slugs(query):
            return [a["slug"] for a in self.client.get(f"/dashboard/api/apps?{query}").get_json()["apps"]]

        self.assertEqual(slugs(""), ["crm", "wiki"])
        self.assertEqual(slugs("q=accounts"), ["crm"])
        self.assertEqual(slugs("category=Docs"), ["wiki"])
        self.assertEqual(slugs("q=accounts&category=Docs"), [])

    def test_apps_page_filters_and_offers_edit(self):
        self.create()
        self.create(name="Wiki", slug="wiki", app_url="https://wiki.internal", category="Docs")

        resp = self.client.get("/dashboard/apps?category=Docs")
        self.assertEqual(resp.status_code, 200)
        self.assertIn(b"wiki.internal", resp.data)
        self.assertNotIn(b"crm.internal", resp.data)
        self.assertIn(b'id="edit-form"', resp.data)

    def test_missing_app_is_404(self):
        for method, path in (
            ("get", "/dashboard/api/apps/missing"),
            ("put", "/dashboard/api/apps/missing"),
            ("delete", "/dashboard/api/apps/missing"),
            ("post", "/dashboard/api/apps/missing/toggle"),
            ("get", "/dashboard/api/apps/missing/health"),
        ):
            with self.subTest(method=method, path=path):
                kwargs = {"json": {"name": "x"}} if method == "put" else {}
                resp = getattr(self.client, method)(path, **kwargs)
                self.assertEqual(resp.status_code, 404)

    def test_toggle_and_delete(self):
        app_id = self.create().get_json()["app"]["id"]

        resp = self.client.post(f"/dashboard/api/apps/{app_id}/toggle")
        self.assertFalse(resp.get_json()["app"]["active"])
        with self.app.app_context():
            self.assertEqual(get_registry().list_active(), [])

        resp = self.client.delete(f"/dashboard/api/apps/{app_id}")
        self.assertTrue(resp.get_json()["success"])
        self.assertEqual(self.client.get("/dashboard/api/apps").get_json()["apps"], [])

    def test_health_reports_probe_next_to_declared_status(self):
        app_id = self.create(status="running").get_json()["app"]["id"]
        self.prober.reachable = False

        data = self.client.get(f"/dashboard/api/apps/{app_id}/health").get_json()

        self.assertEqual(data["declared_status"], "running")
        self.assertFalse(data["probe"]["reachable"])
        self.assertIn("Connection refused", data["probe"]["error"])

    def test_overview_stats(self):
        self.create()
        self.create(name="Wiki", slug="wiki", app_url="https://wiki.internal", status="under maintenance", active=False)

        resp = self.client.get("/dashboard")
        self.assertEqual(resp.status_code, 200)
        from launcher.features.dashboard.routes.pages import registry_stats

        with self.app.app_context():
            stats = registry_stats(get_registry().list())
        self.assertEqual(stats, {"total": 2, "active": 1, "inactive": 1, "running": 1, "maintenance": 1})

    def test_profile_password_change(self):
        resp = self.client.post(
            "/profile",
            data={"current_password": ADMIN_PASSWORD, "new_password": "new-password-1", "confirm_password": "new-password-1"},
        )
        self.assertEqual(resp.status_code, 302)
        self.client.get("/logout")

        resp = self.client.post("/login", data={"username": "admin", "password": ADMIN_PASSWORD})
        self.assertEqual(resp.status_code, 401)
        resp = self.client.post("/login", data={"username": "admin", "password": "new-password-1"})
        self.assertEqual(resp.status_code, 302)


if __name__ == '__main__':
    unittest.main()
