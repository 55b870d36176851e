import unittest

import bcrypt
from fastapi.testclient import TestClient

from events_api.app import create_app
from events_api.db import InMemoryDbClient
from events_api.dependencies import get_db_client


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app()
        self.db = InMemoryDbClient()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.client = TestClient(self.app)

    def tearDown(self):
        self.app.dependency_overrides.clear()

    def test_health_check(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "ConnectUtahToday API is running.")

    def test_create_and_list_organizations(self):
        for name in ("Utah Food Bank", "Artists for Good"):
            response = self.client.post("/api/organizations", json={"name": name})
            self.assertEqual(response.status_code, 200)
            self.assertIn("id", response.json())

        response = self.client.get("/api/organizations")
        self.assertEqual(response.status_code, 200)
        names = [org["name"] for org in response.json()["organizations"]]
        self.assertEqual(names, ["Artists for Good", "Utah Food Bank"])

    def test_create_organization_requires_name(self):
        response = self.client.post("/api/organizations", json={"name": "  "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(),
            {"error": "Invalid request", "details": "Organization name is required"},
        )

    def test_opportunities_roundtrip(self):
        org_id = self.db.create_organization("Utah Food Bank")
        response = self.client.post(
            "/api/opportunities",
            json={"organization_id": org_id, "opportunity": "Sort donations"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})

        response = self.client.get(
            "/api/opportunities", params={"organization_id": org_id}
        )
        self.assertEqual(response.json(), {"opportunities": ["Sort donations"]})

    def test_opportunities_require_organization_id(self):
        response = self.client.get("/api/opportunities")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["details"], "organization_id is required")

        response = self.client.post("/api/opportunities", json={"organization_id": 1})
        self.assertEqual(response.status_code, 400)

    def test_opportunity_for_unknown_organization_is_404(self):
        response = self.client.post(
            "/api/opportunities",
            json={"organization_id": 404, "opportunity": "Sort donations"},
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.json(),
            {"error": "Not found", "details": "Organization 404 does not exist"},
        )
        self.assertEqual(self.db.opportunities, [])

    def test_signin_without_password_configured(self):
        response = self.client.post("/api/org-signin", json={"password": "x"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "message": "No password set"})

    def test_signin_checks_bcrypt_hash(self):
        hashed = bcrypt.hashpw(b"volunteer", bcrypt.gensalt(rounds=4)).decode("utf-8")
        self.db.set_password_hash(hashed)

        ok = self.client.post("/api/org-signin", json={"password": "volunteer"})
        self.assertEqual(ok.status_code, 200)
        self.assertTrue(ok.json()["success"])

        wrong = self.client.post("/api/org-signin", json={"password": "nope"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(
            wrong.json(), {"success": False, "message": "Incorrect password"}
        )

    def test_signin_with_malformed_hash_is_rejected(self):
        self.db.set_password_hash("plaintext")
        response = self.client.post("/api/org-signin", json={"password": "plaintext"})
        self.assertEqual(response.status_code, 401)

    def test_images_roundtrip(self):
        response = self.client.post(
            "/api/images",
            json={
                "url": "https://img.example/1700000000000-flyer.png",
                "organization": "Library",
                "date": "2025-08-12T17:00:00Z",
            },
        )
        self.assertEqual(response.status_code, 200)
        created = response.json()
        self.assertEqual(created["organization"], "Library")

        response = self.client.get("/api/images")
        self.assertEqual(response.status_code, 200)
        images = response.json()["images"]
        self.assertEqual(len(images), 1)
        self.assertEqual(images[0]["id"], created["id"])

    def test_unknown_route_is_json_404(self):
        response = self.client.get("/api/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Not found"})


if __name__ == "__main__":
    unittest.main()
