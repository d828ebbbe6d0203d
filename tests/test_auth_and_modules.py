import os
import unittest
from unittest.mock import patch

from assettrack import create_app
from assettrack.config import Config
from assettrack.db import close_db, get_db
from assettrack.seed import seed_demo_data
from assettrack.security import reset_rate_limiter_for_tests
from tests.helpers.temp_db import TempDbSandbox


class AuthAndModulesTest(unittest.TestCase):
    def setUp(self) -> None:
        reset_rate_limiter_for_tests()
        self._temp_db = TempDbSandbox(prefix="auth_modules")
        config = self._temp_db.make_config(
            Config,
            TESTING=False,
            AUTH_ENABLED=True,
            DB_AUTO_INIT=True,
            SECRET_KEY="auth-test-secret",
        )
        with patch.dict(os.environ, {"FLASK_ENV": "development"}):
            self.app = create_app(config)
        with self.app.app_context():
            seed_demo_data(get_db())
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()
        reset_rate_limiter_for_tests()

    def _login(self, username: str, password: str):
        return self.client.post("/api/auth/login", json={"username": username, "password": password})

    def test_api_requires_session(self) -> None:
        response = self.client.get("/api/assets", headers={"X-Request-Id": "req-auth"})
        self.assertEqual(response.status_code, 401)
        payload = response.get_json()
        self.assertEqual(payload["error"], "auth_required")
        self.assertEqual(payload["request_id"], "req-auth")

    def test_health_is_public(self) -> None:
        self.assertEqual(self.client.get("/health").status_code, 200)

    def test_login_me_logout(self) -> None:
        response = self._login(" Admin ", "admin")
        self.assertEqual(response.status_code, 200)
        user = response.get_json()["user"]
        self.assertTrue(user["is_admin"])
        self.assertIn("user-management", [module["id"] for module in user["modules"]])

        me = self.client.get("/api/auth/me").get_json()["user"]
        self.assertEqual(me["username"], "admin")
        self.assertEqual(self.client.get("/api/assets").status_code, 200)

        self.client.post("/api/auth/logout")
        self.assertEqual(self.client.get("/api/assets").status_code, 401)

    def test_invalid_credentials(self) -> None:
        response = self._login("admin", "errada")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["error"], "auth_invalid_credentials")

        missing = self._login("admin", "")
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.get_json()["error"], "auth_missing_credentials")

    def test_module_guard_blocks_unassigned_modules(self) -> None:
        self.assertEqual(self._login("diretoria", "diretoria").status_code, 200)
        self.assertEqual(self.client.get("/api/dashboard").status_code, 200)
        self.assertEqual(self.client.get("/api/purchase-orders").status_code, 200)

        response = self.client.get("/api/users")
        self.assertEqual(response.status_code, 403)
        payload = response.get_json()
        self.assertEqual(payload["error"], "module_forbidden")
        self.assertEqual(payload["module"], "user-management")

    def test_user_management_api(self) -> None:
        self._login("admin", "admin")
        created = self.client.post(
            "/api/users",
            json={
                "name": "Compras",
                "username": "compras",
                "password": "compras123",
                "modules": ["purchase-orders"],
                "can_execute": True,
            },
        )
        self.assertEqual(created.status_code, 201, msg=created.get_data(as_text=True))
        user = created.get_json()
        self.assertNotIn("password", user)
        self.assertTrue(user["can_execute"])
        self.assertFalse(user["can_approve"])

        listing = self.client.get("/api/users").get_json()
        self.assertIn("compras", [item["username"] for item in listing["items"]])
        self.assertEqual(len(listing["modules"]), 12)

        renamed = self.client.put(
            f"/api/users/{user['id']}",
            json={"name": "Compras TI", "username": "compras", "modules": ["purchase-orders", "assets"]},
        )
        self.assertEqual(renamed.status_code, 200)
        self.assertEqual(renamed.get_json()["modules"], ["purchase-orders", "assets"])

        self.client.post("/api/auth/logout")
        self.assertEqual(self._login("compras", "compras123").status_code, 200)
        self.assertEqual(self.client.get("/api/assets").status_code, 200)

        self.client.post("/api/auth/logout")
        self._login("admin", "admin")
        self.assertEqual(self.client.delete(f"/api/users/{user['id']}").status_code, 204)

    def test_admin_cannot_be_deleted_through_api(self) -> None:
        self._login("admin", "admin")
        admin = next(
            item for item in self.client.get("/api/users").get_json()["items"] if item["username"] == "admin"
        )
        response = self.client.delete(f"/api/users/{admin['id']}")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "admin_user_protected")


if __name__ == "__main__":
    unittest.main()
