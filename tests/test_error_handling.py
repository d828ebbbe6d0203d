import json
import logging
import unittest
from unittest.mock import patch

from assettrack import create_app
from assettrack.config import Config
from assettrack.db import close_db
from assettrack.errors import StoreError, ValidationError
from assettrack.observability import JsonLogFormatter
from assettrack.ui_strings import error_message
from tests.helpers.temp_db import TempDbSandbox


class ErrorHandlingApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="error_api")
        self.app = create_app(self._temp_db.make_config(Config))
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def test_not_found_uses_message_key(self) -> None:
        response = self.client.get("/api/assets/AST-0000", headers={"X-Request-Id": "req-123"})
        self.assertEqual(response.status_code, 404)
        payload = response.get_json()
        self.assertEqual(payload["error"], "asset_not_found")
        self.assertEqual(payload["message"], error_message("asset_not_found"))
        self.assertEqual(payload["request_id"], "req-123")
        self.assertEqual(response.headers.get("X-Request-Id"), "req-123")
        self.assertEqual(payload["asset_id"], "AST-0000")

    def test_validation_error_before_any_write(self) -> None:
        response = self.client.post("/api/requests", json={"items": []})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "items_required")
        self.assertEqual(self.client.get("/api/requests").get_json()["items"], [])

    def test_workflow_error_lists_allowed_actions(self) -> None:
        created = self.client.post("/api/purchase-orders", json={"item_type": "Monitor"}).get_json()
        response = self.client.post(f"/api/purchase-orders/{created['id']}/0/authorize")
        self.assertEqual(response.status_code, 409)
        payload = response.get_json()
        self.assertEqual(payload["error"], "action_not_allowed_for_status")
        self.assertEqual(payload["status"], "Pendente")
        self.assertIn("approve_quotation", payload["allowed_actions"])

    def test_non_object_json_body_is_rejected(self) -> None:
        response = self.client.post("/api/assets", json=["Notebook"])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "json_body_required")

    def test_store_error_maps_to_503(self) -> None:
        with patch(
            "assettrack.application.asset_service.AssetService.list_assets",
            side_effect=StoreError(details="database is locked"),
        ):
            response = self.client.get("/api/assets")
        self.assertEqual(response.status_code, 503)
        payload = response.get_json()
        self.assertEqual(payload["error"], "store_unavailable")
        self.assertNotIn("database is locked", response.get_data(as_text=True))

    def test_unexpected_error_hides_traceback(self) -> None:
        with patch(
            "assettrack.application.dashboard_service.DashboardService.build",
            side_effect=RuntimeError("boom"),
        ):
            response = self.client.get("/api/dashboard")
        self.assertEqual(response.status_code, 500)
        payload = response.get_json()
        self.assertEqual(payload["error"], "unexpected_error")
        self.assertTrue(payload["request_id"])
        body = response.get_data(as_text=True)
        self.assertNotIn("Traceback", body)
        self.assertNotIn("boom", body)

    def test_unknown_route_stays_http_404(self) -> None:
        response = self.client.get("/api/nao-existe")
        self.assertEqual(response.status_code, 404)


class AppErrorPayloadTest(unittest.TestCase):
    def test_details_are_logged_not_returned(self) -> None:
        error = StoreError(details="disk I/O error", payload={"table": "assets"})
        body = error.to_response_payload("req-1")
        self.assertEqual(body["error"], "store_unavailable")
        self.assertEqual(body["table"], "assets")
        self.assertNotIn("disk", json.dumps(body))
        self.assertEqual(error.log_extra()["details"], "disk I/O error")
        self.assertEqual(error.log_extra()["http_status"], 503)

    def test_custom_code_doubles_as_message_key(self) -> None:
        error = ValidationError(code="items_required")
        self.assertEqual(error.message_key, "items_required")
        self.assertEqual(error.user_message(), error_message("items_required"))


class JsonLogFormatterTest(unittest.TestCase):
    def test_extra_fields_are_serialized(self) -> None:
        record = logging.LogRecord("assettrack", logging.INFO, __file__, 1, "asset_received", None, None)
        record.asset_id = "AST-1"
        record.purchase_value = 3500.0
        payload = json.loads(JsonLogFormatter().format(record))
        self.assertEqual(payload["message"], "asset_received")
        self.assertEqual(payload["level"], "info")
        self.assertEqual(payload["asset_id"], "AST-1")
        self.assertEqual(payload["request_id"], "n/a")


if __name__ == "__main__":
    unittest.main()
