import http.client
import json
import unittest
import urllib.error
from unittest.mock import MagicMock, patch

from assettrack import create_app
from assettrack.config import Config
from assettrack.db import close_db
from assettrack.domain.records import Asset
from assettrack.integrations import telegram
from tests.helpers.temp_db import TempDbSandbox


class DirectoryAndMaintenanceApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="directory_api")
        config = self._temp_db.make_config(Config, TELEGRAM_BOT_TOKEN="", TELEGRAM_CHAT_ID="")
        self.app = create_app(config)
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def _post(self, path: str, payload: dict, expected: int = 201) -> dict:
        response = self.client.post(path, json=payload)
        self.assertEqual(response.status_code, expected, msg=response.get_data(as_text=True))
        return response.get_json()

    def test_departments_report_asset_count(self) -> None:
        department = self._post("/api/departments", {"name": "TI", "cost_center": "CC-100"})
        self._post("/api/assets", {"type": "Notebook", "department_id": department["id"]})

        listing = self.client.get("/api/departments").get_json()["items"]
        self.assertEqual(listing[0]["asset_count"], 1)

        renamed = self.client.put(f"/api/departments/{department['id']}", json={"name": "Tecnologia"})
        self.assertEqual(renamed.status_code, 200)
        self.assertEqual(renamed.get_json()["name"], "Tecnologia")

        missing_name = self.client.post("/api/departments", json={"name": " "})
        self.assertEqual(missing_name.status_code, 400)

    def test_legal_entity_crud(self) -> None:
        entity = self._post("/api/legal-entities", {"name": "Matriz", "cnpj": "00.000.000/0001-00"})
        self.assertEqual(self.client.get("/api/legal-entities").get_json()["items"][0]["cnpj"], "00.000.000/0001-00")
        self.assertEqual(self.client.delete(f"/api/legal-entities/{entity['id']}").status_code, 204)
        self.assertEqual(self.client.delete(f"/api/legal-entities/{entity['id']}").status_code, 404)

    def test_employee_with_assets_is_kept(self) -> None:
        employee = self._post("/api/employees", {"name": "Ana Souza", "sector": "TI"})
        self._post("/api/assets", {"type": "Notebook", "assigned_to": employee["id"]})

        response = self.client.delete(f"/api/employees/{employee['id']}")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "employee_has_assets")

    def test_maintenance_open_and_conclude(self) -> None:
        asset = self._post("/api/assets", {"type": "Impressora", "brand": "HP"})

        overview = self.client.get("/api/maintenance").get_json()
        self.assertEqual(overview["types"], ["Preventiva", "Corretiva"])
        self.assertEqual([item["id"] for item in overview["eligible"]], [asset["id"]])

        opened = self._post(
            "/api/maintenance",
            {"asset_id": asset["id"], "maintenance_type": "Preventiva", "scope": "Interna", "reason": "Limpeza"},
        )
        self.assertEqual(opened["status"], "Manutenção")
        self.assertEqual(opened["history"][-1]["type"], "Manutenção")

        overview = self.client.get("/api/maintenance").get_json()
        self.assertEqual([item["id"] for item in overview["items"]], [asset["id"]])
        self.assertEqual(overview["eligible"], [])

        concluded = self._post(f"/api/maintenance/{asset['id']}/conclude", {}, expected=200)
        self.assertEqual(concluded["status"], "Disponível")

        again = self.client.post(f"/api/maintenance/{asset['id']}/conclude")
        self.assertEqual(again.get_json()["error"], "asset_not_in_maintenance")

    def test_maintenance_opens_when_alert_times_out(self) -> None:
        asset = self._post("/api/assets", {"type": "Notebook"})
        self.client.put("/api/system/configs", json={"telegram_bot_token": "TOKEN", "telegram_chat_id": "-100"})

        with patch("urllib.request.urlopen", side_effect=TimeoutError("timed out")):
            opened = self._post(
                "/api/maintenance",
                {"asset_id": asset["id"], "maintenance_type": "Corretiva", "scope": "Externa", "reason": "Tela"},
            )
        self.assertEqual(opened["status"], "Manutenção")

    def test_accounting_plan(self) -> None:
        account = self._post("/api/accounting/accounts", {"code": "1.2", "name": "Imobilizado"})
        classification = self._post(
            "/api/accounting/classifications",
            {"code": "1.2.3", "name": "Computadores", "account_id": account["id"]},
        )
        self._post("/api/accounting/asset-types", {"name": "Notebook", "classification_id": classification["id"]})

        overview = self.client.get("/api/accounting").get_json()
        self.assertEqual(len(overview["accounts"]), 1)
        self.assertEqual(overview["asset_types"][0]["classification_id"], classification["id"])

        blocked = self.client.delete(f"/api/accounting/accounts/{account['id']}")
        self.assertEqual(blocked.status_code, 400)
        self.assertEqual(blocked.get_json()["error"], "account_in_use")

        orphan = self.client.post(
            "/api/accounting/classifications", json={"code": "9", "name": "Outros", "account_id": "ACC-999"}
        )
        self.assertEqual(orphan.get_json()["error"], "account_not_found")

    def test_ui_strings_bundle(self) -> None:
        bundle = self.client.get("/api/ui-strings").get_json()
        self.assertIn("ativo", bundle["status_groups"])
        self.assertEqual(bundle["terms"]["app_name"], "AssetTrack Pro")


class TelegramNotifyTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="telegram")
        self.app = create_app(self._temp_db.make_config(Config, TELEGRAM_API_BASE="https://telegram.test/bot"))

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def test_skips_when_not_configured(self) -> None:
        with self.app.app_context(), patch("urllib.request.urlopen") as urlopen:
            self.assertFalse(telegram.notify("", "123", "oi"))
        urlopen.assert_not_called()

    def test_posts_message(self) -> None:
        response = MagicMock()
        response.read.return_value = b'{"ok": true}'
        response.__enter__.return_value = response
        with self.app.app_context(), patch("urllib.request.urlopen", return_value=response) as urlopen:
            self.assertTrue(telegram.notify("TOKEN", "-100", "*teste*"))

        request = urlopen.call_args.args[0]
        self.assertEqual(request.full_url, "https://telegram.test/botTOKEN/sendMessage")
        body = json.loads(request.data.decode("utf-8"))
        self.assertEqual(body["chat_id"], "-100")
        self.assertEqual(body["parse_mode"], "Markdown")

    def test_network_failure_is_reported_not_raised(self) -> None:
        with self.app.app_context(), patch(
            "urllib.request.urlopen", side_effect=urllib.error.URLError("offline")
        ):
            self.assertFalse(telegram.notify("TOKEN", "-100", "oi"))

    def test_timeout_is_reported_not_raised(self) -> None:
        with self.app.app_context(), patch("urllib.request.urlopen", side_effect=TimeoutError("timed out")):
            self.assertFalse(telegram.notify("TOKEN", "-100", "oi"))

    def test_dropped_connection_is_reported_not_raised(self) -> None:
        with self.app.app_context(), patch(
            "urllib.request.urlopen", side_effect=http.client.RemoteDisconnected("closed")
        ):
            self.assertFalse(telegram.notify("TOKEN", "-100", "oi"))

    def test_undecodable_reply_is_reported_not_raised(self) -> None:
        response = MagicMock()
        response.read.return_value = b"\xff\xfe"
        response.__enter__.return_value = response
        with self.app.app_context(), patch("urllib.request.urlopen", return_value=response):
            self.assertFalse(telegram.notify("TOKEN", "-100", "oi"))

    def test_alert_text_names_asset(self) -> None:
        text = telegram.maintenance_alert_text(Asset(id="AST-7", type="Notebook", brand="Dell"), "Tela", "Ana")
        self.assertIn("`AST-7`", text)
        self.assertIn("_Tela_", text)


if __name__ == "__main__":
    unittest.main()
