import unittest

from assettrack import create_app
from assettrack.config import Config
from assettrack.db import close_db
from tests.helpers.temp_db import TempDbSandbox


class InventorySmokeTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="inventory_smoke")
        self.app = create_app(self._temp_db.make_config(Config))
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def _post(self, path: str, payload: dict | None = None, expected: int = 200) -> dict:
        response = self.client.post(path, json=payload or {})
        self.assertEqual(response.status_code, expected, msg=response.get_data(as_text=True))
        return response.get_json() or {}

    def _employee(self, name: str = "Ana Souza", sector: str = "TI") -> dict:
        return self._post("/api/employees", {"name": name, "sector": sector}, expected=201)

    def test_request_to_receipt_flow(self) -> None:
        employee = self._employee()
        request = self._post(
            "/api/requests",
            {"items": ["Notebook"], "employee_id": employee["id"], "observation": "Novo colaborador"},
            expected=201,
        )
        request_id = request["id"]
        self.assertEqual(request["status"], "Pendente")

        self._post(f"/api/requests/{request_id}/status", {"status": "Aprovado"})
        self._post(f"/api/requests/{request_id}/items/0/purchase")

        base = f"/api/purchase-orders/{request_id}/0"
        quote = self.client.put(f"{base}/quotations/1", json={"url": "https://loja.example/nb", "price": "3500"})
        self.assertEqual(quote.status_code, 200, msg=quote.get_data(as_text=True))
        self.assertEqual(quote.get_json()["quotations"][1]["price"], 3500.0)

        approved = self._post(f"{base}/approve", {"slot": 1})
        self.assertEqual(approved["status"], "Cotação Aprovada")
        self.assertEqual(approved["allowed_actions"], ["authorize_order", "set_delivery_forecast"])

        self._post(f"{base}/authorize")
        unscheduled = self.client.post(f"{base}/purchase")
        self.assertEqual(unscheduled.status_code, 400)
        self.assertEqual(unscheduled.get_json()["error"], "delivery_forecast_required")

        forecast = self.client.put(f"{base}/forecast", json={"delivery_forecast_date": "2026-11-03"})
        self.assertEqual(forecast.get_json()["delivery_forecast_date"], "2026-11-03")

        purchased = self._post(f"{base}/purchase")
        self.assertEqual(purchased["primary_action"], "finalize_receipt")

        receipt = self._post(f"{base}/receipt", {"brand": "Dell", "model": "Latitude 5440"}, expected=201)
        asset = receipt["asset"]
        self.assertEqual(asset["purchase_value"], 3500.0)
        self.assertEqual(asset["status"], "Em Uso")
        self.assertEqual(asset["assigned_to"], employee["id"])
        self.assertTrue(receipt["request"]["is_actionable_complete"])

        again = self.client.post(f"{base}/receipt", json={"brand": "Dell", "model": "X"})
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.get_json()["error"], "already_delivered")

        delivered = self._post(f"/api/requests/{request_id}/status", {"status": "Entregue"})
        self.assertEqual(delivered["status"], "Entregue")

        listing = self.client.get("/api/purchase-orders").get_json()
        self.assertEqual(listing["items"], [])

    def test_replacement_part_direct_order(self) -> None:
        created = self._post("/api/purchase-orders", {"item_type": "Peça de reposição"}, expected=201)
        base = f"/api/purchase-orders/{created['id']}/0"

        self.client.put(f"{base}/quotations/0", json={"price": 50})
        self._post(f"{base}/approve", {"slot": 0})
        self._post(f"{base}/authorize")
        self.client.put(f"{base}/forecast", json={"delivery_forecast_date": "2026-11-03"})
        self._post(f"{base}/purchase")
        receipt = self._post(f"{base}/receipt", {"brand": "Genérica", "model": "Fonte 65W"}, expected=201)

        self.assertEqual(receipt["asset"]["purchase_value"], 0.0)
        self.assertEqual(receipt["asset"]["status"], "Disponível")

    def test_non_finite_quotation_price_is_rejected(self) -> None:
        created = self._post("/api/purchase-orders", {"item_type": "Monitor"}, expected=201)
        base = f"/api/purchase-orders/{created['id']}/0"
        for price in ("nan", "inf", "-Infinity"):
            response = self.client.put(f"{base}/quotations/0", json={"price": price})
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.get_json()["error"], "quotation_price_invalid")

        order = self.client.get(base).get_json()
        self.assertIsNone(order["quotations"][0]["price"])

    def test_bulk_purchase_moves_authorized_lines(self) -> None:
        order_ids = []
        for item in ("Monitor", "Teclado"):
            created = self._post("/api/purchase-orders", {"item_type": item}, expected=201)
            base = f"/api/purchase-orders/{created['id']}/0"
            self.client.put(f"{base}/quotations/0", json={"price": 100})
            self._post(f"{base}/approve", {"slot": 0})
            self._post(f"{base}/authorize")
            order_ids.append(created["id"])

        result = self._post(
            "/api/purchase-orders/bulk-purchase",
            {"selections": [{"request_id": request_id, "index": 0} for request_id in order_ids]},
        )
        self.assertEqual([item["status"] for item in result["items"]], ["Comprado", "Comprado"])

        summary = self.client.get("/api/purchase-orders?status=Comprado").get_json()
        self.assertEqual(len(summary["items"]), 2)
        self.assertEqual(summary["summary"]["Comprado"], 2)

    def test_link_stock_asset_and_deliver(self) -> None:
        employee = self._employee()
        asset = self._post("/api/assets", {"type": "Mouse", "brand": "Logitech"}, expected=201)
        request = self._post("/api/requests", {"items": ["Mouse"], "employee_id": employee["id"]}, expected=201)

        available = self.client.get(f"/api/requests/{request['id']}/items/0/available-assets").get_json()
        self.assertEqual([item["id"] for item in available["items"]], [asset["id"]])

        self._post(f"/api/requests/{request['id']}/items/0/link", {"asset_id": asset["id"]})
        self._post(f"/api/requests/{request['id']}/status", {"status": "Aprovado"})
        self._post(f"/api/requests/{request['id']}/status", {"status": "Entregue"})

        delivered = self.client.get(f"/api/assets/{asset['id']}").get_json()
        self.assertEqual(delivered["status"], "Em Uso")
        self.assertEqual(delivered["assigned_to"], employee["id"])

    def test_linked_asset_is_reserved_for_its_request(self) -> None:
        first_owner = self._employee()
        second_owner = self._employee(name="Bruno Lima")
        asset = self._post("/api/assets", {"type": "Mouse"}, expected=201)
        first = self._post("/api/requests", {"items": ["Mouse"], "employee_id": first_owner["id"]}, expected=201)
        second = self._post("/api/requests", {"items": ["Mouse"], "employee_id": second_owner["id"]}, expected=201)

        self._post(f"/api/requests/{first['id']}/items/0/link", {"asset_id": asset["id"]})
        available = self.client.get(f"/api/requests/{second['id']}/items/0/available-assets").get_json()
        self.assertEqual(available["items"], [])

        taken = self.client.post(f"/api/requests/{second['id']}/items/0/link", json={"asset_id": asset["id"]})
        self.assertEqual(taken.status_code, 400)
        self.assertEqual(taken.get_json()["error"], "asset_reserved")

        self._post(f"/api/requests/{first['id']}/status", {"status": "Cancelado"})
        self._post(f"/api/requests/{second['id']}/items/0/link", {"asset_id": asset["id"]})

    def test_inventory_check_flow(self) -> None:
        employee = self._employee(sector="Financeiro")
        asset = self._post("/api/assets", {"type": "Monitor", "assigned_to": employee["id"]}, expected=201)

        sectors = self.client.get("/api/inventory-checks").get_json()["sectors"]
        self.assertIn("Financeiro", sectors)

        session = self._post("/api/inventory-checks", {"sector": "Financeiro"}, expected=201)
        described = self._post(
            f"/api/inventory-checks/{session['id']}/entries",
            {"asset_id": asset["id"], "status": "Ruim", "observation": "Tela trincada"},
        )
        self.assertEqual(described["progress"]["divergent"], 1)

        finished = self._post(f"/api/inventory-checks/{session['id']}/finish")
        self.assertTrue(finished["is_finished"])
        dispute = self.client.get(f"/api/requests/{finished['generated_request_id']}").get_json()
        self.assertEqual(dispute["status"], "Confronto")

    def test_dashboard_counts_assets(self) -> None:
        employee = self._employee()
        self._post("/api/assets", {"type": "Notebook", "assigned_to": employee["id"]}, expected=201)
        self._post("/api/assets", {"type": "Cabo"}, expected=201)

        dashboard = self.client.get("/api/dashboard").get_json()
        self.assertEqual(dashboard["totals"]["total"], 2)
        self.assertEqual(dashboard["totals"]["in_use"], 1)
        self.assertEqual(dashboard["by_type"]["Notebook"], 1)
        self.assertEqual(dashboard["by_type"]["Outros"], 1)
        self.assertEqual(dashboard["in_use_by_employee"][0]["employee_name"], "Ana Souza")

    def test_health_reports_backend(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(payload["status"], "ok")
        self.assertEqual(payload["db"], "sqlite")


if __name__ == "__main__":
    unittest.main()
