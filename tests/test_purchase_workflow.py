import unittest

from assettrack.domain import purchase_workflow as pw
from assettrack.domain.records import ASSET_AVAILABLE, ASSET_IN_USE, EquipmentRequest, ItemFulfillment
from assettrack.errors import ValidationError, WorkflowError


def _request(employee_id="EMP-1", items=("Notebook",)) -> EquipmentRequest:
    return EquipmentRequest(id="REQ-1", items=list(items), employee_id=employee_id)


def _purchased(item_type: str, price: float) -> ItemFulfillment:
    order = pw.start_purchase_order(item_type)
    order = pw.update_quotation(order, 1, url="https://loja.example/item", price=price)
    order = pw.approve_quotation(order, 1)
    order = pw.authorize_order(order)
    order = pw.set_delivery_forecast(order, "2026-11-02")
    return pw.mark_purchased(order)


class PurchaseFlowPolicyTest(unittest.TestCase):
    def test_primary_action_is_in_allowed_actions(self) -> None:
        for status, policy in pw.PURCHASE_FLOW.items():
            primary = policy.get("primary_action")
            if primary:
                self.assertIn(primary, policy.get("allowed_actions") or [], f"primary fora de allowed em {status}")

    def test_every_transition_moves_forward(self) -> None:
        for (source, _action), target in pw.TRANSITIONS.items():
            self.assertEqual(pw.status_rank(target), pw.status_rank(source) + 1)

    def test_unknown_status_reads_as_pending(self) -> None:
        self.assertEqual(pw.normalize_status("qualquer"), pw.PENDING)
        self.assertEqual(pw.normalize_status(None), pw.PENDING)


class PurchaseWorkflowTest(unittest.TestCase):
    def test_new_order_starts_pending_with_three_empty_slots(self) -> None:
        order = pw.start_purchase_order("Monitor")
        self.assertTrue(order.is_purchase_order)
        self.assertEqual(order.purchase_status, pw.PENDING)
        self.assertEqual(len(order.quotations), pw.QUOTATION_SLOTS)
        self.assertFalse(any(q.is_filled() for q in order.quotations))

    def test_update_quotation_does_not_mutate_input(self) -> None:
        order = pw.start_purchase_order("Monitor")
        updated = pw.update_quotation(order, 0, price=899.9)
        self.assertIsNone(order.quotations[0].price)
        self.assertEqual(updated.quotations[0].price, 899.9)

    def test_update_quotation_keeps_untouched_fields(self) -> None:
        order = pw.start_purchase_order("Monitor")
        order = pw.update_quotation(order, 2, url="https://a.example", price=100, delivery_prediction="5 dias")
        order = pw.update_quotation(order, 2, price=120)
        self.assertEqual(order.quotations[2].url, "https://a.example")
        self.assertEqual(order.quotations[2].delivery_prediction, "5 dias")
        self.assertEqual(order.quotations[2].price, 120.0)

        cleared = pw.update_quotation(order, 2, clear_price=True)
        self.assertIsNone(cleared.quotations[2].price)

    def test_invalid_slot_and_negative_price_are_rejected(self) -> None:
        order = pw.start_purchase_order("Monitor")
        with self.assertRaises(ValidationError) as slot_ctx:
            pw.update_quotation(order, 3, price=10)
        self.assertEqual(slot_ctx.exception.code, "quotation_slot_invalid")
        with self.assertRaises(ValidationError) as price_ctx:
            pw.update_quotation(order, 0, price=-1)
        self.assertEqual(price_ctx.exception.code, "quotation_price_invalid")

    def test_approve_requires_filled_slot(self) -> None:
        order = pw.start_purchase_order("Monitor")
        with self.assertRaises(ValidationError) as ctx:
            pw.approve_quotation(order, 0)
        self.assertEqual(ctx.exception.code, "quotation_slot_empty")

    def test_approve_only_valid_while_pending(self) -> None:
        order = pw.update_quotation(pw.start_purchase_order("Monitor"), 0, price=10)
        approved = pw.approve_quotation(order, 0)
        self.assertEqual(approved.purchase_status, pw.QUOTATION_APPROVED)
        self.assertEqual(approved.approved_quotation_index, 0)

        with self.assertRaises(WorkflowError) as ctx:
            pw.approve_quotation(approved, 0)
        self.assertEqual(ctx.exception.payload.get("allowed_actions"), [pw.AUTHORIZE_ORDER, pw.SET_DELIVERY_FORECAST])

    def test_quotations_frozen_after_approval(self) -> None:
        order = pw.update_quotation(pw.start_purchase_order("Monitor"), 0, price=10)
        approved = pw.approve_quotation(order, 0)
        with self.assertRaises(WorkflowError):
            pw.update_quotation(approved, 1, price=5)

    def test_cannot_skip_authorization(self) -> None:
        order = pw.update_quotation(pw.start_purchase_order("Monitor"), 0, price=10)
        approved = pw.approve_quotation(order, 0)
        with self.assertRaises(WorkflowError):
            pw.mark_purchased(approved)

    def test_non_finite_price_is_rejected(self) -> None:
        order = pw.start_purchase_order("Monitor")
        for price in (float("nan"), float("inf"), float("-inf")):
            with self.assertRaises(ValidationError) as ctx:
                pw.update_quotation(order, 0, price=price)
            self.assertEqual(ctx.exception.code, "quotation_price_invalid")

    def test_single_payment_requires_forecast(self) -> None:
        order = pw.update_quotation(pw.start_purchase_order("Monitor"), 0, price=10)
        order = pw.authorize_order(pw.approve_quotation(order, 0))
        with self.assertRaises(ValidationError) as ctx:
            pw.mark_purchased(order)
        self.assertEqual(ctx.exception.code, "delivery_forecast_required")

        self.assertEqual(pw.mark_purchased(order, require_forecast=False).purchase_status, pw.PURCHASED)
        dated = pw.set_delivery_forecast(order, "2026-11-02")
        self.assertEqual(pw.mark_purchased(dated).purchase_status, pw.PURCHASED)

    def test_forecast_allowed_in_every_open_status(self) -> None:
        order = pw.update_quotation(pw.start_purchase_order("Monitor"), 0, price=10)
        order = pw.set_delivery_forecast(order, "2026-11-02")
        self.assertEqual(order.delivery_forecast_date, "2026-11-02")
        order = pw.approve_quotation(order, 0)
        order = pw.set_delivery_forecast(order, "")
        self.assertIsNone(order.delivery_forecast_date)

    def test_receipt_only_from_purchased(self) -> None:
        order = pw.update_quotation(pw.start_purchase_order("Monitor"), 0, price=10)
        order = pw.authorize_order(pw.approve_quotation(order, 0))
        with self.assertRaises(WorkflowError):
            pw.build_received_asset(_request(), order, asset_id="AST-1", brand="Dell", model="P2422H")

    def test_receipt_of_notebook_slot_one(self) -> None:
        request = _request(employee_id="EMP-1")
        order = _purchased("Notebook", 3500)
        self.assertEqual(pw.approved_quotation(order).price, 3500.0)

        asset = pw.build_received_asset(request, order, asset_id="AST-9001", brand="Dell", model="Latitude 5440")
        self.assertEqual(asset.type, "Notebook")
        self.assertEqual(asset.purchase_value, 3500.0)
        self.assertEqual(asset.status, ASSET_IN_USE)
        self.assertEqual(asset.assigned_to, "EMP-1")
        self.assertEqual(asset.qr_code, "QR-AST-9001")
        self.assertEqual(asset.history[0].type, "Tombamento")

        delivered = pw.complete_receipt(order, asset.id)
        self.assertTrue(delivered.is_delivered)
        self.assertEqual(delivered.linked_asset_id, "AST-9001")
        self.assertEqual(pw.effective_status(delivered), pw.DELIVERED)
        self.assertEqual(delivered.purchase_status, pw.PURCHASED)

    def test_receipt_is_one_shot(self) -> None:
        order = pw.complete_receipt(_purchased("Notebook", 3500), "AST-9001")
        with self.assertRaises(WorkflowError) as ctx:
            pw.complete_receipt(order, "AST-9002")
        self.assertEqual(ctx.exception.code, "already_delivered")
        self.assertEqual(pw.allowed_actions(order), [])

    def test_replacement_part_is_booked_at_zero(self) -> None:
        order = _purchased("Peça de reposição", 50)
        self.assertTrue(pw.is_replacement_part(order.type))
        asset = pw.build_received_asset(_request(employee_id=None), order, asset_id="AST-50", brand="X", model="Y")
        self.assertEqual(asset.purchase_value, 0.0)
        self.assertEqual(asset.status, ASSET_AVAILABLE)
        self.assertIsNone(asset.assigned_to)

    def test_stock_line_is_not_a_purchase_order(self) -> None:
        line = ItemFulfillment(type="Mouse", linked_asset_id="AST-1")
        self.assertEqual(pw.allowed_actions(line), [])
        with self.assertRaises(ValidationError) as ctx:
            pw.ensure_action(line, pw.APPROVE_QUOTATION)
        self.assertEqual(ctx.exception.code, "not_a_purchase_order")

    def test_process_steps_track_current_stage(self) -> None:
        order = pw.start_purchase_order("Monitor")
        states = [step["state"] for step in pw.build_process_steps(order)]
        self.assertEqual(states, ["current", "future", "future", "future"])

        delivered = pw.complete_receipt(_purchased("Monitor", 10), "AST-1")
        self.assertTrue(all(step["state"] == "completed" for step in pw.build_process_steps(delivered)))

    def test_status_counts_skip_delivered_and_stock_lines(self) -> None:
        counts = pw.status_counts(
            [
                pw.start_purchase_order("Monitor"),
                _purchased("Notebook", 1),
                pw.complete_receipt(_purchased("Notebook", 1), "AST-1"),
                ItemFulfillment(type="Mouse", linked_asset_id="AST-2"),
            ]
        )
        self.assertEqual(counts[pw.PENDING], 1)
        self.assertEqual(counts[pw.PURCHASED], 1)
        self.assertEqual(sum(counts.values()), 2)


if __name__ == "__main__":
    unittest.main()
