import unittest

from assettrack.domain import audit, purchase_workflow, request_flow
from assettrack.domain.records import (
    ASSET_AVAILABLE,
    ASSET_IN_USE,
    AUDIT_BAD,
    AUDIT_GOOD,
    AUDIT_NOT_FOUND,
    Asset,
    EquipmentRequest,
    ItemFulfillment,
)
from assettrack.errors import ValidationError, WorkflowError


class RequestFlowTest(unittest.TestCase):
    def _request(self, *items: str, status: str = request_flow.REQUEST_PENDING) -> EquipmentRequest:
        return request_flow.new_request(
            "REQ-1",
            items=items or ("Notebook", "Mouse"),
            employee_id="EMP-1",
            requester_id="USR-1",
            status=status,
        )

    def test_new_request_aligns_fulfillments_with_items(self) -> None:
        request = self._request("Notebook", " ", "Mouse")
        self.assertEqual(request.items, ["Notebook", "Mouse"])
        self.assertEqual([f.type for f in request.item_fulfillments], ["Notebook", "Mouse"])
        self.assertFalse(any(f.is_resolved for f in request.item_fulfillments))

    def test_new_request_requires_items(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            request_flow.new_request("REQ-1", items=[], employee_id=None, requester_id=None)
        self.assertEqual(ctx.exception.code, "items_required")

    def test_missing_fulfillments_are_padded(self) -> None:
        request = EquipmentRequest(id="REQ-2", items=["Notebook", "Monitor"], item_fulfillments=[])
        aligned = request_flow.aligned_fulfillments(request)
        self.assertEqual([f.type for f in aligned], ["Notebook", "Monitor"])

    def test_link_stock_asset_checks_status_and_type(self) -> None:
        request = self._request()
        monitor = Asset(id="AST-1", type="Monitor", status=ASSET_AVAILABLE)
        with self.assertRaises(ValidationError) as mismatch:
            request_flow.link_stock_asset(request, 0, monitor)
        self.assertEqual(mismatch.exception.code, "asset_type_mismatch")

        busy = Asset(id="AST-2", type="Notebook", status=ASSET_IN_USE)
        with self.assertRaises(ValidationError) as unavailable:
            request_flow.link_stock_asset(request, 0, busy)
        self.assertEqual(unavailable.exception.code, "asset_not_available")

        linked = request_flow.link_stock_asset(request, 0, Asset(id="AST-3", type="Notebook"))
        self.assertEqual(linked.item_fulfillments[0].linked_asset_id, "AST-3")
        self.assertEqual(request_flow.linked_asset_ids(linked), ["AST-3"])

    def test_asset_held_by_open_request_is_reserved(self) -> None:
        holder = request_flow.link_stock_asset(self._request(), 0, Asset(id="AST-5", type="Notebook"))
        cancelled = request_flow.change_status(holder, request_flow.REQUEST_CANCELLED)
        self.assertEqual(request_flow.reserved_asset_ids([holder]), {"AST-5"})
        self.assertEqual(request_flow.reserved_asset_ids([cancelled]), set())

        other = request_flow.new_request("REQ-2", items=["Notebook"], employee_id="EMP-2", requester_id=None)
        with self.assertRaises(ValidationError) as ctx:
            request_flow.link_stock_asset(other, 0, Asset(id="AST-5", type="Notebook"), {"AST-5"})
        self.assertEqual(ctx.exception.code, "asset_reserved")

    def test_line_resolves_only_once(self) -> None:
        request = request_flow.mark_for_purchase(self._request(), 1)
        self.assertEqual(request.item_fulfillments[1].purchase_status, purchase_workflow.PENDING)
        with self.assertRaises(ValidationError) as ctx:
            request_flow.link_stock_asset(request, 1, Asset(id="AST-4", type="Mouse"))
        self.assertEqual(ctx.exception.code, "fulfillment_already_resolved")

    def test_bad_index_is_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            request_flow.mark_for_purchase(self._request(), 5)
        self.assertEqual(ctx.exception.code, "item_index_invalid")

    def test_status_transitions(self) -> None:
        request = self._request()
        approved = request_flow.change_status(request, request_flow.REQUEST_APPROVED)
        self.assertEqual(approved.status, request_flow.REQUEST_APPROVED)

        with self.assertRaises(WorkflowError) as ctx:
            request_flow.change_status(request, request_flow.REQUEST_PREPARING)
        self.assertEqual(ctx.exception.payload["allowed_statuses"], ["Aprovado", "Cancelado"])

        with self.assertRaises(ValidationError):
            request_flow.change_status(request, "Arquivado")

    def test_delivery_requires_every_line_resolved(self) -> None:
        request = self._request("Notebook", "Mouse", status=request_flow.REQUEST_APPROVED)
        request = request_flow.link_stock_asset(request, 0, Asset(id="AST-1", type="Notebook"))
        with self.assertRaises(WorkflowError) as ctx:
            request_flow.change_status(request, request_flow.REQUEST_DELIVERED)
        self.assertEqual(ctx.exception.code, "request_items_pending")

        purchased = ItemFulfillment(type="Mouse", is_purchase_order=True, purchase_status=purchase_workflow.PURCHASED)
        request = request_flow.replace_fulfillment(request, 1, purchased)
        self.assertTrue(request_flow.is_actionable_complete(request))
        delivered = request_flow.change_status(request, request_flow.REQUEST_DELIVERED)
        self.assertEqual(delivered.status, request_flow.REQUEST_DELIVERED)

    def test_direct_purchase_starts_in_purchase_mode(self) -> None:
        request = request_flow.direct_purchase_request("REQ-9", item_type="Monitor", requester_id=None)
        self.assertIsNone(request.employee_id)
        self.assertEqual(request.status, request_flow.REQUEST_PENDING)
        self.assertTrue(request.item_fulfillments[0].is_purchase_order)

    def test_deliver_linked_asset_assigns_employee(self) -> None:
        request = self._request()
        asset = request_flow.deliver_linked_asset(Asset(id="AST-1", type="Notebook"), request, performed_by="Admin")
        self.assertEqual(asset.status, ASSET_IN_USE)
        self.assertEqual(asset.assigned_to, "EMP-1")
        self.assertEqual(asset.history[-1].type, "Entrega")


class AuditFlowTest(unittest.TestCase):
    def test_record_entry_upserts_by_asset(self) -> None:
        session = audit.new_session("AUD-1", "TI")
        session = audit.record_entry(session, "AST-1", AUDIT_GOOD, "ok")
        session = audit.record_entry(session, "AST-1", AUDIT_BAD)
        self.assertEqual(len(session.entries), 1)
        self.assertEqual(session.entries[0].status, AUDIT_BAD)
        self.assertEqual(session.entries[0].observation, "ok")

    def test_finished_session_is_read_only(self) -> None:
        session = audit.finish(audit.new_session("AUD-1", "TI"))
        with self.assertRaises(WorkflowError) as ctx:
            audit.record_entry(session, "AST-1", AUDIT_GOOD)
        self.assertEqual(ctx.exception.code, "session_finished")

    def test_progress_and_divergence(self) -> None:
        session = audit.new_session("AUD-1", "TI")
        session = audit.record_entry(session, "AST-1", AUDIT_GOOD)
        session = audit.record_entry(session, "AST-2", AUDIT_NOT_FOUND)
        progress = audit.progress(session, ["AST-1", "AST-2", "AST-3"])
        self.assertEqual(progress["checked"], 2)
        self.assertEqual(progress["divergent"], 1)
        self.assertEqual(progress["pending_asset_ids"], ["AST-3"])

    def test_divergence_request_opens_in_dispute(self) -> None:
        request = request_flow.divergence_request(
            "REQ-7",
            sector="TI",
            employee_id=None,
            requester_id=None,
            item_types=["Monitor"],
        )
        self.assertEqual(request.status, request_flow.REQUEST_DISPUTE)
        self.assertEqual(request.type, request_flow.REQUEST_TYPE_DIVERGENCE)

    def test_session_requires_sector(self) -> None:
        with self.assertRaises(ValidationError):
            audit.new_session("AUD-1", " ")


if __name__ == "__main__":
    unittest.main()
