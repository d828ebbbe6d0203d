from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple

from flask import current_app

from assettrack.domain import purchase_workflow, request_flow
from assettrack.domain.contracts import (
    Actor,
    DirectPurchaseInput,
    PurchaseSelection,
    QuotationUpdateInput,
    ReceiptInput,
)
from assettrack.domain.records import Asset, EquipmentRequest, ItemFulfillment, generate_id
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import EmployeeRepository
from assettrack.infrastructure.repositories.workflow import RequestRepository
from assettrack.policies import DUTY_APPROVE, DUTY_EXECUTE, require_duty


STATUS_FILTER_ALL = "Todos"


class PurchaseOrderService:
    def __init__(
        self,
        requests: RequestRepository | None = None,
        assets: AssetRepository | None = None,
        employees: EmployeeRepository | None = None,
    ) -> None:
        self.requests = requests or RequestRepository()
        self.assets = assets or AssetRepository()
        self.employees = employees or EmployeeRepository()

    def _load_request(self, db, request_id: str) -> EquipmentRequest:
        request = self.requests.get(db, request_id)
        if request is None:
            raise NotFoundError(code="request_not_found", payload={"request_id": request_id})
        return request

    def _load(self, db, request_id: str, index: int) -> Tuple[EquipmentRequest, ItemFulfillment]:
        request = self._load_request(db, request_id)
        return request, request_flow.fulfillment_at(request, index)

    def _employee_names(self, db) -> Dict[str, str]:
        return {employee.id: employee.name for employee in self.employees.list(db)}

    def serialize(
        self,
        request: EquipmentRequest,
        index: int,
        fulfillment: ItemFulfillment,
        employee_names: Dict[str, str] | None = None,
    ) -> Dict[str, Any]:
        names = employee_names or {}
        approved = purchase_workflow.approved_quotation(fulfillment)
        return {
            "request_id": request.id,
            "index": index,
            "type": fulfillment.type,
            "status": purchase_workflow.normalize_status(fulfillment.purchase_status),
            "is_delivered": fulfillment.is_delivered,
            "employee_id": request.employee_id,
            "employee_name": names.get(request.employee_id or "", "N/A") if request.employee_id else "Estoque",
            "quotations": [quotation.to_dict() for quotation in fulfillment.quotations],
            "approved_quotation_index": fulfillment.approved_quotation_index,
            "approved_quotation": approved.to_dict() if approved else None,
            "delivery_forecast_date": fulfillment.delivery_forecast_date,
            "linked_asset_id": fulfillment.linked_asset_id,
            "is_replacement_part": purchase_workflow.is_replacement_part(fulfillment.type),
            "acquisition_value": purchase_workflow.acquisition_value(fulfillment),
            "steps": purchase_workflow.build_process_steps(fulfillment),
            **purchase_workflow.flow_meta(fulfillment),
        }

    def _open_orders(self, db) -> List[Tuple[EquipmentRequest, int, ItemFulfillment]]:
        rows = []
        for request in self.requests.list(db):
            for index, fulfillment in enumerate(request_flow.aligned_fulfillments(request)):
                if fulfillment.is_purchase_order and not fulfillment.is_delivered:
                    rows.append((request, index, fulfillment))
        return rows

    def list_orders(self, db, *, status: str | None = None, search: str | None = None) -> Dict[str, Any]:
        status_filter = str(status or "").strip() or STATUS_FILTER_ALL
        if status_filter != STATUS_FILTER_ALL and status_filter not in purchase_workflow.PURCHASE_STATUSES:
            raise ValidationError(code="status_invalid", payload={"status": status_filter})

        names = self._employee_names(db)
        open_orders = self._open_orders(db)
        term = str(search or "").strip().lower()

        items = []
        for request, index, fulfillment in open_orders:
            current = purchase_workflow.normalize_status(fulfillment.purchase_status)
            if status_filter != STATUS_FILTER_ALL and current != status_filter:
                continue
            if term:
                haystack = [
                    fulfillment.type.lower(),
                    names.get(request.employee_id or "", "").lower(),
                    request.id.lower(),
                ]
                if not any(term in value for value in haystack):
                    continue
            items.append(self.serialize(request, index, fulfillment, names))

        return {
            "items": items,
            "summary": purchase_workflow.status_counts(f for _, _, f in open_orders),
            "status_filter": status_filter,
        }

    def get_order(self, db, request_id: str, index: int) -> Dict[str, Any]:
        request, fulfillment = self._load(db, request_id, index)
        if not fulfillment.is_purchase_order:
            raise ValidationError(code="not_a_purchase_order", payload={"request_id": request_id, "index": index})
        return self.serialize(request, index, fulfillment, self._employee_names(db))

    def create_direct_order(self, db, actor: Actor, order_input: DirectPurchaseInput) -> EquipmentRequest:
        with db.transaction():
            request_id = generate_id("REQ", self.requests.keys(db))
            request = request_flow.direct_purchase_request(
                request_id,
                item_type=order_input.item_type,
                requester_id=order_input.requester_id or actor.user_id or None,
                observation=order_input.observation,
            )
            self.requests.upsert(db, request)
        current_app.logger.info(
            "purchase_order_created",
            extra={"request_id_ref": request.id, "item_type": request.items[0], "actor": actor.username},
        )
        return request

    def _apply(self, db, actor: Actor, request_id: str, index: int, action: str, step) -> Dict[str, Any]:
        with db.transaction():
            request, fulfillment = self._load(db, request_id, index)
            previous = purchase_workflow.normalize_status(fulfillment.purchase_status)
            updated = step(fulfillment)
            request = request_flow.replace_fulfillment(request, index, updated)
            self.requests.upsert(db, request)

        current = purchase_workflow.normalize_status(updated.purchase_status)
        if current != previous:
            current_app.logger.info(
                "purchase_status_changed",
                extra={
                    "request_id_ref": request_id,
                    "item_index": index,
                    "action": action,
                    "from_status": previous,
                    "to_status": current,
                    "actor": actor.username,
                },
            )
        return self.serialize(request, index, updated, self._employee_names(db))

    def update_quotation(
        self,
        db,
        actor: Actor,
        request_id: str,
        index: int,
        quotation_input: QuotationUpdateInput,
    ) -> Dict[str, Any]:
        return self._apply(
            db,
            actor,
            request_id,
            index,
            purchase_workflow.UPDATE_QUOTATION,
            lambda f: purchase_workflow.update_quotation(
                f,
                quotation_input.slot,
                url=quotation_input.url,
                price=quotation_input.price,
                delivery_prediction=quotation_input.delivery_prediction,
                clear_price=quotation_input.clear_price,
            ),
        )

    def approve_quotation(self, db, actor: Actor, request_id: str, index: int, slot: int) -> Dict[str, Any]:
        require_duty(actor, DUTY_APPROVE)
        return self._apply(
            db,
            actor,
            request_id,
            index,
            purchase_workflow.APPROVE_QUOTATION,
            lambda f: purchase_workflow.approve_quotation(f, slot),
        )

    def authorize_order(self, db, actor: Actor, request_id: str, index: int) -> Dict[str, Any]:
        require_duty(actor, DUTY_APPROVE)
        return self._apply(
            db,
            actor,
            request_id,
            index,
            purchase_workflow.AUTHORIZE_ORDER,
            purchase_workflow.authorize_order,
        )

    def mark_purchased(self, db, actor: Actor, request_id: str, index: int) -> Dict[str, Any]:
        require_duty(actor, DUTY_EXECUTE)
        return self._apply(
            db,
            actor,
            request_id,
            index,
            purchase_workflow.MARK_PURCHASED,
            purchase_workflow.mark_purchased,
        )

    def set_delivery_forecast(
        self,
        db,
        actor: Actor,
        request_id: str,
        index: int,
        forecast_date: str | None,
    ) -> Dict[str, Any]:
        return self._apply(
            db,
            actor,
            request_id,
            index,
            purchase_workflow.SET_DELIVERY_FORECAST,
            lambda f: purchase_workflow.set_delivery_forecast(f, forecast_date),
        )

    def mark_purchased_bulk(self, db, actor: Actor, selections: Iterable[PurchaseSelection]) -> List[Dict[str, Any]]:
        require_duty(actor, DUTY_EXECUTE)
        chosen = list(selections)
        if not chosen:
            raise ValidationError(code="selection_required")

        changed: Dict[str, EquipmentRequest] = {}
        touched: List[Tuple[str, int]] = []
        with db.transaction():
            for selection in chosen:
                request = changed.get(selection.request_id) or self._load_request(db, selection.request_id)
                fulfillment = request_flow.fulfillment_at(request, selection.index)
                updated = purchase_workflow.mark_purchased(fulfillment, require_forecast=False)
                changed[request.id] = request_flow.replace_fulfillment(request, selection.index, updated)
                touched.append((request.id, selection.index))
            for request in changed.values():
                self.requests.upsert(db, request)

        current_app.logger.info(
            "purchase_status_changed",
            extra={
                "action": purchase_workflow.MARK_PURCHASED,
                "bulk_count": len(touched),
                "to_status": purchase_workflow.PURCHASED,
                "actor": actor.username,
            },
        )
        names = self._employee_names(db)
        return [
            self.serialize(
                changed[request_id],
                index,
                request_flow.fulfillment_at(changed[request_id], index),
                names,
            )
            for request_id, index in touched
        ]

    def finalize_receipt(
        self,
        db,
        actor: Actor,
        request_id: str,
        index: int,
        receipt: ReceiptInput,
    ) -> Tuple[Asset, EquipmentRequest]:
        """Tombamento: creates the Asset and closes the line item in one transaction."""
        require_duty(actor, DUTY_EXECUTE)
        if not (receipt.brand or "").strip() or not (receipt.model or "").strip():
            raise ValidationError(code="receipt_fields_required")

        with db.transaction():
            request, fulfillment = self._load(db, request_id, index)
            purchase_workflow.ensure_action(fulfillment, purchase_workflow.FINALIZE_RECEIPT)

            asset_id = (receipt.asset_id or "").strip()
            if asset_id:
                if self.assets.exists(db, asset_id):
                    raise ValidationError(code="asset_id_taken", payload={"asset_id": asset_id})
            else:
                asset_id = generate_id("AST", self.assets.keys(db))

            asset = purchase_workflow.build_received_asset(
                request,
                fulfillment,
                asset_id=asset_id,
                brand=receipt.brand.strip(),
                model=receipt.model.strip(),
                serial_number=(receipt.serial_number or "").strip() or None,
                tag_id=(receipt.tag_id or "").strip() or None,
                observations=(receipt.observations or "").strip() or None,
                performed_by=actor.label,
            )
            delivered = purchase_workflow.complete_receipt(fulfillment, asset.id)
            request = request_flow.replace_fulfillment(request, index, delivered)
            self.assets.upsert(db, asset)
            self.requests.upsert(db, request)

        current_app.logger.info(
            "asset_received",
            extra={
                "request_id_ref": request.id,
                "item_index": index,
                "asset_id": asset.id,
                "asset_status": asset.status,
                "purchase_value": asset.purchase_value,
                "actor": actor.username,
            },
        )
        return asset, request
