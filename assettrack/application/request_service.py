from __future__ import annotations

from typing import Any, Dict, List

from flask import current_app

from assettrack.domain import purchase_workflow, request_flow
from assettrack.domain.contracts import Actor, RequestCreateInput
from assettrack.domain.records import ASSET_AVAILABLE, EquipmentRequest, generate_id
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import EmployeeRepository
from assettrack.infrastructure.repositories.workflow import RequestRepository


class RequestService:
    def __init__(
        self,
        requests: RequestRepository | None = None,
        assets: AssetRepository | None = None,
        employees: EmployeeRepository | None = None,
    ) -> None:
        self.requests = requests or RequestRepository()
        self.assets = assets or AssetRepository()
        self.employees = employees or EmployeeRepository()

    def serialize(self, request: EquipmentRequest) -> Dict[str, Any]:
        payload = request.to_dict()
        payload["item_fulfillments"] = [
            {
                **fulfillment.to_dict(),
                "purchase_flow": purchase_workflow.flow_meta(fulfillment) if fulfillment.is_purchase_order else None,
            }
            for fulfillment in request_flow.aligned_fulfillments(request)
        ]
        payload["allowed_statuses"] = request_flow.allowed_statuses(request)
        payload["is_actionable_complete"] = request_flow.is_actionable_complete(request)
        return payload

    def list_requests(self, db, *, status: str | None = None) -> List[EquipmentRequest]:
        if status:
            return self.requests.list_where(db, "status", status)
        return self.requests.list(db)

    def get_request(self, db, request_id: str) -> EquipmentRequest:
        request = self.requests.get(db, request_id)
        if request is None:
            raise NotFoundError(code="request_not_found", payload={"request_id": request_id})
        return request

    def create_request(self, db, actor: Actor, create_input: RequestCreateInput) -> EquipmentRequest:
        employee_id = (create_input.employee_id or "").strip() or None
        with db.transaction():
            if employee_id and not self.employees.exists(db, employee_id):
                raise ValidationError(code="employee_not_found", payload={"employee_id": employee_id})
            request = request_flow.new_request(
                generate_id("REQ", self.requests.keys(db)),
                items=create_input.items,
                employee_id=employee_id,
                requester_id=create_input.requester_id or actor.user_id or None,
                observation=create_input.observation,
            )
            self.requests.upsert(db, request)
        current_app.logger.info(
            "request_created",
            extra={"request_id_ref": request.id, "items": len(request.items), "actor": actor.username},
        )
        return request

    def update_status(self, db, actor: Actor, request_id: str, status: str) -> EquipmentRequest:
        with db.transaction():
            request = self.get_request(db, request_id)
            previous = request.status
            updated = request_flow.change_status(request, status)
            if updated.status == request_flow.REQUEST_DELIVERED and updated.employee_id:
                for asset in self.assets.get_many(db, request_flow.linked_asset_ids(updated)):
                    self.assets.upsert(
                        db,
                        request_flow.deliver_linked_asset(asset, updated, performed_by=actor.label),
                    )
            self.requests.upsert(db, updated)
        current_app.logger.info(
            "request_status_changed",
            extra={
                "request_id_ref": request_id,
                "from_status": previous,
                "to_status": updated.status,
                "actor": actor.username,
            },
        )
        return updated

    def link_stock_asset(self, db, actor: Actor, request_id: str, index: int, asset_id: str) -> EquipmentRequest:
        with db.transaction():
            request = self.get_request(db, request_id)
            asset = self.assets.get(db, asset_id)
            if asset is None:
                raise NotFoundError(code="asset_not_found", payload={"asset_id": asset_id})
            reserved = request_flow.reserved_asset_ids(self.requests.list(db))
            updated = request_flow.link_stock_asset(request, index, asset, reserved)
            self.requests.upsert(db, updated)
        current_app.logger.info(
            "request_item_linked",
            extra={"request_id_ref": request_id, "item_index": index, "asset_id": asset_id, "actor": actor.username},
        )
        return updated

    def mark_for_purchase(self, db, actor: Actor, request_id: str, index: int) -> EquipmentRequest:
        with db.transaction():
            request = self.get_request(db, request_id)
            updated = request_flow.mark_for_purchase(request, index)
            self.requests.upsert(db, updated)
        current_app.logger.info(
            "request_item_sent_to_purchase",
            extra={"request_id_ref": request_id, "item_index": index, "actor": actor.username},
        )
        return updated

    def available_assets_for_item(self, db, request_id: str, index: int) -> list:
        request = self.get_request(db, request_id)
        fulfillment = request_flow.fulfillment_at(request, index)
        reserved = request_flow.reserved_asset_ids(self.requests.list(db))
        return [
            asset
            for asset in self.assets.search(db, asset_type=fulfillment.type, status=ASSET_AVAILABLE)
            if asset.id not in reserved
        ]

    def delete_request(self, db, actor: Actor, request_id: str) -> None:
        with db.transaction():
            if not self.requests.remove(db, request_id):
                raise NotFoundError(code="request_not_found", payload={"request_id": request_id})
        current_app.logger.info("request_deleted", extra={"request_id_ref": request_id, "actor": actor.username})
