from __future__ import annotations

import dataclasses
from typing import Dict, Iterable, List, Set

from assettrack.domain import purchase_workflow
from assettrack.domain.records import (
    ASSET_AVAILABLE,
    ASSET_IN_USE,
    Asset,
    EquipmentRequest,
    HistoryEntry,
    ItemFulfillment,
    new_history_id,
    utc_now_iso,
)
from assettrack.errors import ValidationError, WorkflowError


REQUEST_PENDING = "Pendente"
REQUEST_APPROVED = "Aprovado"
REQUEST_PREPARING = "Preparando"
REQUEST_DELIVERED = "Entregue"
REQUEST_CANCELLED = "Cancelado"
REQUEST_DISPUTE = "Confronto"
REQUEST_STATUSES: List[str] = [
    REQUEST_PENDING,
    REQUEST_APPROVED,
    REQUEST_PREPARING,
    REQUEST_DELIVERED,
    REQUEST_CANCELLED,
    REQUEST_DISPUTE,
]

REQUEST_TYPE_STANDARD = "Padrao"
REQUEST_TYPE_DIVERGENCE = "Divergencia"

REQUEST_TRANSITIONS: Dict[str, Set[str]] = {
    REQUEST_PENDING: {REQUEST_APPROVED, REQUEST_CANCELLED},
    REQUEST_APPROVED: {REQUEST_PREPARING, REQUEST_DELIVERED, REQUEST_CANCELLED},
    REQUEST_PREPARING: {REQUEST_DELIVERED, REQUEST_CANCELLED},
    REQUEST_DISPUTE: {REQUEST_APPROVED, REQUEST_DELIVERED, REQUEST_CANCELLED},
    REQUEST_DELIVERED: set(),
    REQUEST_CANCELLED: set(),
}


def unlinked_fulfillment(item_type: str) -> ItemFulfillment:
    return ItemFulfillment(type=item_type)


def new_request(
    request_id: str,
    *,
    items: Iterable[str],
    employee_id: str | None,
    requester_id: str | None,
    observation: str = "",
    status: str = REQUEST_PENDING,
    request_type: str = REQUEST_TYPE_STANDARD,
) -> EquipmentRequest:
    item_list = [str(item).strip() for item in items if str(item or "").strip()]
    if not item_list:
        raise ValidationError(code="items_required")
    return EquipmentRequest(
        id=request_id,
        items=item_list,
        item_fulfillments=[unlinked_fulfillment(item) for item in item_list],
        employee_id=employee_id or None,
        requester_id=requester_id or None,
        observation=(observation or "").strip(),
        status=status,
        type=request_type,
        created_at=utc_now_iso(),
    )


def direct_purchase_request(
    request_id: str,
    *,
    item_type: str,
    requester_id: str | None,
    observation: str = "",
) -> EquipmentRequest:
    """Stock replenishment: one item, already in purchase-order mode."""
    item = str(item_type or "").strip()
    if not item:
        raise ValidationError(code="items_required")
    return EquipmentRequest(
        id=request_id,
        items=[item],
        item_fulfillments=[purchase_workflow.start_purchase_order(item)],
        employee_id=None,
        requester_id=requester_id or None,
        observation=(observation or "").strip() or "Pedido de compra direto para estoque.",
        status=REQUEST_PENDING,
        type=REQUEST_TYPE_STANDARD,
        created_at=utc_now_iso(),
    )


def divergence_request(
    request_id: str,
    *,
    sector: str,
    employee_id: str | None,
    requester_id: str | None,
    item_types: Iterable[str],
) -> EquipmentRequest:
    return new_request(
        request_id,
        items=item_types,
        employee_id=employee_id,
        requester_id=requester_id,
        observation=f"Divergencia de auditoria no setor {sector}",
        status=REQUEST_DISPUTE,
        request_type=REQUEST_TYPE_DIVERGENCE,
    )


def aligned_fulfillments(request: EquipmentRequest) -> List[ItemFulfillment]:
    """Fulfillments index-aligned with ``items``; missing slots come back unlinked."""
    result: List[ItemFulfillment] = []
    for idx, item in enumerate(request.items):
        if idx < len(request.item_fulfillments):
            result.append(request.item_fulfillments[idx])
        else:
            result.append(unlinked_fulfillment(item))
    return result


def fulfillment_at(request: EquipmentRequest, index: int) -> ItemFulfillment:
    fulfillments = aligned_fulfillments(request)
    if not isinstance(index, int) or not 0 <= index < len(fulfillments):
        raise ValidationError(code="item_index_invalid", payload={"request_id": request.id, "index": index})
    return fulfillments[index]


def replace_fulfillment(request: EquipmentRequest, index: int, fulfillment: ItemFulfillment) -> EquipmentRequest:
    fulfillments = aligned_fulfillments(request)
    fulfillments[index] = fulfillment
    return dataclasses.replace(request, item_fulfillments=fulfillments)


def _ensure_unresolved(request: EquipmentRequest, index: int) -> ItemFulfillment:
    fulfillment = fulfillment_at(request, index)
    if fulfillment.is_resolved:
        raise ValidationError(
            code="fulfillment_already_resolved",
            payload={"request_id": request.id, "index": index},
        )
    return fulfillment


def reserved_asset_ids(requests: Iterable[EquipmentRequest]) -> Set[str]:
    """Stock assets held by requests that are not yet Entregue or Cancelado."""
    reserved: Set[str] = set()
    for request in requests:
        if request.status in {REQUEST_DELIVERED, REQUEST_CANCELLED}:
            continue
        reserved.update(linked_asset_ids(request))
    return reserved


def link_stock_asset(
    request: EquipmentRequest,
    index: int,
    asset: Asset,
    reserved: Iterable[str] = (),
) -> EquipmentRequest:
    fulfillment = _ensure_unresolved(request, index)
    if asset.status != ASSET_AVAILABLE:
        raise ValidationError(code="asset_not_available", payload={"asset_id": asset.id, "status": asset.status})
    if asset.id in set(reserved):
        raise ValidationError(code="asset_reserved", payload={"asset_id": asset.id})
    if asset.type != fulfillment.type:
        raise ValidationError(
            code="asset_type_mismatch",
            payload={"asset_id": asset.id, "asset_type": asset.type, "item_type": fulfillment.type},
        )
    linked = dataclasses.replace(fulfillment, linked_asset_id=asset.id, is_purchase_order=False)
    return replace_fulfillment(request, index, linked)


def mark_for_purchase(request: EquipmentRequest, index: int) -> EquipmentRequest:
    fulfillment = _ensure_unresolved(request, index)
    return replace_fulfillment(request, index, purchase_workflow.start_purchase_order(fulfillment.type))


def is_actionable_complete(request: EquipmentRequest) -> bool:
    fulfillments = aligned_fulfillments(request)
    if not fulfillments:
        return False
    for fulfillment in fulfillments:
        if fulfillment.linked_asset_id:
            continue
        if fulfillment.is_purchase_order and fulfillment.purchase_status == purchase_workflow.PURCHASED:
            continue
        return False
    return True


def allowed_statuses(request: EquipmentRequest) -> List[str]:
    targets = REQUEST_TRANSITIONS.get(request.status, set())
    return [status for status in REQUEST_STATUSES if status in targets]


def change_status(request: EquipmentRequest, status: str) -> EquipmentRequest:
    target = str(status or "").strip()
    if target not in REQUEST_STATUSES:
        raise ValidationError(code="status_invalid", payload={"status": target})
    if target not in REQUEST_TRANSITIONS.get(request.status, set()):
        raise WorkflowError(
            payload={
                "status": request.status,
                "target_status": target,
                "allowed_statuses": allowed_statuses(request),
            }
        )
    if target == REQUEST_DELIVERED and not is_actionable_complete(request):
        raise WorkflowError(
            code="request_items_pending",
            message_key="request_items_pending",
            payload={"status": request.status, "target_status": target},
        )
    return dataclasses.replace(request, status=target)


def deliver_linked_asset(asset: Asset, request: EquipmentRequest, *, performed_by: str = "", history_id: str | None = None) -> Asset:
    """Hands a stock-linked asset over to the request's employee."""
    if not request.employee_id:
        return asset
    entry = HistoryEntry(
        id=history_id or new_history_id(),
        date=utc_now_iso(),
        type="Entrega",
        description=f"Entregue ao colaborador pela requisicao {request.id}.",
        performed_by=performed_by,
        user_context=request.employee_id,
    )
    return asset.with_history(entry, status=ASSET_IN_USE, assigned_to=request.employee_id)


def linked_asset_ids(request: EquipmentRequest) -> List[str]:
    return [f.linked_asset_id for f in aligned_fulfillments(request) if f.linked_asset_id and not f.is_purchase_order]
