"""Purchase-order state machine for a single requested line item.

Pendente -> Cotação Aprovada -> Pedido Autorizado -> Comprado, then a one-shot
receipt that materializes the Asset (tombamento). Every function returns a new
``ItemFulfillment`` and leaves its argument untouched.
"""

from __future__ import annotations

import dataclasses
import math
import unicodedata
from typing import Dict, Iterable, List, Tuple

from assettrack.domain.records import (
    ASSET_AVAILABLE,
    ASSET_IN_USE,
    Asset,
    EquipmentRequest,
    HistoryEntry,
    ItemFulfillment,
    Quotation,
    new_history_id,
    utc_now_iso,
)
from assettrack.errors import ValidationError, WorkflowError


PENDING = "Pendente"
QUOTATION_APPROVED = "Cotação Aprovada"
ORDER_AUTHORIZED = "Pedido Autorizado"
PURCHASED = "Comprado"
DELIVERED = "Entregue"

PURCHASE_STATUSES: List[str] = [PENDING, QUOTATION_APPROVED, ORDER_AUTHORIZED, PURCHASED]

QUOTATION_SLOTS = 3

UPDATE_QUOTATION = "update_quotation"
APPROVE_QUOTATION = "approve_quotation"
AUTHORIZE_ORDER = "authorize_order"
MARK_PURCHASED = "mark_purchased"
SET_DELIVERY_FORECAST = "set_delivery_forecast"
FINALIZE_RECEIPT = "finalize_receipt"

ACTION_LABELS: Dict[str, str] = {
    UPDATE_QUOTATION: "Preencher cotacao",
    APPROVE_QUOTATION: "Selecionar fornecedor",
    AUTHORIZE_ORDER: "Autorizar pedido",
    MARK_PURCHASED: "Confirmar pagamento",
    SET_DELIVERY_FORECAST: "Informar previsao de entrega",
    FINALIZE_RECEIPT: "Receber e tombar",
}

# Flow keyed by the effective status; DELIVERED is the terminal view of Comprado.
PURCHASE_FLOW: Dict[str, Dict[str, object]] = {
    PENDING: {
        "allowed_actions": [UPDATE_QUOTATION, APPROVE_QUOTATION, SET_DELIVERY_FORECAST],
        "primary_action": APPROVE_QUOTATION,
    },
    QUOTATION_APPROVED: {
        "allowed_actions": [AUTHORIZE_ORDER, SET_DELIVERY_FORECAST],
        "primary_action": AUTHORIZE_ORDER,
    },
    ORDER_AUTHORIZED: {
        "allowed_actions": [MARK_PURCHASED, SET_DELIVERY_FORECAST],
        "primary_action": MARK_PURCHASED,
    },
    PURCHASED: {
        "allowed_actions": [FINALIZE_RECEIPT, SET_DELIVERY_FORECAST],
        "primary_action": FINALIZE_RECEIPT,
    },
    DELIVERED: {
        "allowed_actions": [],
        "primary_action": None,
    },
}

TRANSITIONS: Dict[Tuple[str, str], str] = {
    (PENDING, APPROVE_QUOTATION): QUOTATION_APPROVED,
    (QUOTATION_APPROVED, AUTHORIZE_ORDER): ORDER_AUTHORIZED,
    (ORDER_AUTHORIZED, MARK_PURCHASED): PURCHASED,
}

PROCESS_STAGES: List[Dict[str, str]] = [
    {"key": "cotacao", "label": "Cotação"},
    {"key": "aprovacao", "label": "Aprovação"},
    {"key": "autorizacao", "label": "Autorização"},
    {"key": "compra", "label": "Compra"},
]

_REPLACEMENT_PART_MARKERS = ("peca", "reposicao")


def normalize_status(status: str | None) -> str:
    value = str(status or "").strip()
    return value if value in PURCHASE_STATUSES else PENDING


def effective_status(fulfillment: ItemFulfillment) -> str:
    status = normalize_status(fulfillment.purchase_status)
    if status == PURCHASED and fulfillment.is_delivered:
        return DELIVERED
    return status


def status_rank(status: str | None) -> int:
    return PURCHASE_STATUSES.index(normalize_status(status))


def allowed_actions(fulfillment: ItemFulfillment) -> List[str]:
    if not fulfillment.is_purchase_order:
        return []
    policy = PURCHASE_FLOW.get(effective_status(fulfillment)) or {}
    return [str(action) for action in policy.get("allowed_actions") or []]


def primary_action(fulfillment: ItemFulfillment) -> str | None:
    if not fulfillment.is_purchase_order:
        return None
    action = (PURCHASE_FLOW.get(effective_status(fulfillment)) or {}).get("primary_action")
    return str(action) if action else None


def action_allowed(fulfillment: ItemFulfillment, action: str) -> bool:
    return bool(action) and action in allowed_actions(fulfillment)


def flow_meta(fulfillment: ItemFulfillment) -> Dict[str, object]:
    return {
        "status": effective_status(fulfillment),
        "allowed_actions": allowed_actions(fulfillment),
        "primary_action": primary_action(fulfillment),
    }


def ensure_action(fulfillment: ItemFulfillment, action: str) -> None:
    if not fulfillment.is_purchase_order:
        raise ValidationError(code="not_a_purchase_order", payload={"action": action})
    if fulfillment.is_delivered and action == FINALIZE_RECEIPT:
        raise WorkflowError(
            code="already_delivered",
            http_status=409,
            payload={"action": action, "linked_asset_id": fulfillment.linked_asset_id},
        )
    if action_allowed(fulfillment, action):
        return
    raise WorkflowError(
        payload={
            "status": effective_status(fulfillment),
            "action": action,
            "allowed_actions": allowed_actions(fulfillment),
            "primary_action": primary_action(fulfillment),
        }
    )


def _advance(fulfillment: ItemFulfillment, action: str, **changes) -> ItemFulfillment:
    ensure_action(fulfillment, action)
    current = normalize_status(fulfillment.purchase_status)
    target = TRANSITIONS[(current, action)]
    return dataclasses.replace(fulfillment, purchase_status=target, **changes)


def empty_quotations() -> List[Quotation]:
    return [Quotation() for _ in range(QUOTATION_SLOTS)]


def start_purchase_order(item_type: str) -> ItemFulfillment:
    return ItemFulfillment(
        type=item_type,
        linked_asset_id=None,
        is_purchase_order=True,
        purchase_status=PENDING,
        quotations=empty_quotations(),
    )


def _slots(fulfillment: ItemFulfillment) -> List[Quotation]:
    slots = [dataclasses.replace(q) for q in fulfillment.quotations[:QUOTATION_SLOTS]]
    while len(slots) < QUOTATION_SLOTS:
        slots.append(Quotation())
    return slots


def _check_slot(slot: int) -> int:
    try:
        index = int(slot)
    except (TypeError, ValueError):
        raise ValidationError(code="quotation_slot_invalid", payload={"slot": slot}) from None
    if not 0 <= index < QUOTATION_SLOTS:
        raise ValidationError(code="quotation_slot_invalid", payload={"slot": index})
    return index


def update_quotation(
    fulfillment: ItemFulfillment,
    slot: int,
    *,
    url: str | None = None,
    price: float | None = None,
    delivery_prediction: str | None = None,
    clear_price: bool = False,
) -> ItemFulfillment:
    ensure_action(fulfillment, UPDATE_QUOTATION)
    index = _check_slot(slot)
    if price is not None and not (math.isfinite(price) and price >= 0):
        raise ValidationError(code="quotation_price_invalid", payload={"slot": index})

    slots = _slots(fulfillment)
    current = slots[index]
    slots[index] = Quotation(
        url=current.url if url is None else url.strip(),
        price=None if clear_price else (current.price if price is None else float(price)),
        delivery_prediction=(
            current.delivery_prediction if delivery_prediction is None else delivery_prediction.strip()
        ),
    )
    return dataclasses.replace(fulfillment, quotations=slots)


def approve_quotation(fulfillment: ItemFulfillment, slot: int) -> ItemFulfillment:
    ensure_action(fulfillment, APPROVE_QUOTATION)
    index = _check_slot(slot)
    slots = _slots(fulfillment)
    if not slots[index].is_filled():
        raise ValidationError(code="quotation_slot_empty", payload={"slot": index})
    return _advance(fulfillment, APPROVE_QUOTATION, quotations=slots, approved_quotation_index=index)


def authorize_order(fulfillment: ItemFulfillment) -> ItemFulfillment:
    return _advance(fulfillment, AUTHORIZE_ORDER)


def mark_purchased(fulfillment: ItemFulfillment, *, require_forecast: bool = True) -> ItemFulfillment:
    # Single payment confirmation needs a forecast; bulk payment does not.
    ensure_action(fulfillment, MARK_PURCHASED)
    if require_forecast and not (fulfillment.delivery_forecast_date or "").strip():
        raise ValidationError(code="delivery_forecast_required")
    return _advance(fulfillment, MARK_PURCHASED)


def set_delivery_forecast(fulfillment: ItemFulfillment, forecast_date: str | None) -> ItemFulfillment:
    ensure_action(fulfillment, SET_DELIVERY_FORECAST)
    value = str(forecast_date or "").strip() or None
    return dataclasses.replace(fulfillment, delivery_forecast_date=value)


def approved_quotation(fulfillment: ItemFulfillment) -> Quotation | None:
    index = fulfillment.approved_quotation_index
    if index is None or status_rank(fulfillment.purchase_status) < status_rank(QUOTATION_APPROVED):
        return None
    if not 0 <= index < len(fulfillment.quotations):
        return None
    return fulfillment.quotations[index]


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def is_replacement_part(item_type: str | None) -> bool:
    folded = _fold(str(item_type or ""))
    return any(marker in folded for marker in _REPLACEMENT_PART_MARKERS)


def acquisition_value(fulfillment: ItemFulfillment) -> float:
    if is_replacement_part(fulfillment.type):
        return 0.0
    quotation = approved_quotation(fulfillment)
    if quotation is None or quotation.price is None:
        return 0.0
    return float(quotation.price)


def build_received_asset(
    request: EquipmentRequest,
    fulfillment: ItemFulfillment,
    *,
    asset_id: str,
    brand: str,
    model: str,
    serial_number: str | None = None,
    tag_id: str | None = None,
    observations: str | None = None,
    performed_by: str = "",
    history_id: str | None = None,
) -> Asset:
    """Asset produced by the tombamento of a purchased line item."""
    ensure_action(fulfillment, FINALIZE_RECEIPT)
    now = utc_now_iso()
    assigned_to = request.employee_id or None
    description = f"Tombamento via pedido de compra da requisicao {request.id}."
    return Asset(
        id=asset_id,
        type=fulfillment.type,
        brand=brand,
        model=model,
        status=ASSET_IN_USE if assigned_to else ASSET_AVAILABLE,
        assigned_to=assigned_to,
        tag_id=tag_id or None,
        serial_number=serial_number or None,
        purchase_value=acquisition_value(fulfillment),
        observations=observations or f"Item recebido via Pedido de Compra referente a requisicao {request.id}",
        qr_code=f"QR-{asset_id}",
        created_at=now,
        history=[
            HistoryEntry(
                id=history_id or new_history_id(),
                date=now,
                type="Tombamento",
                description=description,
                performed_by=performed_by,
                user_context=assigned_to,
            )
        ],
    )


def complete_receipt(fulfillment: ItemFulfillment, asset_id: str) -> ItemFulfillment:
    ensure_action(fulfillment, FINALIZE_RECEIPT)
    return dataclasses.replace(fulfillment, is_delivered=True, linked_asset_id=asset_id)


def build_process_steps(fulfillment: ItemFulfillment) -> List[Dict[str, object]]:
    status = normalize_status(fulfillment.purchase_status)
    # index of the stage currently being worked on; past stages are completed
    current_idx = {PENDING: 0, QUOTATION_APPROVED: 1, ORDER_AUTHORIZED: 2, PURCHASED: 3}[status]
    if status == PURCHASED and fulfillment.is_delivered:
        current_idx = len(PROCESS_STAGES)
    steps: List[Dict[str, object]] = []
    for idx, stage in enumerate(PROCESS_STAGES):
        state = "future"
        if idx < current_idx:
            state = "completed"
        elif idx == current_idx:
            state = "current"
        steps.append({"key": stage["key"], "label": stage["label"], "state": state})
    return steps


def status_counts(fulfillments: Iterable[ItemFulfillment]) -> Dict[str, int]:
    counts = {status: 0 for status in PURCHASE_STATUSES}
    for fulfillment in fulfillments:
        if not fulfillment.is_purchase_order or fulfillment.is_delivered:
            continue
        counts[normalize_status(fulfillment.purchase_status)] += 1
    return counts


def frontend_bundle() -> Dict[str, object]:
    return {
        "statuses": PURCHASE_STATUSES,
        "stages": PROCESS_STAGES,
        "policy": PURCHASE_FLOW,
        "action_labels": ACTION_LABELS,
        "quotation_slots": QUOTATION_SLOTS,
    }
