from __future__ import annotations

from flask import Blueprint, jsonify, request

from assettrack.application.purchase_order_service import PurchaseOrderService
from assettrack.application.request_service import RequestService
from assettrack.db import get_db
from assettrack.domain.contracts import DirectPurchaseInput, PurchaseSelection, QuotationUpdateInput, ReceiptInput
from assettrack.errors import ValidationError
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import (
    flag,
    json_payload,
    optional_text,
    parse_int,
    parse_optional_float,
    text,
)


purchase_order_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

_PURCHASE_ORDER_SERVICE = PurchaseOrderService()
_REQUEST_SERVICE = RequestService()


@purchase_order_bp.before_request
def _guard():
    require_module("purchase-orders")


@purchase_order_bp.route("", methods=["GET"])
def list_purchase_orders_api():
    result = _PURCHASE_ORDER_SERVICE.list_orders(
        get_db(),
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return jsonify(result)


@purchase_order_bp.route("", methods=["POST"])
def create_direct_purchase_order_api():
    payload = json_payload()
    item_type = text(payload, "item_type") or text(payload, "type")
    if not item_type:
        raise ValidationError(code="items_required")
    created = _PURCHASE_ORDER_SERVICE.create_direct_order(
        get_db(),
        current_actor(),
        DirectPurchaseInput(
            item_type=item_type,
            observation=text(payload, "observation"),
            requester_id=optional_text(payload, "requester_id"),
        ),
    )
    return jsonify(_REQUEST_SERVICE.serialize(created)), 201


@purchase_order_bp.route("/bulk-purchase", methods=["POST"])
def bulk_mark_purchased_api():
    raw = json_payload().get("selections")
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise ValidationError(code="selection_required")
    selections = [
        PurchaseSelection(
            request_id=text(item, "request_id"),
            index=parse_int(item.get("index"), field="index"),
        )
        for item in raw
    ]
    items = _PURCHASE_ORDER_SERVICE.mark_purchased_bulk(get_db(), current_actor(), selections)
    return jsonify({"items": items})


@purchase_order_bp.route("/<string:request_id>/<int:index>", methods=["GET"])
def get_purchase_order_api(request_id: str, index: int):
    return jsonify(_PURCHASE_ORDER_SERVICE.get_order(get_db(), request_id, index))


@purchase_order_bp.route("/<string:request_id>/<int:index>/quotations/<int:slot>", methods=["PUT"])
def update_quotation_api(request_id: str, index: int, slot: int):
    payload = json_payload()
    result = _PURCHASE_ORDER_SERVICE.update_quotation(
        get_db(),
        current_actor(),
        request_id,
        index,
        QuotationUpdateInput(
            slot=slot,
            url=text(payload, "url") if "url" in payload else None,
            price=parse_optional_float(payload.get("price"), field="price"),
            delivery_prediction=text(payload, "delivery_prediction") if "delivery_prediction" in payload else None,
            clear_price=flag(payload, "clear_price") or ("price" in payload and payload.get("price") in (None, "")),
        ),
    )
    return jsonify(result)


@purchase_order_bp.route("/<string:request_id>/<int:index>/approve", methods=["POST"])
def approve_quotation_api(request_id: str, index: int):
    slot = parse_int(json_payload().get("slot"), field="slot")
    return jsonify(_PURCHASE_ORDER_SERVICE.approve_quotation(get_db(), current_actor(), request_id, index, slot))


@purchase_order_bp.route("/<string:request_id>/<int:index>/authorize", methods=["POST"])
def authorize_order_api(request_id: str, index: int):
    return jsonify(_PURCHASE_ORDER_SERVICE.authorize_order(get_db(), current_actor(), request_id, index))


@purchase_order_bp.route("/<string:request_id>/<int:index>/purchase", methods=["POST"])
def mark_purchased_api(request_id: str, index: int):
    return jsonify(_PURCHASE_ORDER_SERVICE.mark_purchased(get_db(), current_actor(), request_id, index))


@purchase_order_bp.route("/<string:request_id>/<int:index>/forecast", methods=["PUT"])
def set_delivery_forecast_api(request_id: str, index: int):
    forecast = optional_text(json_payload(), "delivery_forecast_date")
    return jsonify(
        _PURCHASE_ORDER_SERVICE.set_delivery_forecast(get_db(), current_actor(), request_id, index, forecast)
    )


@purchase_order_bp.route("/<string:request_id>/<int:index>/receipt", methods=["POST"])
def finalize_receipt_api(request_id: str, index: int):
    payload = json_payload()
    asset, updated = _PURCHASE_ORDER_SERVICE.finalize_receipt(
        get_db(),
        current_actor(),
        request_id,
        index,
        ReceiptInput(
            brand=text(payload, "brand"),
            model=text(payload, "model"),
            asset_id=optional_text(payload, "asset_id"),
            serial_number=optional_text(payload, "serial_number"),
            tag_id=optional_text(payload, "tag_id"),
            observations=optional_text(payload, "observations"),
        ),
    )
    return jsonify({"asset": asset.to_dict(), "request": _REQUEST_SERVICE.serialize(updated)}), 201
