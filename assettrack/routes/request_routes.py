from __future__ import annotations

from flask import Blueprint, jsonify, request

from assettrack.application.request_service import RequestService
from assettrack.db import get_db
from assettrack.domain.contracts import RequestCreateInput
from assettrack.errors import ValidationError
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import json_payload, optional_text, records, string_list, text


request_bp = Blueprint("requests", __name__, url_prefix="/api/requests")

_REQUEST_SERVICE = RequestService()


@request_bp.before_request
def _guard():
    require_module("requests")


@request_bp.route("", methods=["GET"])
def list_requests_api():
    items = _REQUEST_SERVICE.list_requests(get_db(), status=request.args.get("status") or None)
    return jsonify({"items": [_REQUEST_SERVICE.serialize(item) for item in items]})


@request_bp.route("", methods=["POST"])
def create_request_api():
    payload = json_payload()
    created = _REQUEST_SERVICE.create_request(
        get_db(),
        current_actor(),
        RequestCreateInput(
            items=string_list(payload, "items"),
            employee_id=optional_text(payload, "employee_id"),
            observation=text(payload, "observation"),
            requester_id=optional_text(payload, "requester_id"),
        ),
    )
    return jsonify(_REQUEST_SERVICE.serialize(created)), 201


@request_bp.route("/<string:request_id>", methods=["GET"])
def get_request_api(request_id: str):
    return jsonify(_REQUEST_SERVICE.serialize(_REQUEST_SERVICE.get_request(get_db(), request_id)))


@request_bp.route("/<string:request_id>", methods=["DELETE"])
def delete_request_api(request_id: str):
    _REQUEST_SERVICE.delete_request(get_db(), current_actor(), request_id)
    return "", 204


@request_bp.route("/<string:request_id>/status", methods=["POST"])
def update_request_status_api(request_id: str):
    status = text(json_payload(), "status")
    if not status:
        raise ValidationError(code="status_invalid")
    updated = _REQUEST_SERVICE.update_status(get_db(), current_actor(), request_id, status)
    return jsonify(_REQUEST_SERVICE.serialize(updated))


@request_bp.route("/<string:request_id>/items/<int:index>/available-assets", methods=["GET"])
def available_assets_api(request_id: str, index: int):
    return jsonify({"items": records(_REQUEST_SERVICE.available_assets_for_item(get_db(), request_id, index))})


@request_bp.route("/<string:request_id>/items/<int:index>/link", methods=["POST"])
def link_stock_asset_api(request_id: str, index: int):
    asset_id = text(json_payload(), "asset_id")
    if not asset_id:
        raise ValidationError(code="asset_not_found")
    updated = _REQUEST_SERVICE.link_stock_asset(get_db(), current_actor(), request_id, index, asset_id)
    return jsonify(_REQUEST_SERVICE.serialize(updated))


@request_bp.route("/<string:request_id>/items/<int:index>/purchase", methods=["POST"])
def mark_for_purchase_api(request_id: str, index: int):
    updated = _REQUEST_SERVICE.mark_for_purchase(get_db(), current_actor(), request_id, index)
    return jsonify(_REQUEST_SERVICE.serialize(updated))
