from __future__ import annotations

from flask import Blueprint, jsonify, request

from assettrack.application.asset_service import AssetService
from assettrack.db import get_db
from assettrack.domain.contracts import AssetInput
from assettrack.domain.records import ASSET_STATUSES, ASSET_TYPES
from assettrack.errors import ValidationError
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import json_payload, records


asset_bp = Blueprint("assets", __name__, url_prefix="/api/assets")

_ASSET_SERVICE = AssetService()


@asset_bp.before_request
def _guard():
    require_module("assets")


@asset_bp.route("", methods=["GET"])
def list_assets_api():
    assets = _ASSET_SERVICE.list_assets(
        get_db(),
        search=request.args.get("search"),
        asset_type=request.args.get("type"),
        status=request.args.get("status"),
    )
    return jsonify({"items": records(assets), "types": ASSET_TYPES, "statuses": ASSET_STATUSES})


@asset_bp.route("", methods=["POST"])
def create_asset_api():
    asset = _ASSET_SERVICE.create_asset(get_db(), current_actor(), AssetInput(values=json_payload()))
    return jsonify(asset.to_dict()), 201


@asset_bp.route("/bulk", methods=["POST"])
def bulk_create_assets_api():
    entries = json_payload().get("items")
    if not isinstance(entries, list) or not all(isinstance(entry, dict) for entry in entries):
        raise ValidationError(code="validation_error", payload={"field": "items"})
    created = _ASSET_SERVICE.bulk_create(get_db(), current_actor(), [AssetInput(values=entry) for entry in entries])
    return jsonify({"items": records(created)}), 201


@asset_bp.route("/<string:asset_id>", methods=["GET"])
def get_asset_api(asset_id: str):
    return jsonify(_ASSET_SERVICE.get_asset(get_db(), asset_id).to_dict())


@asset_bp.route("/<string:asset_id>", methods=["PATCH", "PUT"])
def update_asset_api(asset_id: str):
    asset = _ASSET_SERVICE.update_asset(get_db(), current_actor(), asset_id, AssetInput(values=json_payload()))
    return jsonify(asset.to_dict())


@asset_bp.route("/<string:asset_id>", methods=["DELETE"])
def delete_asset_api(asset_id: str):
    _ASSET_SERVICE.remove_asset(get_db(), current_actor(), asset_id)
    return "", 204
