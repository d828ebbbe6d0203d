from __future__ import annotations

from flask import Blueprint, jsonify, request

from assettrack.application.maintenance_service import MAINTENANCE_SCOPES, MAINTENANCE_TYPES, MaintenanceService
from assettrack.db import get_db
from assettrack.domain.contracts import MaintenanceOpenInput
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import json_payload, records, text


maintenance_bp = Blueprint("maintenance", __name__, url_prefix="/api/maintenance")

_MAINTENANCE_SERVICE = MaintenanceService()


@maintenance_bp.before_request
def _guard():
    require_module("maintenance")


@maintenance_bp.route("", methods=["GET"])
def list_maintenance_api():
    db = get_db()
    return jsonify(
        {
            "items": records(_MAINTENANCE_SERVICE.list_in_maintenance(db)),
            "eligible": records(_MAINTENANCE_SERVICE.list_eligible(db, request.args.get("search"))),
            "types": list(MAINTENANCE_TYPES),
            "scopes": list(MAINTENANCE_SCOPES),
        }
    )


@maintenance_bp.route("", methods=["POST"])
def open_maintenance_api():
    payload = json_payload()
    asset = _MAINTENANCE_SERVICE.open_maintenance(
        get_db(),
        current_actor(),
        MaintenanceOpenInput(
            asset_id=text(payload, "asset_id"),
            maintenance_type=text(payload, "maintenance_type"),
            scope=text(payload, "scope"),
            reason=text(payload, "reason"),
        ),
    )
    return jsonify(asset.to_dict()), 201


@maintenance_bp.route("/<string:asset_id>/conclude", methods=["POST"])
def conclude_maintenance_api(asset_id: str):
    return jsonify(_MAINTENANCE_SERVICE.conclude_maintenance(get_db(), current_actor(), asset_id).to_dict())
