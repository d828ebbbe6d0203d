from __future__ import annotations

from flask import Blueprint, jsonify, request

from assettrack.application.audit_service import AuditService
from assettrack.db import get_db
from assettrack.domain.contracts import AuditEntryInput
from assettrack.domain.records import AUDIT_STATUSES
from assettrack.errors import ValidationError
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import json_payload, optional_text, records, text


inventory_check_bp = Blueprint("inventory_check", __name__, url_prefix="/api/inventory-checks")

_AUDIT_SERVICE = AuditService()


@inventory_check_bp.before_request
def _guard():
    require_module("inventory-check")


@inventory_check_bp.route("", methods=["GET"])
def list_sessions_api():
    db = get_db()
    return jsonify(
        {
            "items": records(_AUDIT_SERVICE.list_sessions(db)),
            "sectors": _AUDIT_SERVICE.sectors(db),
            "statuses": AUDIT_STATUSES,
        }
    )


@inventory_check_bp.route("/sector-assets", methods=["GET"])
def sector_assets_api():
    sector = (request.args.get("sector") or "").strip()
    if not sector:
        raise ValidationError(code="sector_required")
    return jsonify({"items": records(_AUDIT_SERVICE.assets_in_sector(get_db(), sector))})


@inventory_check_bp.route("", methods=["POST"])
def create_session_api():
    session = _AUDIT_SERVICE.create_session(get_db(), current_actor(), text(json_payload(), "sector"))
    return jsonify(session.to_dict()), 201


@inventory_check_bp.route("/<string:session_id>", methods=["GET"])
def get_session_api(session_id: str):
    db = get_db()
    return jsonify(_AUDIT_SERVICE.describe(db, _AUDIT_SERVICE.get_session(db, session_id)))


@inventory_check_bp.route("/<string:session_id>", methods=["DELETE"])
def delete_session_api(session_id: str):
    _AUDIT_SERVICE.delete_session(get_db(), current_actor(), session_id)
    return "", 204


@inventory_check_bp.route("/<string:session_id>/entries", methods=["POST"])
def record_entry_api(session_id: str):
    payload = json_payload()
    db = get_db()
    session = _AUDIT_SERVICE.record_entry(
        db,
        current_actor(),
        session_id,
        AuditEntryInput(
            asset_id=text(payload, "asset_id"),
            status=text(payload, "status"),
            observation=optional_text(payload, "observation"),
        ),
    )
    return jsonify(_AUDIT_SERVICE.describe(db, session))


@inventory_check_bp.route("/<string:session_id>/finish", methods=["POST"])
def finish_session_api(session_id: str):
    session = _AUDIT_SERVICE.finish_session(get_db(), current_actor(), session_id)
    return jsonify(session.to_dict())
