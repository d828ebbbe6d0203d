from __future__ import annotations

from datetime import date

from flask import Blueprint, jsonify, request, send_file

from assettrack.application.system_service import SystemService
from assettrack.db import get_db
from assettrack.documents.workbook import XLSX_MIMETYPE
from assettrack.errors import ValidationError
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import json_payload


system_bp = Blueprint("system", __name__, url_prefix="/api/system")

_SYSTEM_SERVICE = SystemService()


@system_bp.before_request
def _guard():
    require_module("system-info")


@system_bp.route("/configs", methods=["GET"])
def get_configs_api():
    return jsonify(_SYSTEM_SERVICE.integration_configs(get_db()))


@system_bp.route("/configs", methods=["PUT"])
def save_configs_api():
    return jsonify(_SYSTEM_SERVICE.save_integration_configs(get_db(), current_actor(), json_payload()))


@system_bp.route("/export.xlsx", methods=["GET"])
def export_workbook_api():
    return send_file(
        _SYSTEM_SERVICE.export_workbook(get_db()),
        as_attachment=True,
        download_name=f"AssetTrack_Export_Completo_{date.today().isoformat()}.xlsx",
        mimetype=XLSX_MIMETYPE,
    )


@system_bp.route("/import", methods=["POST"])
def import_workbook_api():
    upload = request.files.get("file")
    if upload is None:
        raise ValidationError(code="workbook_required")
    return jsonify(_SYSTEM_SERVICE.import_workbook(get_db(), current_actor(), upload.stream))
