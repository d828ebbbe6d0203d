from __future__ import annotations

from flask import Blueprint, jsonify

from assettrack.application.directory_service import DirectoryService
from assettrack.db import get_db
from assettrack.domain.contracts import DepartmentInput, LegalEntityInput
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import json_payload, optional_text, records, text


company_bp = Blueprint("companies", __name__, url_prefix="/api")

_DIRECTORY_SERVICE = DirectoryService()


@company_bp.before_request
def _guard():
    require_module("companies")


@company_bp.route("/departments", methods=["GET"])
def list_departments_api():
    return jsonify({"items": _DIRECTORY_SERVICE.list_departments(get_db())})


@company_bp.route("/departments", methods=["POST"])
@company_bp.route("/departments/<string:department_id>", methods=["PUT"])
def save_department_api(department_id: str | None = None):
    payload = json_payload()
    department = _DIRECTORY_SERVICE.save_department(
        get_db(),
        current_actor(),
        DepartmentInput(
            id=department_id or optional_text(payload, "id"),
            name=text(payload, "name"),
            cost_center=text(payload, "cost_center"),
        ),
    )
    return jsonify(department.to_dict()), 200 if department_id else 201


@company_bp.route("/departments/<string:department_id>", methods=["DELETE"])
def delete_department_api(department_id: str):
    _DIRECTORY_SERVICE.remove_department(get_db(), current_actor(), department_id)
    return "", 204


@company_bp.route("/legal-entities", methods=["GET"])
def list_legal_entities_api():
    return jsonify({"items": records(_DIRECTORY_SERVICE.list_legal_entities(get_db()))})


@company_bp.route("/legal-entities", methods=["POST"])
@company_bp.route("/legal-entities/<string:entity_id>", methods=["PUT"])
def save_legal_entity_api(entity_id: str | None = None):
    payload = json_payload()
    entity = _DIRECTORY_SERVICE.save_legal_entity(
        get_db(),
        current_actor(),
        LegalEntityInput(
            id=entity_id or optional_text(payload, "id"),
            name=text(payload, "name"),
            cnpj=text(payload, "cnpj"),
            address=text(payload, "address"),
        ),
    )
    return jsonify(entity.to_dict()), 200 if entity_id else 201


@company_bp.route("/legal-entities/<string:entity_id>", methods=["DELETE"])
def delete_legal_entity_api(entity_id: str):
    _DIRECTORY_SERVICE.remove_legal_entity(get_db(), current_actor(), entity_id)
    return "", 204
