from __future__ import annotations

from flask import Blueprint, jsonify, request

from assettrack.application.directory_service import DirectoryService
from assettrack.db import get_db
from assettrack.domain.contracts import EmployeeInput
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import flag, json_payload, optional_text, records, text


employee_bp = Blueprint("employees", __name__, url_prefix="/api/employees")

_DIRECTORY_SERVICE = DirectoryService()


@employee_bp.before_request
def _guard():
    require_module("employees")


def _employee_input(employee_id: str | None = None) -> EmployeeInput:
    payload = json_payload()
    return EmployeeInput(
        id=employee_id or optional_text(payload, "id"),
        name=text(payload, "name"),
        sector=text(payload, "sector"),
        role=text(payload, "role"),
        cpf=text(payload, "cpf"),
        department_id=optional_text(payload, "department_id"),
        is_active=flag(payload, "is_active", default=True),
    )


@employee_bp.route("", methods=["GET"])
def list_employees_api():
    employees = _DIRECTORY_SERVICE.list_employees(
        get_db(),
        search=request.args.get("search"),
        sector=request.args.get("sector"),
    )
    return jsonify({"items": records(employees)})


@employee_bp.route("", methods=["POST"])
def create_employee_api():
    employee = _DIRECTORY_SERVICE.save_employee(get_db(), current_actor(), _employee_input())
    return jsonify(employee.to_dict()), 201


@employee_bp.route("/<string:employee_id>", methods=["GET"])
def get_employee_api(employee_id: str):
    return jsonify(_DIRECTORY_SERVICE.get_employee(get_db(), employee_id).to_dict())


@employee_bp.route("/<string:employee_id>", methods=["PUT"])
def update_employee_api(employee_id: str):
    db = get_db()
    _DIRECTORY_SERVICE.get_employee(db, employee_id)
    employee = _DIRECTORY_SERVICE.save_employee(db, current_actor(), _employee_input(employee_id))
    return jsonify(employee.to_dict())


@employee_bp.route("/<string:employee_id>", methods=["DELETE"])
def delete_employee_api(employee_id: str):
    _DIRECTORY_SERVICE.remove_employee(get_db(), current_actor(), employee_id)
    return "", 204
