from __future__ import annotations

from flask import Blueprint, jsonify

from assettrack.application.user_service import UserService
from assettrack.db import get_db
from assettrack.domain.contracts import UserInput
from assettrack.domain.records import APP_MODULES
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import flag, json_payload, optional_text, string_list, text
from assettrack.ui_strings import module_label


user_bp = Blueprint("users", __name__, url_prefix="/api/users")

_USER_SERVICE = UserService()


@user_bp.before_request
def _guard():
    require_module("user-management")


def _user_input(user_id: str | None = None) -> UserInput:
    payload = json_payload()
    return UserInput(
        id=user_id or optional_text(payload, "id"),
        name=text(payload, "name"),
        username=text(payload, "username"),
        password=str(payload.get("password") or ""),
        sector=text(payload, "sector"),
        modules=string_list(payload, "modules"),
        employee_id=optional_text(payload, "employee_id"),
        can_approve=flag(payload, "can_approve"),
        can_execute=flag(payload, "can_execute"),
    )


@user_bp.route("", methods=["GET"])
def list_users_api():
    users = _USER_SERVICE.list_users(get_db())
    return jsonify(
        {
            "items": [user.to_public_dict() for user in users],
            "modules": [{"id": module, "label": module_label(module)} for module in APP_MODULES],
        }
    )


@user_bp.route("", methods=["POST"])
def create_user_api():
    user = _USER_SERVICE.save_user(get_db(), current_actor(), _user_input())
    return jsonify(user.to_public_dict()), 201


@user_bp.route("/<string:user_id>", methods=["PUT"])
def update_user_api(user_id: str):
    user = _USER_SERVICE.save_user(get_db(), current_actor(), _user_input(user_id))
    return jsonify(user.to_public_dict())


@user_bp.route("/<string:user_id>", methods=["DELETE"])
def delete_user_api(user_id: str):
    _USER_SERVICE.remove_user(get_db(), current_actor(), user_id)
    return "", 204
