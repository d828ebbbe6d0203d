from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request, session

from assettrack.application.user_service import AuthService, actor_for, normalize_username
from assettrack.db import get_db
from assettrack.domain.contracts import AuthLoginInput
from assettrack.errors import ValidationError
from assettrack.observability import ensure_request_id
from assettrack.policies import current_actor
from assettrack.routes.payloads import json_payload, text
from assettrack.security import enforce_login_rate_limit
from assettrack.ui_strings import error_message, module_label


auth_bp = Blueprint("auth", __name__)

_AUTH_SERVICE = AuthService()
_PUBLIC_PATHS = {"/api/auth/login", "/health"}


def register_auth(app) -> None:
    app.register_blueprint(auth_bp)

    @app.before_request
    def _load_actor():
        user_id = session.get("user_id")
        if not user_id:
            return None
        actor = _AUTH_SERVICE.load_actor(get_db(), user_id)
        if actor is None:
            session.clear()
            return None
        g.actor = actor
        return None

    @app.before_request
    def _require_login():
        if not app.config.get("AUTH_ENABLED", True):
            return None
        if app.config.get("TESTING"):
            return None

        path = request.path or "/"
        if path in _PUBLIC_PATHS:
            return None
        if getattr(g, "actor", None) is not None:
            return None
        if path.startswith("/api/"):
            return (
                jsonify(
                    {
                        "error": "auth_required",
                        "message": error_message("auth_required"),
                        "request_id": ensure_request_id(),
                    }
                ),
                401,
            )
        return None


def _session_payload(actor) -> dict:
    return {
        "user_id": actor.user_id,
        "username": actor.username,
        "name": actor.name,
        "modules": [{"id": module, "label": module_label(module)} for module in actor.modules],
        "can_approve": actor.can_approve,
        "can_execute": actor.can_execute,
        "is_admin": actor.is_admin,
    }


@auth_bp.route("/api/auth/login", methods=["POST"])
def login():
    payload = json_payload()
    username = normalize_username(text(payload, "username"))
    password = str(payload.get("password") or "")
    if not username or not password:
        raise ValidationError(code="auth_missing_credentials")
    enforce_login_rate_limit(username)

    user = _AUTH_SERVICE.login(get_db(), AuthLoginInput(username=username, password=password))
    if user is None:
        current_app.logger.warning("login_failed", extra={"username": username})
        return (
            jsonify(
                {
                    "error": "auth_invalid_credentials",
                    "message": error_message("auth_invalid_credentials"),
                    "request_id": ensure_request_id(),
                }
            ),
            401,
        )

    session.clear()
    session["user_id"] = user.id
    session["modules"] = list(user.modules)
    actor = actor_for(user)
    g.actor = actor
    current_app.logger.info("login_succeeded", extra={"user_id": user.id, "username": user.username})
    return jsonify({"user": _session_payload(actor)})


@auth_bp.route("/api/auth/logout", methods=["POST"])
def logout():
    session.clear()
    return jsonify({"status": "ok"})


@auth_bp.route("/api/auth/me", methods=["GET"])
def me():
    return jsonify({"user": _session_payload(current_actor())})
