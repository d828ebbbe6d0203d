from __future__ import annotations

from flask import Blueprint, jsonify

from assettrack.application.dashboard_service import DashboardService
from assettrack.db import get_db
from assettrack.policies import require_module
from assettrack.ui_strings import frontend_bundle


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")

_DASHBOARD_SERVICE = DashboardService()


@dashboard_bp.before_request
def _guard():
    require_module("dashboard")


@dashboard_bp.route("/dashboard", methods=["GET"])
def dashboard_api():
    return jsonify(_DASHBOARD_SERVICE.build(get_db()))


@dashboard_bp.route("/ui-strings", methods=["GET"])
def ui_strings_api():
    return jsonify(frontend_bundle())
