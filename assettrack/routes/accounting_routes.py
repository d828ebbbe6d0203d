from __future__ import annotations

from flask import Blueprint, jsonify

from assettrack.application.accounting_service import AccountingService
from assettrack.db import get_db
from assettrack.domain.contracts import AccountInput, AssetTypeConfigInput, ClassificationInput
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import json_payload, optional_text, records, text


accounting_bp = Blueprint("accounting", __name__, url_prefix="/api/accounting")

_ACCOUNTING_SERVICE = AccountingService()


@accounting_bp.before_request
def _guard():
    require_module("accounting")


@accounting_bp.route("", methods=["GET"])
def accounting_overview_api():
    db = get_db()
    return jsonify(
        {
            "accounts": records(_ACCOUNTING_SERVICE.list_accounts(db)),
            "classifications": records(_ACCOUNTING_SERVICE.list_classifications(db)),
            "asset_types": records(_ACCOUNTING_SERVICE.list_asset_types(db)),
        }
    )


@accounting_bp.route("/accounts", methods=["POST"])
@accounting_bp.route("/accounts/<string:account_id>", methods=["PUT"])
def save_account_api(account_id: str | None = None):
    payload = json_payload()
    account = _ACCOUNTING_SERVICE.save_account(
        get_db(),
        current_actor(),
        AccountInput(id=account_id or optional_text(payload, "id"), code=text(payload, "code"), name=text(payload, "name")),
    )
    return jsonify(account.to_dict()), 200 if account_id else 201


@accounting_bp.route("/accounts/<string:account_id>", methods=["DELETE"])
def delete_account_api(account_id: str):
    _ACCOUNTING_SERVICE.remove_account(get_db(), current_actor(), account_id)
    return "", 204


@accounting_bp.route("/classifications", methods=["POST"])
@accounting_bp.route("/classifications/<string:classification_id>", methods=["PUT"])
def save_classification_api(classification_id: str | None = None):
    payload = json_payload()
    classification = _ACCOUNTING_SERVICE.save_classification(
        get_db(),
        current_actor(),
        ClassificationInput(
            id=classification_id or optional_text(payload, "id"),
            code=text(payload, "code"),
            name=text(payload, "name"),
            account_id=optional_text(payload, "account_id"),
        ),
    )
    return jsonify(classification.to_dict()), 200 if classification_id else 201


@accounting_bp.route("/classifications/<string:classification_id>", methods=["DELETE"])
def delete_classification_api(classification_id: str):
    _ACCOUNTING_SERVICE.remove_classification(get_db(), current_actor(), classification_id)
    return "", 204


@accounting_bp.route("/asset-types", methods=["POST"])
@accounting_bp.route("/asset-types/<string:type_id>", methods=["PUT"])
def save_asset_type_api(type_id: str | None = None):
    payload = json_payload()
    config = _ACCOUNTING_SERVICE.save_asset_type(
        get_db(),
        current_actor(),
        AssetTypeConfigInput(
            id=type_id or optional_text(payload, "id"),
            name=text(payload, "name"),
            classification_id=optional_text(payload, "classification_id"),
        ),
    )
    return jsonify(config.to_dict()), 200 if type_id else 201


@accounting_bp.route("/asset-types/<string:type_id>", methods=["DELETE"])
def delete_asset_type_api(type_id: str):
    _ACCOUNTING_SERVICE.remove_asset_type(get_db(), current_actor(), type_id)
    return "", 204
