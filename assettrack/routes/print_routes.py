from __future__ import annotations

from datetime import datetime

from flask import Blueprint, Response, send_file

from assettrack.application.print_service import PrintService
from assettrack.db import get_db
from assettrack.documents.labels import TEXT_MIMETYPE
from assettrack.documents.responsibility_term import PDF_MIMETYPE
from assettrack.domain.contracts import ResponsibilityTermInput
from assettrack.policies import current_actor, require_module
from assettrack.routes.payloads import flag, json_payload, optional_text, string_list, text


print_bp = Blueprint("printing", __name__, url_prefix="/api/print")

_PRINT_SERVICE = PrintService()


@print_bp.before_request
def _guard():
    require_module("printing")


def _stamp() -> str:
    return datetime.now().strftime("%Y%m%d%H%M%S")


@print_bp.route("/labels.pdf", methods=["POST"])
def labels_pdf_api():
    asset_ids = string_list(json_payload(), "asset_ids")
    return send_file(
        _PRINT_SERVICE.label_sheet(get_db(), current_actor(), asset_ids),
        as_attachment=True,
        download_name=f"etiquetas_{_stamp()}.pdf",
        mimetype=PDF_MIMETYPE,
    )


@print_bp.route("/labels.txt", methods=["POST"])
def labels_text_api():
    asset_ids = string_list(json_payload(), "asset_ids")
    content = _PRINT_SERVICE.label_text(get_db(), current_actor(), asset_ids)
    return Response(
        content,
        mimetype=TEXT_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename=etiquetas_texto_{_stamp()}.txt"},
    )


@print_bp.route("/responsibility-term", methods=["POST"])
def responsibility_term_api():
    payload = json_payload()
    term_input = ResponsibilityTermInput(
        employee_id=text(payload, "employee_id"),
        asset_ids=string_list(payload, "asset_ids"),
        legal_entity_id=optional_text(payload, "legal_entity_id"),
        include_photos=flag(payload, "include_photos"),
    )
    return send_file(
        _PRINT_SERVICE.responsibility_term(get_db(), current_actor(), term_input),
        as_attachment=True,
        download_name=f"termo_responsabilidade_{term_input.employee_id}.pdf",
        mimetype=PDF_MIMETYPE,
    )
