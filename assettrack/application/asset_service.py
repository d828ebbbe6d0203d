from __future__ import annotations

import dataclasses
import math
from typing import Any, Dict, Iterable, List

from flask import current_app

from assettrack.domain.contracts import Actor, AssetInput
from assettrack.domain.records import (
    ASSET_AVAILABLE,
    ASSET_IN_USE,
    ASSET_STATUSES,
    Asset,
    HistoryEntry,
    generate_id,
    new_history_id,
    utc_now_iso,
)
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.accounting import AccountingClassificationRepository
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import (
    DepartmentRepository,
    EmployeeRepository,
    LegalEntityRepository,
)


_TEXT_FIELDS = ("type", "brand", "model", "observations")
_OPTIONAL_TEXT_FIELDS = (
    "assigned_to",
    "department_id",
    "legal_entity_id",
    "classification_id",
    "tag_id",
    "serial_number",
    "ram",
    "storage",
    "processor",
    "screen_size",
)


def _clean_text(value: Any) -> str:
    return str(value if value is not None else "").strip()


def _parse_value(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    text = str(value).strip().replace("R$", "").strip()
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")
    try:
        parsed = float(text)
    except ValueError:
        raise ValidationError(code="purchase_value_invalid", payload={"value": value}) from None
    if not math.isfinite(parsed) or parsed < 0:
        raise ValidationError(code="purchase_value_invalid", payload={"value": value})
    return parsed


class AssetService:
    def __init__(
        self,
        assets: AssetRepository | None = None,
        employees: EmployeeRepository | None = None,
        departments: DepartmentRepository | None = None,
        legal_entities: LegalEntityRepository | None = None,
        classifications: AccountingClassificationRepository | None = None,
    ) -> None:
        self.assets = assets or AssetRepository()
        self.employees = employees or EmployeeRepository()
        self.departments = departments or DepartmentRepository()
        self.legal_entities = legal_entities or LegalEntityRepository()
        self.classifications = classifications or AccountingClassificationRepository()

    def list_assets(self, db, *, search: str | None = None, asset_type: str | None = None, status: str | None = None) -> List[Asset]:
        asset_type = None if (asset_type or "").strip().lower() in {"", "all", "todos"} else asset_type
        return self.assets.search(db, term=search, asset_type=asset_type, status=status or None)

    def get_asset(self, db, asset_id: str) -> Asset:
        asset = self.assets.get(db, asset_id)
        if asset is None:
            raise NotFoundError(code="asset_not_found", payload={"asset_id": asset_id})
        return asset

    def _normalize(self, values: Dict[str, Any]) -> Dict[str, Any]:
        cleaned: Dict[str, Any] = {}
        for name in _TEXT_FIELDS:
            if name in values:
                cleaned[name] = _clean_text(values[name])
        for name in _OPTIONAL_TEXT_FIELDS:
            if name in values:
                cleaned[name] = _clean_text(values[name]) or None
        if "status" in values:
            status = _clean_text(values["status"])
            if status and status not in ASSET_STATUSES:
                raise ValidationError(code="status_invalid", payload={"status": status})
            cleaned["status"] = status or None
        if "purchase_value" in values:
            cleaned["purchase_value"] = _parse_value(values["purchase_value"])
        if "photos" in values:
            photos = values["photos"] or []
            if not isinstance(photos, list):
                raise ValidationError(code="validation_error", payload={"field": "photos"})
            cleaned["photos"] = [str(photo) for photo in photos if str(photo).strip()]
        return cleaned

    def _check_references(self, db, values: Dict[str, Any]) -> None:
        checks = (
            ("assigned_to", self.employees, "employee_not_found"),
            ("department_id", self.departments, "department_not_found"),
            ("legal_entity_id", self.legal_entities, "legal_entity_not_found"),
            ("classification_id", self.classifications, "classification_not_found"),
        )
        for field_name, repository, code in checks:
            ref = values.get(field_name)
            if ref and not repository.exists(db, ref):
                raise ValidationError(code=code, payload={field_name: ref})

    def _build_new(self, db, actor: Actor, values: Dict[str, Any], taken: set) -> Asset:
        cleaned = self._normalize(values)
        if not cleaned.get("type"):
            raise ValidationError(code="asset_type_required")
        self._check_references(db, cleaned)

        asset_id = _clean_text(values.get("id"))
        if asset_id:
            if asset_id in taken:
                raise ValidationError(code="asset_id_taken", payload={"asset_id": asset_id})
        else:
            asset_id = generate_id("AST", taken)

        if not cleaned.get("status"):
            cleaned["status"] = ASSET_IN_USE if cleaned.get("assigned_to") else ASSET_AVAILABLE
        now = utc_now_iso()
        entry = HistoryEntry(
            id=new_history_id(),
            date=now,
            type="Cadastro",
            description="Ativo cadastrado no inventario.",
            performed_by=actor.label,
            user_context=cleaned.get("assigned_to"),
        )
        return Asset(id=asset_id, qr_code=f"QR-{asset_id}", created_at=now, history=[entry], **cleaned)

    def create_asset(self, db, actor: Actor, asset_input: AssetInput) -> Asset:
        with db.transaction():
            asset = self._build_new(db, actor, asset_input.values, self.assets.keys(db))
            self.assets.upsert(db, asset)
        current_app.logger.info(
            "asset_created",
            extra={"asset_id": asset.id, "asset_type": asset.type, "actor": actor.username},
        )
        return asset

    def bulk_create(self, db, actor: Actor, entries: Iterable[AssetInput]) -> List[Asset]:
        batch = list(entries)
        if not batch:
            raise ValidationError(code="selection_required")
        created: List[Asset] = []
        with db.transaction():
            taken = self.assets.keys(db)
            for entry in batch:
                values = dict(entry.values)
                values.pop("status", None)
                asset = self._build_new(db, actor, values, taken)
                taken.add(asset.id)
                self.assets.upsert(db, asset)
                created.append(asset)
        current_app.logger.info("assets_bulk_created", extra={"bulk_count": len(created), "actor": actor.username})
        return created

    def update_asset(self, db, actor: Actor, asset_id: str, asset_input: AssetInput) -> Asset:
        values = dict(asset_input.values)
        values.pop("id", None)
        values.pop("history", None)
        with db.transaction():
            current = self.get_asset(db, asset_id)
            cleaned = self._normalize(values)
            if "type" in cleaned and not cleaned["type"]:
                raise ValidationError(code="asset_type_required")
            if cleaned.get("status") is None:
                cleaned.pop("status", None)
            self._check_references(db, cleaned)

            updated = dataclasses.replace(current, **cleaned)
            if "assigned_to" in cleaned and cleaned["assigned_to"] != current.assigned_to:
                updated = updated.with_history(self._assignment_entry(db, actor, current, cleaned["assigned_to"]))
            self.assets.upsert(db, updated)
        current_app.logger.info(
            "asset_updated",
            extra={"asset_id": asset_id, "fields": sorted(cleaned), "actor": actor.username},
        )
        return updated

    def _assignment_entry(self, db, actor: Actor, asset: Asset, new_owner: str | None) -> HistoryEntry:
        if new_owner:
            employee = self.employees.get(db, new_owner)
            description = f"Atribuido a {employee.name if employee else new_owner}."
            entry_type = "Atribuição"
        else:
            description = "Devolvido ao estoque."
            entry_type = "Devolução"
        return HistoryEntry(
            id=new_history_id(),
            date=utc_now_iso(),
            type=entry_type,
            description=description,
            performed_by=actor.label,
            user_context=new_owner or asset.assigned_to,
        )

    def remove_asset(self, db, actor: Actor, asset_id: str) -> None:
        with db.transaction():
            if not self.assets.remove(db, asset_id):
                raise NotFoundError(code="asset_not_found", payload={"asset_id": asset_id})
        current_app.logger.info("asset_removed", extra={"asset_id": asset_id, "actor": actor.username})
