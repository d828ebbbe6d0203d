from __future__ import annotations

from io import BytesIO
from typing import List

from flask import current_app

from assettrack.application.system_service import SystemService
from assettrack.documents import labels, responsibility_term
from assettrack.domain.contracts import Actor, ResponsibilityTermInput
from assettrack.domain.records import Asset
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import EmployeeRepository, LegalEntityRepository


class PrintService:
    """Label sheets and responsibility terms built from stored records."""

    def __init__(
        self,
        assets: AssetRepository | None = None,
        employees: EmployeeRepository | None = None,
        legal_entities: LegalEntityRepository | None = None,
        system: SystemService | None = None,
    ) -> None:
        self.assets = assets or AssetRepository()
        self.employees = employees or EmployeeRepository()
        self.legal_entities = legal_entities or LegalEntityRepository()
        self.system = system or SystemService()

    def _selected_assets(self, db, asset_ids: List[str]) -> List[Asset]:
        wanted = [asset_id for asset_id in dict.fromkeys(asset_ids or []) if asset_id]
        if not wanted:
            raise ValidationError(code="labels_selection_required")
        found = self.assets.get_many(db, wanted)
        missing = sorted(set(wanted) - {asset.id for asset in found})
        if missing:
            raise NotFoundError(code="asset_not_found", payload={"asset_ids": missing})
        return found

    def label_sheet(self, db, actor: Actor, asset_ids: List[str]) -> BytesIO:
        selected = self._selected_assets(db, asset_ids)
        current_app.logger.info("labels_printed", extra={"label_count": len(selected), "actor": actor.username})
        return labels.build_label_sheet(selected, self.system.company_name(db))

    def label_text(self, db, actor: Actor, asset_ids: List[str]) -> str:
        selected = self._selected_assets(db, asset_ids)
        current_app.logger.info("labels_exported", extra={"label_count": len(selected), "actor": actor.username})
        return labels.build_label_text(selected, self.system.company_name(db))

    def responsibility_term(self, db, actor: Actor, term_input: ResponsibilityTermInput) -> BytesIO:
        employee = self.employees.get(db, term_input.employee_id)
        if employee is None:
            raise NotFoundError(code="employee_not_found", payload={"employee_id": term_input.employee_id})
        if term_input.asset_ids:
            selected = self._selected_assets(db, term_input.asset_ids)
        else:
            selected = self.assets.list_assigned_to(db, [employee.id])
        if not selected:
            raise ValidationError(code="labels_selection_required", payload={"employee_id": employee.id})

        legal_entity = None
        if term_input.legal_entity_id:
            legal_entity = self.legal_entities.get(db, term_input.legal_entity_id)
            if legal_entity is None:
                raise NotFoundError(
                    code="legal_entity_not_found",
                    payload={"legal_entity_id": term_input.legal_entity_id},
                )
        current_app.logger.info(
            "responsibility_term_generated",
            extra={"employee_id": employee.id, "asset_count": len(selected), "actor": actor.username},
        )
        return responsibility_term.build_responsibility_term(
            employee=employee,
            assets=selected,
            legal_entity=legal_entity,
            company_name=self.system.company_name(db),
            include_photos=term_input.include_photos,
        )
