from __future__ import annotations

from datetime import datetime
from typing import List

from flask import current_app

from assettrack.application.system_service import TELEGRAM_CHAT_KEY, TELEGRAM_TOKEN_KEY
from assettrack.domain.contracts import Actor, MaintenanceOpenInput
from assettrack.domain.records import (
    ASSET_AVAILABLE,
    ASSET_MAINTENANCE,
    ASSET_RETIRED,
    Asset,
    HistoryEntry,
    new_history_id,
    utc_now_iso,
)
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.accounting import SystemConfigRepository
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import EmployeeRepository
from assettrack.integrations import telegram


MAINTENANCE_TYPES = ("Preventiva", "Corretiva")
MAINTENANCE_SCOPES = ("Interna", "Externa")


class MaintenanceService:
    def __init__(
        self,
        assets: AssetRepository | None = None,
        employees: EmployeeRepository | None = None,
        configs: SystemConfigRepository | None = None,
        notifier=None,
    ) -> None:
        self.assets = assets or AssetRepository()
        self.employees = employees or EmployeeRepository()
        self.configs = configs or SystemConfigRepository()
        self.notifier = notifier or telegram.notify

    def list_in_maintenance(self, db) -> List[Asset]:
        return self.assets.list_by_status(db, ASSET_MAINTENANCE)

    def list_eligible(self, db, search: str | None = None) -> List[Asset]:
        return [
            asset
            for asset in self.assets.search(db, term=search)
            if asset.status not in {ASSET_MAINTENANCE, ASSET_RETIRED}
        ]

    def _load(self, db, asset_id: str) -> Asset:
        asset = self.assets.get(db, asset_id)
        if asset is None:
            raise NotFoundError(code="asset_not_found", payload={"asset_id": asset_id})
        return asset

    def open_maintenance(self, db, actor: Actor, open_input: MaintenanceOpenInput) -> Asset:
        if open_input.maintenance_type not in MAINTENANCE_TYPES:
            raise ValidationError(code="maintenance_type_invalid", payload={"maintenance_type": open_input.maintenance_type})
        if open_input.scope not in MAINTENANCE_SCOPES:
            raise ValidationError(code="maintenance_scope_invalid", payload={"scope": open_input.scope})
        reason = (open_input.reason or "").strip()
        if not reason:
            raise ValidationError(code="maintenance_reason_required")

        with db.transaction():
            asset = self._load(db, open_input.asset_id)
            if asset.status == ASSET_RETIRED:
                raise ValidationError(code="asset_retired", payload={"asset_id": asset.id})
            if asset.status == ASSET_MAINTENANCE:
                raise ValidationError(code="asset_in_maintenance", payload={"asset_id": asset.id})
            owner = self.employees.get(db, asset.assigned_to) if asset.assigned_to else None
            entry = HistoryEntry(
                id=new_history_id(),
                date=utc_now_iso(),
                type="Manutenção",
                description=(
                    f"Inicio de manutencao {open_input.maintenance_type} ({open_input.scope}). Motivo: {reason}"
                ),
                performed_by=actor.label,
                user_context=owner.name if owner else None,
            )
            updated = asset.with_history(entry, status=ASSET_MAINTENANCE, observations=reason)
            self.assets.upsert(db, updated)
            token = self.configs.get_value(db, TELEGRAM_TOKEN_KEY, current_app.config.get("TELEGRAM_BOT_TOKEN") or "")
            chat_id = self.configs.get_value(db, TELEGRAM_CHAT_KEY, current_app.config.get("TELEGRAM_CHAT_ID") or "")

        current_app.logger.info(
            "maintenance_opened",
            extra={
                "asset_id": updated.id,
                "maintenance_type": open_input.maintenance_type,
                "scope": open_input.scope,
                "actor": actor.username,
            },
        )
        self.notifier(token, chat_id, telegram.maintenance_alert_text(updated, reason, actor.label))
        return updated

    def conclude_maintenance(self, db, actor: Actor, asset_id: str) -> Asset:
        with db.transaction():
            asset = self._load(db, asset_id)
            if asset.status != ASSET_MAINTENANCE:
                raise ValidationError(code="asset_not_in_maintenance", payload={"asset_id": asset.id})
            entry = HistoryEntry(
                id=new_history_id(),
                date=utc_now_iso(),
                type="Manutenção",
                description="Manutencao concluida. Equipamento revisado e retornado ao estoque.",
                performed_by=actor.label,
            )
            updated = asset.with_history(
                entry,
                status=ASSET_AVAILABLE,
                assigned_to=None,
                observations=f"Ultima manutencao em {datetime.now().strftime('%d/%m/%Y')}",
            )
            self.assets.upsert(db, updated)
        current_app.logger.info("maintenance_concluded", extra={"asset_id": asset_id, "actor": actor.username})
        return updated
