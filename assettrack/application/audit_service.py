from __future__ import annotations

from typing import Any, Dict, List

from flask import current_app

from assettrack.domain import audit, request_flow
from assettrack.domain.contracts import Actor, AuditEntryInput
from assettrack.domain.records import Asset, AuditSession, generate_id
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import EmployeeRepository
from assettrack.infrastructure.repositories.workflow import AuditSessionRepository, RequestRepository


class AuditService:
    def __init__(
        self,
        sessions: AuditSessionRepository | None = None,
        assets: AssetRepository | None = None,
        employees: EmployeeRepository | None = None,
        requests: RequestRepository | None = None,
    ) -> None:
        self.sessions = sessions or AuditSessionRepository()
        self.assets = assets or AssetRepository()
        self.employees = employees or EmployeeRepository()
        self.requests = requests or RequestRepository()

    def list_sessions(self, db) -> List[AuditSession]:
        return self.sessions.list(db)

    def get_session(self, db, session_id: str) -> AuditSession:
        session = self.sessions.get(db, session_id)
        if session is None:
            raise NotFoundError(code="session_not_found", payload={"session_id": session_id})
        return session

    def sectors(self, db) -> List[str]:
        return self.employees.sectors(db)

    def assets_in_sector(self, db, sector: str) -> List[Asset]:
        employee_ids = [employee.id for employee in self.employees.list_by_sector(db, sector)]
        return self.assets.list_assigned_to(db, employee_ids)

    def describe(self, db, session: AuditSession) -> Dict[str, Any]:
        expected = [asset.id for asset in self.assets_in_sector(db, session.sector)]
        payload = session.to_dict()
        payload["progress"] = audit.progress(session, expected)
        return payload

    def create_session(self, db, actor: Actor, sector: str) -> AuditSession:
        with db.transaction():
            session = audit.new_session(generate_id("AUD", self.sessions.keys(db)), sector)
            self.sessions.upsert(db, session)
        current_app.logger.info(
            "audit_session_created",
            extra={"session_id": session.id, "sector": session.sector, "actor": actor.username},
        )
        return session

    def record_entry(self, db, actor: Actor, session_id: str, entry_input: AuditEntryInput) -> AuditSession:
        with db.transaction():
            session = self.get_session(db, session_id)
            if not self.assets.exists(db, entry_input.asset_id):
                raise ValidationError(code="asset_not_found", payload={"asset_id": entry_input.asset_id})
            updated = audit.record_entry(session, entry_input.asset_id, entry_input.status, entry_input.observation)
            self.sessions.upsert(db, updated)
        return updated

    def finish_session(self, db, actor: Actor, session_id: str) -> AuditSession:
        """Closes the session; Ruim or Nao Encontrado checks open a Confronto request."""
        with db.transaction():
            session = self.get_session(db, session_id)
            divergent = audit.divergent_entries(session)
            generated_id = None
            if divergent:
                assets = {asset.id: asset for asset in self.assets.get_many(db, [e.asset_id for e in divergent])}
                owner = self.employees.first_in_sector(db, session.sector)
                request = request_flow.divergence_request(
                    generate_id("REQ", self.requests.keys(db)),
                    sector=session.sector,
                    employee_id=owner.id if owner else None,
                    requester_id=actor.user_id or None,
                    item_types=[assets[e.asset_id].type if e.asset_id in assets else "Ativo" for e in divergent],
                )
                self.requests.upsert(db, request)
                generated_id = request.id
            finished = audit.finish(session, generated_id)
            self.sessions.upsert(db, finished)

        current_app.logger.info(
            "audit_finished",
            extra={
                "session_id": session_id,
                "sector": finished.sector,
                "divergent_count": len(divergent),
                "generated_request_id": generated_id,
                "actor": actor.username,
            },
        )
        return finished

    def delete_session(self, db, actor: Actor, session_id: str) -> None:
        with db.transaction():
            if not self.sessions.remove(db, session_id):
                raise NotFoundError(code="session_not_found", payload={"session_id": session_id})
        current_app.logger.info("audit_session_deleted", extra={"session_id": session_id, "actor": actor.username})
