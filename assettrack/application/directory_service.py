from __future__ import annotations

from typing import Any, Dict, List

from flask import current_app

from assettrack.domain.contracts import Actor, DepartmentInput, EmployeeInput, LegalEntityInput
from assettrack.domain.records import Department, Employee, LegalEntity, generate_id, utc_now_iso
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import (
    DepartmentRepository,
    EmployeeRepository,
    LegalEntityRepository,
)


def _required(value: str | None, code: str = "name_required") -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(code=code)
    return text


class DirectoryService:
    """Employees, departments and legal entities."""

    def __init__(
        self,
        employees: EmployeeRepository | None = None,
        departments: DepartmentRepository | None = None,
        legal_entities: LegalEntityRepository | None = None,
        assets: AssetRepository | None = None,
    ) -> None:
        self.employees = employees or EmployeeRepository()
        self.departments = departments or DepartmentRepository()
        self.legal_entities = legal_entities or LegalEntityRepository()
        self.assets = assets or AssetRepository()

    def list_employees(self, db, *, search: str | None = None, sector: str | None = None) -> List[Employee]:
        employees = self.employees.list_by_sector(db, sector) if sector else self.employees.list(db)
        term = (search or "").strip().lower()
        if not term:
            return employees
        return [
            employee
            for employee in employees
            if term in employee.name.lower() or term in employee.id.lower() or term in employee.cpf
        ]

    def get_employee(self, db, employee_id: str) -> Employee:
        employee = self.employees.get(db, employee_id)
        if employee is None:
            raise NotFoundError(code="employee_not_found", payload={"employee_id": employee_id})
        return employee

    def save_employee(self, db, actor: Actor, employee_input: EmployeeInput) -> Employee:
        name = _required(employee_input.name)
        department_id = (employee_input.department_id or "").strip() or None
        with db.transaction():
            if department_id and not self.departments.exists(db, department_id):
                raise ValidationError(code="department_not_found", payload={"department_id": department_id})
            employee_id = (employee_input.id or "").strip()
            employee = Employee(
                id=employee_id or generate_id("EMP", self.employees.keys(db)),
                name=name,
                sector=(employee_input.sector or "").strip(),
                role=(employee_input.role or "").strip(),
                cpf=(employee_input.cpf or "").strip(),
                department_id=department_id,
                is_active=bool(employee_input.is_active),
            )
            self.employees.upsert(db, employee)
        current_app.logger.info("employee_saved", extra={"employee_id": employee.id, "actor": actor.username})
        return employee

    def remove_employee(self, db, actor: Actor, employee_id: str) -> None:
        with db.transaction():
            if self.assets.list_assigned_to(db, [employee_id]):
                raise ValidationError(code="employee_has_assets", payload={"employee_id": employee_id})
            if not self.employees.remove(db, employee_id):
                raise NotFoundError(code="employee_not_found", payload={"employee_id": employee_id})
        current_app.logger.info("employee_removed", extra={"employee_id": employee_id, "actor": actor.username})

    def list_departments(self, db) -> List[Dict[str, Any]]:
        counts = self.assets.count_by_department(db)
        return [
            {**department.to_dict(), "asset_count": counts.get(department.id, 0)}
            for department in self.departments.list(db)
        ]

    def save_department(self, db, actor: Actor, department_input: DepartmentInput) -> Department:
        name = _required(department_input.name)
        with db.transaction():
            department_id = (department_input.id or "").strip()
            existing = self.departments.get(db, department_id) if department_id else None
            department = Department(
                id=department_id or generate_id("DEP", self.departments.keys(db)),
                name=name,
                cost_center=(department_input.cost_center or "").strip(),
                created_at=existing.created_at if existing else utc_now_iso(),
            )
            self.departments.upsert(db, department)
        current_app.logger.info("department_saved", extra={"department_id": department.id, "actor": actor.username})
        return department

    def remove_department(self, db, actor: Actor, department_id: str) -> None:
        with db.transaction():
            if not self.departments.remove(db, department_id):
                raise NotFoundError(code="department_not_found", payload={"department_id": department_id})
        current_app.logger.info("department_removed", extra={"department_id": department_id, "actor": actor.username})

    def list_legal_entities(self, db) -> List[LegalEntity]:
        return self.legal_entities.list(db)

    def get_legal_entity(self, db, entity_id: str) -> LegalEntity:
        entity = self.legal_entities.get(db, entity_id)
        if entity is None:
            raise NotFoundError(code="legal_entity_not_found", payload={"legal_entity_id": entity_id})
        return entity

    def save_legal_entity(self, db, actor: Actor, entity_input: LegalEntityInput) -> LegalEntity:
        name = _required(entity_input.name)
        with db.transaction():
            entity_id = (entity_input.id or "").strip()
            existing = self.legal_entities.get(db, entity_id) if entity_id else None
            entity = LegalEntity(
                id=entity_id or generate_id("EMPRESA", self.legal_entities.keys(db)),
                name=name,
                cnpj=(entity_input.cnpj or "").strip(),
                address=(entity_input.address or "").strip(),
                created_at=existing.created_at if existing else utc_now_iso(),
            )
            self.legal_entities.upsert(db, entity)
        current_app.logger.info("legal_entity_saved", extra={"legal_entity_id": entity.id, "actor": actor.username})
        return entity

    def remove_legal_entity(self, db, actor: Actor, entity_id: str) -> None:
        with db.transaction():
            if not self.legal_entities.remove(db, entity_id):
                raise NotFoundError(code="legal_entity_not_found", payload={"legal_entity_id": entity_id})
        current_app.logger.info("legal_entity_removed", extra={"legal_entity_id": entity_id, "actor": actor.username})
