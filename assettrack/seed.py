from __future__ import annotations

from typing import Dict

from assettrack.application.asset_service import AssetService
from assettrack.application.directory_service import DirectoryService
from assettrack.application.user_service import UserService
from assettrack.domain.contracts import (
    SYSTEM_ACTOR,
    AssetInput,
    DepartmentInput,
    EmployeeInput,
    LegalEntityInput,
    UserInput,
)
from assettrack.domain.records import APP_MODULES
from assettrack.infrastructure.repositories.directory import UserRepository


DEMO_LEGAL_ENTITIES = [
    {"name": "Matriz São Paulo", "cnpj": "12.345.678/0001-90", "address": "Av. Paulista, 1000 - São Paulo/SP"},
    {"name": "Filial Curitiba", "cnpj": "12.345.678/0002-88", "address": "Rua XV de Novembro, 200 - Curitiba/PR"},
]

DEMO_DEPARTMENTS = [
    {"name": "Vendas", "cost_center": "CC-100"},
    {"name": "TI", "cost_center": "CC-200"},
    {"name": "RH", "cost_center": "CC-300"},
]

DEMO_EMPLOYEES = [
    {"name": "João Silva", "sector": "Vendas", "role": "Vendedor Senior", "cpf": "123.456.789-00"},
    {"name": "Maria Santos", "sector": "TI", "role": "Desenvolvedora", "cpf": "987.654.321-11"},
    {"name": "Carlos Lima", "sector": "RH", "role": "Analista de RH", "cpf": "456.123.789-22"},
]

DEMO_ASSETS = [
    {
        "id": "AST-001",
        "type": "Notebook",
        "brand": "Dell",
        "model": "Latitude 5420",
        "ram": "16GB",
        "storage": "512GB SSD",
        "processor": "Intel i7",
        "screen_size": '14"',
        "observations": "Nenhuma marca de uso aparente.",
        "purchase_value": 5200,
        "assigned_to_name": "João Silva",
    },
    {
        "id": "AST-002",
        "type": "Monitor",
        "brand": "LG",
        "model": 'UltraWide 29"',
        "observations": "Pequeno risco na base.",
        "purchase_value": 1350,
    },
]

DEMO_USERS = [
    {
        "name": "Administrador Master",
        "username": "admin",
        "password": "admin",
        "sector": "TI",
        "modules": list(APP_MODULES),
        "can_approve": True,
        "can_execute": True,
    },
    {
        "name": "Diretor de Operações",
        "username": "diretoria",
        "password": "diretoria",
        "sector": "Board",
        "modules": ["dashboard", "purchase-orders"],
        "can_approve": True,
        "can_execute": False,
    },
]


def seed_demo_data(db) -> Dict[str, int]:
    """Load the demo directory, inventory and users. Does nothing once any user exists."""
    if UserRepository().keys(db):
        return {}

    directory = DirectoryService()
    assets = AssetService()
    users = UserService()
    actor = SYSTEM_ACTOR

    with db.transaction():
        entities = [directory.save_legal_entity(db, actor, LegalEntityInput(**row)) for row in DEMO_LEGAL_ENTITIES]
        departments = {
            row["name"]: directory.save_department(db, actor, DepartmentInput(**row)) for row in DEMO_DEPARTMENTS
        }
        employees = {}
        for row in DEMO_EMPLOYEES:
            department = departments.get(row["sector"])
            employee = directory.save_employee(
                db,
                actor,
                EmployeeInput(department_id=department.id if department else None, **row),
            )
            employees[employee.name] = employee

        for row in DEMO_ASSETS:
            values = dict(row)
            owner = employees.get(values.pop("assigned_to_name", ""))
            if owner is not None:
                values["assigned_to"] = owner.id
                values["department_id"] = owner.department_id
            values["legal_entity_id"] = entities[0].id
            assets.create_asset(db, actor, AssetInput(values=values))

        for row in DEMO_USERS:
            users.save_user(db, actor, UserInput(**row))

    return {
        "legal_entities": len(DEMO_LEGAL_ENTITIES),
        "departments": len(DEMO_DEPARTMENTS),
        "employees": len(DEMO_EMPLOYEES),
        "assets": len(DEMO_ASSETS),
        "users": len(DEMO_USERS),
    }
