from __future__ import annotations

from typing import List

from assettrack.domain.records import Department, Employee, LegalEntity, UserAccount
from assettrack.infrastructure.repositories.base import BaseRepository


class EmployeeRepository(BaseRepository):
    table = "employees"
    record_cls = Employee
    bool_fields = ("is_active",)
    order_by = "name, id"

    def list_by_sector(self, db, sector: str) -> List[Employee]:
        return self.list_where(db, "sector", sector)

    def first_in_sector(self, db, sector: str) -> Employee | None:
        row = db.execute(
            f"{self._select()} WHERE sector = ? ORDER BY id LIMIT 1",
            (sector,),
        ).fetchone()
        return self.from_row(row) if row else None

    def find_by_name(self, db, name: str) -> Employee | None:
        text = (name or "").strip().lower()
        if not text:
            return None
        row = db.execute(
            f"{self._select()} WHERE LOWER(name) = ? ORDER BY id LIMIT 1",
            (text,),
        ).fetchone()
        return self.from_row(row) if row else None

    def sectors(self, db) -> List[str]:
        rows = db.execute(
            "SELECT DISTINCT sector FROM employees WHERE sector <> '' ORDER BY sector"
        ).fetchall()
        return [str(row["sector"]) for row in self.rows_to_dicts(rows)]


class DepartmentRepository(BaseRepository):
    table = "departments"
    record_cls = Department
    order_by = "name, id"


class LegalEntityRepository(BaseRepository):
    table = "legal_entities"
    record_cls = LegalEntity
    order_by = "name, id"


class UserRepository(BaseRepository):
    table = "users"
    record_cls = UserAccount
    json_fields = ("modules",)
    bool_fields = ("can_approve", "can_execute")
    order_by = "username"

    def find_by_username(self, db, username: str) -> UserAccount | None:
        row = db.execute(
            f"{self._select()} WHERE username = ? LIMIT 1",
            ((username or "").strip().lower(),),
        ).fetchone()
        return self.from_row(row) if row else None
