from __future__ import annotations

from typing import Dict, Iterable, List

from assettrack.domain.records import Asset
from assettrack.infrastructure.repositories.base import BaseRepository


class AssetRepository(BaseRepository):
    table = "assets"
    record_cls = Asset
    json_fields = ("photos", "history")
    order_by = "created_at DESC, id"

    def search(self, db, *, term: str | None = None, asset_type: str | None = None, status: str | None = None) -> List[Asset]:
        clauses: List[str] = []
        params: List[object] = []
        text = (term or "").strip().lower()
        if text:
            like = f"%{text}%"
            clauses.append("(LOWER(model) LIKE ? OR LOWER(brand) LIKE ? OR LOWER(id) LIKE ?)")
            params.extend([like, like, like])
        if asset_type:
            clauses.append("type = ?")
            params.append(asset_type)
        if status:
            clauses.append("status = ?")
            params.append(status)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = db.execute(f"{self._select()}{where} ORDER BY {self.order_by}", params).fetchall()
        return [self.from_row(row) for row in rows]

    def list_by_status(self, db, status: str) -> List[Asset]:
        return self.list_where(db, "status", status)

    def list_assigned_to(self, db, employee_ids: Iterable[str]) -> List[Asset]:
        ids = [str(item) for item in employee_ids if item]
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        rows = db.execute(
            f"{self._select()} WHERE assigned_to IN ({placeholders}) ORDER BY {self.order_by}",
            ids,
        ).fetchall()
        return [self.from_row(row) for row in rows]

    def get_many(self, db, asset_ids: Iterable[str]) -> List[Asset]:
        ids = [str(item) for item in asset_ids if item]
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        rows = db.execute(f"{self._select()} WHERE id IN ({placeholders})", ids).fetchall()
        by_id = {asset.id: asset for asset in (self.from_row(row) for row in rows)}
        return [by_id[asset_id] for asset_id in ids if asset_id in by_id]

    def count_by_department(self, db) -> Dict[str, int]:
        rows = db.execute(
            """
            SELECT department_id, COUNT(*) AS total
            FROM assets
            WHERE department_id IS NOT NULL
            GROUP BY department_id
            """
        ).fetchall()
        return {str(row["department_id"]): int(row["total"] or 0) for row in self.rows_to_dicts(rows)}

    def count_by_status(self, db) -> Dict[str, int]:
        rows = db.execute("SELECT status, COUNT(*) AS total FROM assets GROUP BY status").fetchall()
        return {str(row["status"]): int(row["total"] or 0) for row in self.rows_to_dicts(rows)}

    def count_by_type(self, db) -> Dict[str, int]:
        rows = db.execute("SELECT type, COUNT(*) AS total FROM assets GROUP BY type").fetchall()
        return {str(row["type"]): int(row["total"] or 0) for row in self.rows_to_dicts(rows)}
