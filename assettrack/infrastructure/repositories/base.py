from __future__ import annotations

import dataclasses
import json
from typing import Any, Dict, Iterable, List, Tuple, Type


class BaseRepository:
    """Table gateway for one record type.

    Subclasses name the table and the record class. List fields are stored as JSON text
    and booleans as 0/1 integers so the same SQL runs on sqlite and postgres.
    """

    table: str = ""
    record_cls: Type | None = None
    key_field: str = "id"
    json_fields: Tuple[str, ...] = ()
    bool_fields: Tuple[str, ...] = ()
    order_by: str = "id"

    @staticmethod
    def rows_to_dicts(rows: Iterable[Any]) -> list[dict]:
        return [dict(row) for row in rows]

    @staticmethod
    def quote(column: str) -> str:
        return f'"{column}"'

    def columns(self) -> List[str]:
        return [item.name for item in dataclasses.fields(self.record_cls)]

    def to_row(self, record) -> Dict[str, Any]:
        data = record.to_dict()
        row: Dict[str, Any] = {}
        for column in self.columns():
            value = data.get(column)
            if column in self.json_fields:
                value = json.dumps(value if value is not None else [], ensure_ascii=False)
            elif column in self.bool_fields:
                value = 1 if value else 0
            row[column] = value
        return row

    def from_row(self, row) -> Any:
        data = dict(row)
        for column in self.json_fields:
            raw = data.get(column)
            if isinstance(raw, str):
                data[column] = json.loads(raw) if raw.strip() else []
        for column in self.bool_fields:
            if column in data:
                data[column] = bool(data[column])
        return self.record_cls.from_dict(data)

    def _select(self) -> str:
        return f"SELECT * FROM {self.table}"

    def list(self, db) -> list:
        rows = db.execute(f"{self._select()} ORDER BY {self.order_by}").fetchall()
        return [self.from_row(row) for row in rows]

    def list_where(self, db, column: str, value: Any) -> list:
        rows = db.execute(
            f"{self._select()} WHERE {self.quote(column)} = ? ORDER BY {self.order_by}",
            (value,),
        ).fetchall()
        return [self.from_row(row) for row in rows]

    def get(self, db, key: str):
        row = db.execute(
            f"{self._select()} WHERE {self.quote(self.key_field)} = ? LIMIT 1",
            (key,),
        ).fetchone()
        return self.from_row(row) if row else None

    def exists(self, db, key: str) -> bool:
        row = db.execute(
            f"SELECT 1 FROM {self.table} WHERE {self.quote(self.key_field)} = ? LIMIT 1",
            (key,),
        ).fetchone()
        return bool(row)

    def keys(self, db) -> set[str]:
        rows = db.execute(f"SELECT {self.quote(self.key_field)} AS k FROM {self.table}").fetchall()
        return {str(dict(row)["k"]) for row in rows}

    def count(self, db) -> int:
        row = db.execute(f"SELECT COUNT(*) AS total FROM {self.table}").fetchone()
        return int(dict(row)["total"] or 0) if row else 0

    def upsert(self, db, record) -> None:
        row = self.to_row(record)
        columns = list(row.keys())
        quoted = ", ".join(self.quote(column) for column in columns)
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(
            f"{self.quote(column)} = excluded.{self.quote(column)}"
            for column in columns
            if column != self.key_field
        )
        db.execute(
            f"""
            INSERT INTO {self.table} ({quoted})
            VALUES ({placeholders})
            ON CONFLICT ({self.quote(self.key_field)}) DO UPDATE SET {updates}
            """,
            [row[column] for column in columns],
        )

    def remove(self, db, key: str) -> bool:
        cursor = db.execute(
            f"DELETE FROM {self.table} WHERE {self.quote(self.key_field)} = ?",
            (key,),
        )
        return bool(getattr(cursor, "rowcount", 0))
