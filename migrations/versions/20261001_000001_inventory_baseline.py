"""Inventory schema baseline from assettrack.db

Revision ID: 20261001_000001
Revises:
Create Date: 2026-10-01 00:00:01
"""

from __future__ import annotations

from typing import Iterable, Sequence, Union

from alembic import op
from sqlalchemy.engine import Connection

from assettrack.db import _convert_qmark_to_pg, create_schema, drop_schema


# revision identifiers, used by Alembic.
revision: str = "20261001_000001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


class _AlembicDbAdapter:
    """Exposes the ``execute`` surface that ``create_schema``/``drop_schema`` expect."""

    def __init__(self, connection: Connection, backend: str):
        self._connection = connection
        self.backend = backend

    def execute(self, sql: str, params: Iterable | None = None):
        if params is None:
            return self._connection.exec_driver_sql(sql)
        statement = _convert_qmark_to_pg(sql) if self.backend == "postgres" else sql
        return self._connection.exec_driver_sql(statement, tuple(params))


def _adapter() -> _AlembicDbAdapter:
    connection = op.get_bind()
    dialect = (connection.dialect.name or "").lower()
    backend = "postgres" if dialect.startswith("postgres") else "sqlite"
    return _AlembicDbAdapter(connection, backend)


def upgrade() -> None:
    create_schema(_adapter())


def downgrade() -> None:
    drop_schema(_adapter())
