import contextlib
import sqlite3
from typing import Iterable, List

try:
    import psycopg2
    import psycopg2.extras
except ImportError:  # pragma: no cover - optional dependency for postgres
    psycopg2 = None

from flask import current_app, g

from assettrack.errors import StoreError


_DRIVER_ERRORS = (sqlite3.Error,) + ((psycopg2.Error,) if psycopg2 is not None else ())


class Database:
    def __init__(self, backend: str, connection):
        self.backend = backend
        self._conn = connection
        self._depth = 0

    def execute(self, sql: str, params: Iterable | None = None):
        try:
            if self.backend == "postgres":
                cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
                if params:
                    sql = _convert_qmark_to_pg(sql)
                    cursor.execute(sql, list(params))
                else:
                    cursor.execute(sql)
                return cursor
            return self._conn.execute(sql, tuple(params or ()))
        except _DRIVER_ERRORS as exc:
            raise StoreError(details=str(exc)) from exc

    def commit(self):
        try:
            self._conn.commit()
        except _DRIVER_ERRORS as exc:
            raise StoreError(details=str(exc)) from exc

    def rollback(self):
        self._conn.rollback()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextlib.contextmanager
    def transaction(self):
        """Groups writes; nested blocks join the outermost one."""
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        if self.backend == "postgres":
            self._conn.autocommit = False
        self._depth = 1
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        else:
            self.commit()
        finally:
            self._depth = 0
            if self.backend == "postgres":
                self._conn.autocommit = True

    def close(self):
        self._conn.close()


def _convert_qmark_to_pg(sql: str) -> str:
    return sql.replace("?", "%s")


def _connect_database(db_path: str) -> Database:
    if db_path.lower().startswith("postgres"):
        if psycopg2 is None:
            raise RuntimeError("psycopg2 nao instalado.")
        try:
            conn = psycopg2.connect(db_path)
        except psycopg2.Error as exc:
            raise StoreError(details=str(exc)) from exc
        conn.autocommit = True
        return Database("postgres", conn)

    try:
        conn = sqlite3.connect(db_path)
    except sqlite3.Error as exc:
        raise StoreError(details=str(exc)) from exc
    conn.row_factory = sqlite3.Row
    return Database("sqlite", conn)


def get_db():
    if "db" not in g:
        db_path = current_app.config["DB_PATH"]
        g.db = _connect_database(db_path)
    return g.db


def close_db(_error=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


SCHEMA_TABLES: List[str] = [
    "system_configs",
    "asset_type_configs",
    "accounting_classifications",
    "accounting_accounts",
    "audit_sessions",
    "users",
    "requests",
    "assets",
    "employees",
    "legal_entities",
    "departments",
]


SCHEMA_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS departments (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        cost_center TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS legal_entities (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        cnpj TEXT NOT NULL DEFAULT '',
        address TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS employees (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        sector TEXT NOT NULL DEFAULT '',
        role TEXT NOT NULL DEFAULT '',
        cpf TEXT NOT NULL DEFAULT '',
        department_id TEXT,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS assets (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL,
        brand TEXT NOT NULL DEFAULT '',
        model TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL,
        assigned_to TEXT,
        department_id TEXT,
        legal_entity_id TEXT,
        classification_id TEXT,
        tag_id TEXT,
        serial_number TEXT,
        purchase_value REAL NOT NULL DEFAULT 0,
        ram TEXT,
        storage TEXT,
        processor TEXT,
        screen_size TEXT,
        observations TEXT NOT NULL DEFAULT '',
        photos TEXT NOT NULL DEFAULT '[]',
        history TEXT NOT NULL DEFAULT '[]',
        qr_code TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS requests (
        id TEXT PRIMARY KEY,
        items TEXT NOT NULL DEFAULT '[]',
        item_fulfillments TEXT NOT NULL DEFAULT '[]',
        employee_id TEXT,
        requester_id TEXT,
        observation TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'Padrao',
        created_at TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        username TEXT NOT NULL UNIQUE,
        password TEXT NOT NULL DEFAULT '',
        sector TEXT NOT NULL DEFAULT '',
        modules TEXT NOT NULL DEFAULT '[]',
        employee_id TEXT,
        can_approve INTEGER NOT NULL DEFAULT 0,
        can_execute INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_sessions (
        id TEXT PRIMARY KEY,
        sector TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT '',
        entries TEXT NOT NULL DEFAULT '[]',
        is_finished INTEGER NOT NULL DEFAULT 0,
        generated_request_id TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS accounting_accounts (
        id TEXT PRIMARY KEY,
        code TEXT NOT NULL,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS accounting_classifications (
        id TEXT PRIMARY KEY,
        code TEXT NOT NULL,
        name TEXT NOT NULL,
        account_id TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS asset_type_configs (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        classification_id TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS system_configs (
        "key" TEXT PRIMARY KEY,
        value TEXT NOT NULL DEFAULT ''
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_assets_assigned_to ON assets (assigned_to)",
    "CREATE INDEX IF NOT EXISTS idx_assets_status ON assets (status)",
    "CREATE INDEX IF NOT EXISTS idx_employees_sector ON employees (sector)",
    "CREATE INDEX IF NOT EXISTS idx_requests_status ON requests (status)",
]


def create_schema(db) -> None:
    for statement in SCHEMA_STATEMENTS:
        db.execute(statement)


def drop_schema(db) -> None:
    for table in SCHEMA_TABLES:
        db.execute(f"DROP TABLE IF EXISTS {table}")


def init_db():
    db = get_db()
    with db.transaction():
        create_schema(db)
