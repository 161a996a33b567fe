# melzao/schema/dialect.py
# SQL fragments that differ between the embedded store (SQLite) and the
# server store (PostgreSQL). Units compose DDL from these primitives.
from __future__ import annotations

import re
from typing import Optional, Sequence

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from ..config import normalize_database_url
from .errors import ConfigurationError

EMBEDDED = "embedded"
SERVER = "server"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# duplicate_column, duplicate_table, duplicate_object
_PG_DUPLICATE_CODES = {"42701", "42P07", "42710"}
_PG_UNIQUE_VIOLATION = "23505"

# CREATE ... IF NOT EXISTS racing another session can still lose on the
# catalog's own unique indexes (pg_type_typname_nsp_index, pg_class_relname_nsp_index)
_CREATE_IF_NOT_EXISTS = re.compile(
    r"^\s*CREATE\s+(?:UNIQUE\s+)?(?:TABLE|INDEX)\s+IF\s+NOT\s+EXISTS\b", re.IGNORECASE
)


def check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name or ""):
        raise ConfigurationError(f"invalid SQL identifier: {name!r}")
    return name


def _binds(columns: Sequence[str]) -> str:
    return ", ".join(f":{c}" for c in columns)


class Dialect:
    name = ""
    backend = ""
    supports_named_constraints = False
    supports_transactional_ddl = False

    # ---- DDL primitives ----
    def autoincrement_primary_key(self, column: str = "id") -> str:
        raise NotImplementedError

    def timestamp_type(self) -> str:
        raise NotImplementedError

    def now_expression(self) -> str:
        raise NotImplementedError

    def timestamp_default(self) -> str:
        return f"{self.timestamp_type()} DEFAULT {self.now_expression()}"

    def boolean_literal(self, value: bool) -> str:
        raise NotImplementedError

    def boolean_column(self, default: bool) -> str:
        return f"BOOLEAN DEFAULT {self.boolean_literal(default)}"

    def json_column_type(self) -> str:
        raise NotImplementedError

    def decimal_type(self, precision: int, scale: int) -> str:
        raise NotImplementedError

    def inline_reference(self, table: str, column: str = "id",
                         on_delete: Optional[str] = None) -> str:
        """REFERENCES clause for ALTER TABLE ... ADD COLUMN, or '' if unsupported."""
        return ""

    def insert_if_absent(self, table: str, columns: Sequence[str], key: str) -> str:
        raise NotImplementedError

    # ---- catalog ----
    def table_exists_sql(self) -> str:
        raise NotImplementedError

    def columns_sql(self) -> str:
        raise NotImplementedError

    def constraint_exists_sql(self) -> Optional[str]:
        return None

    # ---- fault classification ----
    def sync_sequence_sql(self, table: str) -> Optional[str]:
        """Statement that moves table.id's sequence past :max_id, or None if not needed."""
        return None

    def is_duplicate_artifact(self, error: BaseException, statement: str = "") -> bool:
        return "already exists" in str(error).lower()

    def is_unique_violation(self, error: BaseException) -> bool:
        return False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class SQLiteDialect(Dialect):
    name = EMBEDDED
    backend = "sqlite"

    def autoincrement_primary_key(self, column: str = "id") -> str:
        return f"{column} INTEGER PRIMARY KEY AUTOINCREMENT"

    def timestamp_type(self) -> str:
        return "DATETIME"

    def now_expression(self) -> str:
        return "CURRENT_TIMESTAMP"

    def boolean_literal(self, value: bool) -> str:
        return "1" if value else "0"

    def json_column_type(self) -> str:
        return "TEXT"

    def decimal_type(self, precision: int, scale: int) -> str:
        return f"DECIMAL({precision},{scale})"

    def insert_if_absent(self, table: str, columns: Sequence[str], key: str) -> str:
        return (f"INSERT OR IGNORE INTO {table} ({', '.join(columns)}) "
                f"VALUES ({_binds(columns)})")

    def table_exists_sql(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type = 'table' AND name = :table"

    def columns_sql(self) -> str:
        return "SELECT name FROM pragma_table_info(:table) ORDER BY cid"

    def is_duplicate_artifact(self, error: BaseException, statement: str = "") -> bool:
        msg = str(error).lower()
        return "duplicate column name" in msg or "already exists" in msg

    def is_unique_violation(self, error: BaseException) -> bool:
        return "unique constraint failed" in str(error).lower()


class PostgresDialect(Dialect):
    name = SERVER
    backend = "postgresql"
    supports_named_constraints = True
    supports_transactional_ddl = True

    def autoincrement_primary_key(self, column: str = "id") -> str:
        return f"{column} SERIAL PRIMARY KEY"

    def timestamp_type(self) -> str:
        return "TIMESTAMP"

    def now_expression(self) -> str:
        return "NOW()"

    def boolean_literal(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def json_column_type(self) -> str:
        return "JSONB"

    def decimal_type(self, precision: int, scale: int) -> str:
        return f"NUMERIC({precision},{scale})"

    def inline_reference(self, table: str, column: str = "id",
                         on_delete: Optional[str] = None) -> str:
        clause = f" REFERENCES {table}({column})"
        if on_delete:
            clause += f" ON DELETE {on_delete}"
        return clause

    def insert_if_absent(self, table: str, columns: Sequence[str], key: str) -> str:
        return (f"INSERT INTO {table} ({', '.join(columns)}) "
                f"VALUES ({_binds(columns)}) ON CONFLICT ({key}) DO NOTHING")

    def table_exists_sql(self) -> str:
        return ("SELECT table_name AS name FROM information_schema.tables "
                "WHERE table_schema = current_schema() AND table_name = :table")

    def columns_sql(self) -> str:
        return ("SELECT column_name AS name FROM information_schema.columns "
                "WHERE table_schema = current_schema() AND table_name = :table "
                "ORDER BY ordinal_position")

    def constraint_exists_sql(self) -> Optional[str]:
        return ("SELECT constraint_name AS name FROM information_schema.table_constraints "
                "WHERE table_schema = current_schema() AND table_name = :table "
                "AND constraint_name = :constraint")

    @staticmethod
    def _sqlstate(error: BaseException) -> Optional[str]:
        # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
        return getattr(error, "pgcode", None) or getattr(error, "sqlstate", None)

    def sync_sequence_sql(self, table: str) -> Optional[str]:
        return f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), :max_id, true)"

    def is_duplicate_artifact(self, error: BaseException, statement: str = "") -> bool:
        code = self._sqlstate(error)
        if code == _PG_UNIQUE_VIOLATION:
            return bool(_CREATE_IF_NOT_EXISTS.match(statement or ""))
        if code:
            return code in _PG_DUPLICATE_CODES
        if _CREATE_IF_NOT_EXISTS.match(statement or "") and self.is_unique_violation(error):
            return True
        return super().is_duplicate_artifact(error, statement)

    def is_unique_violation(self, error: BaseException) -> bool:
        code = self._sqlstate(error)
        if code:
            return code == _PG_UNIQUE_VIOLATION
        return "duplicate key value violates unique constraint" in str(error).lower()


_BY_BACKEND = {
    "sqlite": SQLiteDialect,
    "postgresql": PostgresDialect,
}


def dialect_for_backend(backend: str) -> Dialect:
    try:
        return _BY_BACKEND[backend]()
    except KeyError:
        raise ConfigurationError(
            f"unsupported database backend {backend!r}; expected sqlite or postgresql"
        ) from None


def dialect_for_url(url: str) -> Dialect:
    """Pick the dialect from a DATABASE_URL-style string."""
    if not url:
        raise ConfigurationError("database URL is empty")
    try:
        backend = make_url(normalize_database_url(url)).get_backend_name()
    except ArgumentError as exc:
        raise ConfigurationError(f"cannot parse database URL: {exc}") from exc
    return dialect_for_backend(backend)
