# melzao/schema/introspect.py
from __future__ import annotations

from typing import Any, Dict, List, Mapping

from .adapter import DatabaseAdapter
from .errors import IntrospectionError, StatementError


class SchemaIntrospector:
    """
    Answers "does this table/column/constraint exist?" from the live catalog.
    Only reports what the catalog returns, so a True is always real.
    """

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    @property
    def dialect(self):
        return self.adapter.dialect

    def has_table(self, table: str) -> bool:
        rows = self._catalog(table, self.dialect.table_exists_sql(), {"table": table})
        return bool(rows)

    def columns(self, table: str) -> List[str]:
        rows = self._catalog(table, self.dialect.columns_sql(), {"table": table})
        return [r["name"] for r in rows]

    def has_column(self, table: str, column: str) -> bool:
        return column in self.columns(table)

    def has_constraint(self, table: str, name: str) -> bool:
        sql = self.dialect.constraint_exists_sql()
        if sql is None:
            return False
        return bool(self._catalog(table, sql, {"table": table, "constraint": name}))

    def _catalog(self, table: str, statement: str,
                 params: Mapping[str, Any]) -> List[Dict[str, Any]]:
        try:
            return self.adapter.query(statement, params)
        except StatementError as exc:
            raise IntrospectionError(table, exc) from exc
