# melzao/schema/errors.py
from __future__ import annotations

from typing import Iterable, Optional


def _compact(statement: str, limit: int = 300) -> str:
    flat = " ".join((statement or "").split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


class SchemaError(Exception):
    """Base class for everything the migration engine raises."""


class ConfigurationError(SchemaError):
    pass


class StatementError(SchemaError):
    """The store rejected a statement (syntax, constraint, permission...)."""

    def __init__(self, dialect: str, statement: str, cause: BaseException,
                 unique_violation: bool = False):
        self.dialect = dialect
        self.statement = statement
        self.cause = cause
        self.unique_violation = unique_violation
        super().__init__(f"[{dialect}] {cause} (statement: {_compact(statement)})")


class DuplicateArtifactError(StatementError):
    """Column/table/constraint already exists. Callers treat it as applied."""


class IntrospectionError(SchemaError):
    def __init__(self, table: str, cause: BaseException):
        self.table = table
        self.cause = cause
        super().__init__(f"catalog lookup for {table!r} failed: {cause}")


class SeedConflictError(SchemaError):
    def __init__(self, table: str, cause: Optional[BaseException] = None):
        self.table = table
        self.cause = cause
        super().__init__(f"seed row already present in {table!r}")


class MissingDependencyError(SchemaError):
    def __init__(self, unit: str, tables: Iterable[str]):
        self.unit = unit
        self.tables = list(tables)
        super().__init__(f"{unit} requires missing table(s): {', '.join(self.tables)}")


class UnknownMigrationError(SchemaError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"no migration named {name!r}")


class MigrationError(SchemaError):
    """A unit failed. Carries the unit name and, when known, the statement."""

    def __init__(self, unit: str, cause: BaseException):
        self.unit = unit
        self.cause = cause
        self.statement = getattr(cause, "statement", None)
        super().__init__(f"Migration {unit} failed: {cause}")
