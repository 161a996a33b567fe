# melzao/schema/units/base.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from ..adapter import DatabaseAdapter
from ..dialect import Dialect
from ..errors import DuplicateArtifactError, MissingDependencyError
from ..introspect import SchemaIntrospector
from ..seeds import DEFAULT_SEED_DATA, Hasher, SeedData, SeedLoader

logger = logging.getLogger(__name__)


@dataclass
class MigrationContext:
    """Everything a unit needs to talk to the store."""
    adapter: DatabaseAdapter
    introspector: SchemaIntrospector
    seeds: SeedLoader
    seed_data: SeedData = DEFAULT_SEED_DATA

    @classmethod
    def build(cls, adapter: DatabaseAdapter, hasher: Optional[Hasher] = None,
              seed_data: Optional[SeedData] = None,
              introspector: Optional[SchemaIntrospector] = None) -> "MigrationContext":
        return cls(
            adapter=adapter,
            introspector=introspector or SchemaIntrospector(adapter),
            seeds=SeedLoader(adapter, hasher),
            seed_data=seed_data or DEFAULT_SEED_DATA,
        )

    @property
    def dialect(self) -> Dialect:
        return self.adapter.dialect


class MigrationUnit:
    """
    A named, ordered schema change.

    Subclasses implement apply() (idempotent forward change), reverse()
    (drops what apply added, dependents first) and is_applied() (check of
    the live schema). The helpers below are all safe to repeat.
    """

    name: str = ""
    description: str = ""
    requires_tables: Tuple[str, ...] = ()

    def __init__(self, ctx: MigrationContext):
        self.ctx = ctx

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    @property
    def dialect(self) -> Dialect:
        return self.ctx.dialect

    def apply(self) -> None:
        raise NotImplementedError

    def reverse(self) -> None:
        raise NotImplementedError

    def is_applied(self) -> bool:
        raise NotImplementedError

    # ---- helpers ----
    def run(self, statement: str, params: Optional[Mapping[str, Any]] = None) -> int:
        return self.ctx.adapter.execute(statement, params)

    def check_dependencies(self) -> None:
        missing = [t for t in self.requires_tables if not self.ctx.introspector.has_table(t)]
        if missing:
            raise MissingDependencyError(self.name, missing)

    def create_table(self, table: str, body: str) -> None:
        self.ctx.adapter.create_if_absent(f"CREATE TABLE IF NOT EXISTS {table} (\n{body}\n)")

    def create_index(self, index: str, table: str, columns: str) -> None:
        self.ctx.adapter.create_if_absent(
            f"CREATE INDEX IF NOT EXISTS {index} ON {table}({columns})"
        )

    def add_column(self, table: str, column: str, definition: str) -> bool:
        """Add table.column unless present. Returns True if this call added it."""
        if self.ctx.introspector.has_column(table, column):
            logger.debug("[%s] %s.%s already present", self.name, table, column)
            return False
        try:
            with self.ctx.adapter.savepoint():
                self.run(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
        except DuplicateArtifactError as exc:
            logger.info("[%s] %s.%s already present: %s", self.name, table, column, exc.cause)
            return False
        logger.info("[%s] added column %s.%s", self.name, table, column)
        return True

    def drop_column(self, table: str, column: str) -> bool:
        if not self.ctx.introspector.has_column(table, column):
            return False
        self.run(f"ALTER TABLE {table} DROP COLUMN {column}")
        logger.info("[%s] dropped column %s.%s", self.name, table, column)
        return True

    def drop_index(self, index: str) -> None:
        self.run(f"DROP INDEX IF EXISTS {index}")

    def drop_table(self, table: str) -> None:
        self.run(f"DROP TABLE IF EXISTS {table}")
        logger.info("[%s] dropped table %s", self.name, table)

    def add_constraint(self, table: str, constraint: str, definition: str) -> bool:
        """Named constraints exist only on the server dialect; no-op elsewhere."""
        if not self.dialect.supports_named_constraints:
            return False
        if self.ctx.introspector.has_constraint(table, constraint):
            return False
        try:
            with self.ctx.adapter.savepoint():
                self.run(f"ALTER TABLE {table} ADD CONSTRAINT {constraint} {definition}")
        except DuplicateArtifactError:
            logger.info("[%s] constraint %s already present", self.name, constraint)
            return False
        logger.info("[%s] added constraint %s", self.name, constraint)
        return True

    def drop_constraint(self, table: str, constraint: str) -> None:
        if self.dialect.supports_named_constraints:
            self.run(f"ALTER TABLE {table} DROP CONSTRAINT IF EXISTS {constraint}")
