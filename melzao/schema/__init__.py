# melzao/schema/__init__.py
"""
Schema migrations for the melzao quiz platform.

Works against SQLite (embedded) and PostgreSQL (server); every unit is safe to
re-run on each process start.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy.engine import Engine

from .adapter import DatabaseAdapter
from .datacopy import CopyReport, copy_store, sync_sequences
from .dialect import EMBEDDED, SERVER, Dialect, dialect_for_url
from .errors import (
    ConfigurationError,
    DuplicateArtifactError,
    IntrospectionError,
    MigrationError,
    MissingDependencyError,
    SchemaError,
    SeedConflictError,
    StatementError,
    UnknownMigrationError,
)
from .introspect import SchemaIntrospector
from .runner import MigrationLedger, MigrationRunner, MigrationStatus
from .seeds import DEFAULT_SEED_DATA, Hasher, SeedData, SeedLoader
from .units import MigrationContext, MigrationUnit


def build_runner(engine: Engine, hasher: Optional[Hasher] = None,
                 seed_data: Optional[SeedData] = None,
                 create_core_tables: bool = True) -> MigrationRunner:
    ctx = MigrationContext.build(DatabaseAdapter(engine), hasher=hasher, seed_data=seed_data)
    return MigrationRunner(ctx, create_core_tables=create_core_tables)


def run_migrations(engine: Engine, hasher: Optional[Hasher] = None,
                   seed_data: Optional[SeedData] = None,
                   create_core_tables: bool = True) -> List[str]:
    """Apply all pending migrations. Raises MigrationError on the first failure."""
    return build_runner(engine, hasher, seed_data, create_core_tables).run_pending()


__all__ = [
    "EMBEDDED",
    "SERVER",
    "DEFAULT_SEED_DATA",
    "ConfigurationError",
    "CopyReport",
    "DatabaseAdapter",
    "Dialect",
    "DuplicateArtifactError",
    "Hasher",
    "IntrospectionError",
    "MigrationContext",
    "MigrationError",
    "MigrationLedger",
    "MigrationRunner",
    "MigrationStatus",
    "MigrationUnit",
    "MissingDependencyError",
    "SchemaError",
    "SchemaIntrospector",
    "SeedConflictError",
    "SeedData",
    "SeedLoader",
    "StatementError",
    "UnknownMigrationError",
    "build_runner",
    "copy_store",
    "dialect_for_url",
    "run_migrations",
    "sync_sequences",
]
