# melzao/schema/runner.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional, Set

from .adapter import DatabaseAdapter
from .core_tables import ensure_core_tables
from .errors import MigrationError, UnknownMigrationError
from .units import MigrationContext, MigrationUnit, build_units

logger = logging.getLogger(__name__)

LEDGER_TABLE = "migrations"


class MigrationLedger:
    """The `migrations` table: one row per unit name that completed."""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    def ensure(self) -> None:
        d = self.adapter.dialect
        self.adapter.create_if_absent(f"""
            CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
                {d.autoincrement_primary_key()},
                name TEXT UNIQUE NOT NULL,
                applied_at {d.timestamp_default()}
            )""")

    def exists(self) -> bool:
        rows = self.adapter.query(self.adapter.dialect.table_exists_sql(),
                                  {"table": LEDGER_TABLE})
        return bool(rows)

    def applied_names(self) -> Set[str]:
        # read-only: a store that never ran migrations has no ledger yet
        if not self.exists():
            return set()
        rows = self.adapter.query(f"SELECT name FROM {LEDGER_TABLE}")
        return {r["name"] for r in rows}

    def record(self, name: str) -> None:
        sql = self.adapter.dialect.insert_if_absent(LEDGER_TABLE, ["name"], "name")
        self.adapter.execute(sql, {"name": name})

    def forget(self, name: str) -> None:
        self.adapter.execute(f"DELETE FROM {LEDGER_TABLE} WHERE name = :name", {"name": name})


@dataclass
class MigrationStatus:
    name: str
    description: str
    recorded: bool
    schema_present: bool

    @property
    def applied(self) -> bool:
        return self.recorded and self.schema_present

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["applied"] = self.applied
        return data


class MigrationRunner:
    """
    Applies the registered units in order, once per process start.

    A unit counts as applied only when the ledger lists it and its own
    is_applied() check agrees. Anything else is re-applied; units are
    idempotent, so a half-finished earlier run is completed.
    """

    def __init__(self, ctx: MigrationContext,
                 units: Optional[Iterable[MigrationUnit]] = None,
                 create_core_tables: bool = True):
        self.ctx = ctx
        self.adapter = ctx.adapter
        self.units: List[MigrationUnit] = (
            list(units) if units is not None else build_units(ctx)
        )
        names = [u.name for u in self.units]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate migration names in {names}")
        self.ledger = MigrationLedger(self.adapter)
        self.create_core_tables = create_core_tables

    def unit(self, name: str) -> MigrationUnit:
        for unit in self.units:
            if unit.name == name:
                return unit
        raise UnknownMigrationError(name)

    def pending(self) -> List[MigrationUnit]:
        recorded = self.ledger.applied_names()
        return [u for u in self.units if not (u.name in recorded and u.is_applied())]

    def status(self) -> List[MigrationStatus]:
        recorded = self.ledger.applied_names()
        return [
            MigrationStatus(
                name=u.name,
                description=u.description,
                recorded=u.name in recorded,
                schema_present=u.is_applied(),
            )
            for u in self.units
        ]

    def run_pending(self) -> List[str]:
        """Apply every pending unit in order. Returns the names applied."""
        self._prepare()
        recorded = self.ledger.applied_names()
        applied: List[str] = []

        for unit in self.units:
            if unit.name in recorded:
                if self._check_applied(unit):
                    logger.debug("%s already applied", unit.name)
                    continue
                logger.warning("%s is in the ledger but the schema is incomplete; re-applying",
                               unit.name)
            self._apply(unit)
            applied.append(unit.name)

        if applied:
            logger.info("Applied %d migration(s): %s", len(applied), ", ".join(applied))
        else:
            logger.info("Schema up to date (%d migrations)", len(self.units))
        return applied

    def rollback(self, name: str) -> None:
        """Reverse a single unit. Later units that depend on it are left alone."""
        unit = self.unit(name)
        self.ledger.ensure()
        logger.warning("Reversing migration %s", name)
        try:
            with self.adapter.transaction():
                unit.reverse()
                self.ledger.forget(name)
        except Exception as exc:
            self._log_failure(name, exc)
            raise MigrationError(name, exc) from exc
        logger.info("Migration %s reversed", name)

    # -------- internals --------
    def _prepare(self) -> None:
        if self.create_core_tables:
            ensure_core_tables(self.adapter)
        self.ledger.ensure()

    def _check_applied(self, unit: MigrationUnit) -> bool:
        try:
            return unit.is_applied()
        except Exception as exc:
            self._log_failure(unit.name, exc)
            raise MigrationError(unit.name, exc) from exc

    def _apply(self, unit: MigrationUnit) -> None:
        logger.info("Applying %s: %s", unit.name, unit.description)
        try:
            with self.adapter.transaction():
                unit.apply()
                self.ledger.record(unit.name)
        except Exception as exc:
            self._log_failure(unit.name, exc)
            raise MigrationError(unit.name, exc) from exc
        logger.info("Migration %s applied", unit.name)

    @staticmethod
    def _log_failure(name: str, exc: BaseException) -> None:
        logger.error("Migration %s failed: %s", name, exc)
        statement = getattr(exc, "statement", None)
        if statement:
            logger.error("Failing statement for %s: %s", name, " ".join(statement.split()))
