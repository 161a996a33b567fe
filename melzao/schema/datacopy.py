# melzao/schema/datacopy.py
# Moves game data out of an embedded SQLite file into another store,
# typically a PostgreSQL server that has just been migrated.
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .adapter import DatabaseAdapter
from .dialect import SERVER, Dialect
from .errors import StatementError
from .introspect import SchemaIntrospector

logger = logging.getLogger(__name__)

# parents before children; each table keyed on the column that identifies a row
COPY_PLAN: Tuple[Tuple[str, str], ...] = (
    ("users", "email"),
    ("game_sessions", "session_id"),
    ("participants", "participant_id"),
    ("answers", "id"),
    ("questions", "question_id"),
)

SEQUENCE_TABLES = (
    "game_sessions",
    "participants",
    "answers",
    "users",
    "questions",
    "user_game_configs",
    "question_categories",
)

BOOLEAN_COLUMNS = {
    "answers": ("is_correct",),
    "questions": ("is_active",),
}

JSON_COLUMNS = {
    "questions": ("options",),
}


@dataclass
class TableCopy:
    table: str
    read: int = 0
    inserted: int = 0
    skipped: int = 0


@dataclass
class CopyFailure:
    table: str
    row_id: Any
    message: str


@dataclass
class CopyReport:
    tables: List[TableCopy] = field(default_factory=list)
    errors: List[CopyFailure] = field(default_factory=list)
    sequences: Dict[str, int] = field(default_factory=dict)

    @property
    def total_inserted(self) -> int:
        return sum(t.inserted for t in self.tables)

    @property
    def ok(self) -> bool:
        return not self.errors


def adapt_row(table: str, row: Mapping[str, Any], dialect: Dialect) -> Dict[str, Any]:
    """SQLite keeps booleans as 0/1 and JSON as text; make them fit the target."""
    out = dict(row)
    for column in BOOLEAN_COLUMNS.get(table, ()):
        if out.get(column) is not None:
            out[column] = out[column] in (1, True, "1", "true")
    for column in JSON_COLUMNS.get(table, ()):
        value = out.get(column)
        if isinstance(value, str) and dialect.name == SERVER:
            value = json.loads(value)
        if isinstance(value, (dict, list)):
            out[column] = json.dumps(value, ensure_ascii=False)
    return out


def copy_table(source: DatabaseAdapter, target: DatabaseAdapter, table: str, key: str,
               report: CopyReport) -> Optional[TableCopy]:
    if not SchemaIntrospector(source).has_table(table):
        logger.info("source has no %s table; skipping", table)
        return None
    target_columns = set(SchemaIntrospector(target).columns(table))
    if not target_columns:
        logger.warning("target has no %s table; skipping", table)
        return None

    stats = TableCopy(table)
    for row in source.query(f"SELECT * FROM {table} ORDER BY id"):
        stats.read += 1
        columns = [c for c in row if c in target_columns]
        sql = target.dialect.insert_if_absent(table, columns, key)
        try:
            values = adapt_row(table, row, target.dialect)
            if target.execute(sql, {c: values[c] for c in columns}):
                stats.inserted += 1
            else:
                stats.skipped += 1
        except (StatementError, ValueError) as exc:
            logger.error("could not copy %s row %s: %s", table, row.get("id"), exc)
            report.errors.append(CopyFailure(table, row.get("id"), str(exc)))

    logger.info("%s: %d read, %d inserted, %d already present",
                table, stats.read, stats.inserted, stats.skipped)
    return stats


def sync_sequences(adapter: DatabaseAdapter,
                   tables: Sequence[str] = SEQUENCE_TABLES) -> Dict[str, int]:
    """
    Move each SERIAL sequence past the largest copied id, so the next
    insert does not collide with a row that came over with its id.
    Returns {table: max_id} for the sequences that were moved.
    """
    moved: Dict[str, int] = {}
    for table in tables:
        sql = adapter.dialect.sync_sequence_sql(table)
        if sql is None:
            return moved
        try:
            rows = adapter.query(f"SELECT MAX(id) AS max_id FROM {table}")
            max_id = rows[0]["max_id"] if rows else None
            if max_id:
                adapter.execute(sql, {"max_id": max_id})
                moved[table] = max_id
                logger.info("%s: sequence moved to %s", table, max_id)
        except StatementError as exc:
            logger.warning("%s: sequence not updated: %s", table, exc.cause)
    return moved


def copy_store(source: DatabaseAdapter, target: DatabaseAdapter,
               plan: Sequence[Tuple[str, str]] = COPY_PLAN) -> CopyReport:
    """Insert every source row the target lacks. Safe to run more than once."""
    logger.info("Copying %s store into %s store", source.dialect.name, target.dialect.name)
    report = CopyReport()
    for table, key in plan:
        stats = copy_table(source, target, table, key, report)
        if stats is not None:
            report.tables.append(stats)
    report.sequences = sync_sequences(target)

    if report.errors:
        logger.warning("Copy finished with %d failed row(s)", len(report.errors))
    else:
        logger.info("Copied %d row(s)", report.total_inserted)
    return report
