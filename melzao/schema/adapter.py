# melzao/schema/adapter.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError

from .dialect import Dialect, dialect_for_backend
from .errors import DuplicateArtifactError, StatementError

logger = logging.getLogger(__name__)


class DatabaseAdapter:
    """
    Thin statement executor over a SQLAlchemy engine.
    Statements are plain SQL with :named binds; the adapter never rewrites DDL.
    """

    def __init__(self, engine: Engine, dialect: Optional[Dialect] = None):
        self.engine = engine
        self._dialect = dialect or dialect_for_backend(engine.dialect.name)
        self._conn: Optional[Connection] = None

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    # -------- public API --------
    def execute(self, statement: str, params: Optional[Mapping[str, Any]] = None) -> int:
        return self._run(statement, params, fetch=False)

    def query(self, statement: str,
              params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        return self._run(statement, params, fetch=True)

    @contextmanager
    def transaction(self) -> Iterator["DatabaseAdapter"]:
        """Share one connection/transaction across every statement in the block."""
        if self._conn is not None:
            yield self
            return
        with self.engine.begin() as conn:
            self._conn = conn
            try:
                yield self
            finally:
                self._conn = None

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        # A failed statement aborts the whole transaction on PostgreSQL, so
        # statements whose failure we recover from run inside a SAVEPOINT there.
        if self._conn is None or not self._dialect.supports_transactional_ddl:
            yield
            return
        with self._conn.begin_nested():
            yield

    def create_if_absent(self, statement: str) -> bool:
        """
        Run a CREATE ... IF NOT EXISTS. Returns False when another session
        created the object first.
        """
        try:
            with self.savepoint():
                self.execute(statement)
        except DuplicateArtifactError as exc:
            logger.info("created concurrently, keeping it: %s", exc.cause)
            return False
        return True

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None

    # -------- internals --------
    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        if self._conn is not None:
            yield self._conn
        else:
            with self.engine.begin() as conn:
                yield conn

    def _run(self, statement: str, params: Optional[Mapping[str, Any]], fetch: bool):
        try:
            with self._connection() as conn:
                result = conn.execute(text(statement), dict(params or {}))
                if fetch:
                    return [dict(row) for row in result.mappings()]
                return result.rowcount
        except DBAPIError as exc:
            raise self._wrap(statement, exc) from exc

    def _wrap(self, statement: str, exc: DBAPIError) -> StatementError:
        cause = exc.orig if exc.orig is not None else exc
        if self._dialect.is_duplicate_artifact(cause, statement):
            return DuplicateArtifactError(self._dialect.name, statement, cause)
        logger.debug("statement failed on %s: %s", self._dialect.name, cause)
        return StatementError(
            self._dialect.name, statement, cause,
            unique_violation=self._dialect.is_unique_violation(cause),
        )
