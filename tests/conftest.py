# tests/conftest.py
# Pytest fixtures: a throwaway SQLite store per test, and a Flask app on top of one.

import hashlib
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from melzao import create_app
from melzao.schema import DatabaseAdapter, MigrationRunner
from melzao.schema.dialect import PostgresDialect
from melzao.schema.units import MigrationContext


def stub_hasher(plaintext: str) -> str:
    """Fast stand-in for the real password hasher."""
    return "stub$" + hashlib.sha256(plaintext.encode("utf-8")).hexdigest()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "melzao_test.db"


@pytest.fixture
def engine(db_path: Path) -> Generator[Engine, None, None]:
    eng = create_engine(f"sqlite:///{db_path}")
    yield eng
    eng.dispose()


@pytest.fixture
def adapter(engine: Engine) -> DatabaseAdapter:
    return DatabaseAdapter(engine)


@pytest.fixture
def ctx(adapter: DatabaseAdapter) -> MigrationContext:
    return MigrationContext.build(adapter, hasher=stub_hasher)


@pytest.fixture
def runner(ctx: MigrationContext) -> MigrationRunner:
    return MigrationRunner(ctx)


@pytest.fixture
def migrated(runner: MigrationRunner) -> MigrationRunner:
    """A store with every migration applied."""
    runner.run_pending()
    return runner


def make_app(tmp_path: Path, **overrides):
    config = {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'app.db'}",
        "PASSWORD_HASHER": stub_hasher,
        "LOG_LEVEL": "DEBUG",
        "ADMIN_EMAIL": None,
        "ADMIN_NAME": None,
        "ADMIN_PASSWORD": None,
        "MIGRATIONS_RUN_ON_STARTUP": True,
        "MIGRATIONS_CREATE_CORE_TABLES": True,
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture
def app(tmp_path: Path):
    return make_app(tmp_path)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def cli(app):
    return app.test_cli_runner()


# ---------------------------
# Server-dialect doubles (no PostgreSQL needed)
# ---------------------------
class RecordingAdapter:
    """Collects statements instead of running them."""

    def __init__(self, dialect=None, count=1):
        self.dialect = dialect or PostgresDialect()
        self.raw = []
        self.count = count

    @property
    def statements(self):
        return [" ".join(s.split()) for s in self.raw]

    def execute(self, statement, params=None):
        self.raw.append(statement)
        return 1

    def create_if_absent(self, statement):
        self.execute(statement)
        return True

    def query(self, statement, params=None):
        self.raw.append(statement)
        return [{"n": self.count}]

    @contextmanager
    def transaction(self):
        yield self

    @contextmanager
    def savepoint(self):
        yield


class FakeIntrospector:
    """Catalog answers from plain dicts: {table: [columns]} and {table: {constraints}}."""

    def __init__(self, tables=None, constraints=None):
        self.tables = {t: list(cols) for t, cols in (tables or {}).items()}
        self.constraints = {t: set(c) for t, c in (constraints or {}).items()}

    def has_table(self, table):
        return table in self.tables

    def columns(self, table):
        return list(self.tables.get(table, []))

    def has_column(self, table, column):
        return column in self.tables.get(table, [])

    def has_constraint(self, table, name):
        return name in self.constraints.get(table, set())


@pytest.fixture
def recording():
    return RecordingAdapter()


def fake_context(adapter, introspector):
    return MigrationContext.build(adapter, hasher=stub_hasher, introspector=introspector)
