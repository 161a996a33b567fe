# melzao/db.py
from __future__ import annotations

from flask import current_app
from flask_sqlalchemy import SQLAlchemy

from .schema import DatabaseAdapter, MigrationRunner
from .schema.seeds import DEFAULT_SEED_DATA, SeedData
from .schema.units import MigrationContext
from .security import hash_secret

db = SQLAlchemy()


def get_adapter() -> DatabaseAdapter:
    """Adapter over the app's engine. Needs an app context."""
    return DatabaseAdapter(db.engine)


def seed_data_from_config(config=None) -> SeedData:
    config = config if config is not None else current_app.config
    return DEFAULT_SEED_DATA.with_admin(
        email=config.get("ADMIN_EMAIL"),
        name=config.get("ADMIN_NAME"),
        password=config.get("ADMIN_PASSWORD"),
    )


def build_runner(hasher=None) -> MigrationRunner:
    config = current_app.config
    ctx = MigrationContext.build(
        get_adapter(),
        hasher=hasher or config.get("PASSWORD_HASHER") or hash_secret,
        seed_data=seed_data_from_config(config),
    )
    return MigrationRunner(
        ctx, create_core_tables=config.get("MIGRATIONS_CREATE_CORE_TABLES", True)
    )
