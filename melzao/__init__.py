# melzao/__init__.py
from __future__ import annotations

import logging
import os
import secrets

import click
from flask import Flask

from .config import Config, normalize_database_url
from .db import build_runner, db, get_adapter, seed_data_from_config
from .schema.dialect import dialect_for_url
from .schema.errors import SchemaError


def _loaded_by_cli_command() -> bool:
    """
    True while `flask <command>` builds the app to look up a subcommand.
    `flask run` loads the app from inside its own command, so it still migrates.
    """
    ctx = click.get_current_context(silent=True)
    return ctx is not None and isinstance(ctx.command, click.Group)


def create_app(config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)

    # ---------------------------
    # Config
    # ---------------------------
    app.config.from_object(Config)
    app.config.from_pyfile("config.py", silent=True)  # instance/config.py (optional)
    if isinstance(config, dict):
        app.config.update(config)
    elif config is not None:
        app.config.from_object(config)

    app.config["SQLALCHEMY_DATABASE_URI"] = normalize_database_url(
        app.config.get("SQLALCHEMY_DATABASE_URI")
    )
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise RuntimeError(
            "Missing SQLALCHEMY_DATABASE_URI (or DATABASE_URL). "
            "Set it via env or instance/config.py."
        )
    # unsupported backends fail here, before any connection is opened
    dialect_for_url(app.config["SQLALCHEMY_DATABASE_URI"])
    if not app.config.get("SECRET_KEY"):
        app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY") or secrets.token_hex(32)

    # ---------------------------
    # Logging
    # ---------------------------
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("melzao").setLevel(level)

    # ---------------------------
    # Extensions / blueprints
    # ---------------------------
    db.init_app(app)

    from .health.routes import bp as health_bp
    app.register_blueprint(health_bp)

    # ---------------------------
    # Schema migrations (before serving)
    # ---------------------------
    # CLI commands manage the schema themselves; db-status must see it as it is.
    if app.config.get("MIGRATIONS_RUN_ON_STARTUP", True) and not _loaded_by_cli_command():
        with app.app_context():
            try:
                applied = build_runner().run_pending()
            except SchemaError:
                app.logger.critical("Schema migration failed; refusing to start")
                raise
            if applied:
                app.logger.info("Startup migrations applied: %s", ", ".join(applied))

    # ---------------------------
    # CLI commands
    # ---------------------------
    @app.cli.command("db-upgrade")
    def db_upgrade():
        """Apply pending schema migrations."""
        try:
            applied = build_runner().run_pending()
        except SchemaError as exc:
            raise click.ClickException(str(exc)) from exc
        if applied:
            click.echo(f"✅ Applied: {', '.join(applied)}")
        else:
            click.echo("✅ Schema already up to date.")

    @app.cli.command("db-rollback")
    @click.argument("name")
    @click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
    def db_rollback(name, yes):
        """Reverse one migration by name (drops its tables/columns)."""
        if not yes:
            click.confirm(f"Reverse {name}? Data in its tables and columns is lost", abort=True)
        try:
            build_runner().rollback(name)
        except SchemaError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(f"✅ Reversed {name}")

    @app.cli.command("db-status")
    def db_status():
        """Show each migration and whether it is applied."""
        runner = build_runner()
        click.echo(f"Dialect: {runner.adapter.dialect.name}")
        for s in runner.status():
            mark = "applied" if s.applied else "pending"
            click.echo(f"  {s.name:<36} {mark:<8} ledger={s.recorded} schema={s.schema_present}")

    @app.cli.command("db-copy-sqlite")
    @click.argument("source", type=click.Path(exists=True, dir_okay=False))
    def db_copy_sqlite(source):
        """Copy game data from an SQLite file into this app's database."""
        from sqlalchemy import create_engine

        from .schema import DatabaseAdapter, copy_store

        engine = create_engine(f"sqlite:///{os.path.abspath(source)}")
        try:
            build_runner().run_pending()
            report = copy_store(DatabaseAdapter(engine), get_adapter())
        except SchemaError as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            engine.dispose()

        for t in report.tables:
            click.echo(f"  {t.table:<16} read={t.read} inserted={t.inserted} skipped={t.skipped}")
        for table, max_id in report.sequences.items():
            click.echo(f"  sequence {table} -> {max_id}")
        if not report.ok:
            for e in report.errors:
                click.echo(f"  ⚠️  {e.table} (row {e.row_id}): {e.message}", err=True)
            raise click.ClickException(f"{len(report.errors)} row(s) could not be copied")
        click.echo(f"✅ Copied {report.total_inserted} row(s)")

    @app.cli.command("create-admin")
    def create_admin():
        """Create the admin account, or re-activate it if it exists."""
        from .schema.admin import ensure_admin_user
        from .schema.introspect import SchemaIntrospector
        from .security import hash_secret

        adapter = get_adapter()
        if not SchemaIntrospector(adapter).has_table("users"):
            raise click.ClickException("users table missing; run `flask db-upgrade` first")
        admin = seed_data_from_config().admin
        result = ensure_admin_user(
            adapter, admin, app.config.get("PASSWORD_HASHER") or hash_secret
        )
        click.echo(f"✅ Admin {admin.email}: {result}")

    return app
