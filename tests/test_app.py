# tests/test_app.py
import click
import pytest

from conftest import make_app, stub_hasher
from melzao.config import env_flag, normalize_database_url
from melzao.db import get_adapter
from melzao.schema.admin import CREATED, REACTIVATED, UNCHANGED, ensure_admin_user
from melzao.schema import SchemaIntrospector
from melzao.schema.errors import ConfigurationError, MigrationError
from melzao.schema.seeds import AdminSeed


def test_startup_applies_migrations(app):
    with app.app_context():
        adapter = get_adapter()
        assert adapter.dialect.name == "embedded"
        rows = adapter.query("SELECT name FROM migrations ORDER BY name")
    assert [r["name"] for r in rows] == [
        "001_multi_user_schema",
        "002_add_user_config_to_sessions",
        "003_player_identities",
        "004_level_honey_config",
    ]


def test_health_schema(client):
    resp = client.get("/health/schema")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["dialect"] == "embedded"
    assert body["up_to_date"] is True
    assert len(body["migrations"]) == 4
    assert all(m["applied"] for m in body["migrations"])


def test_health_reports_pending(tmp_path):
    app = make_app(tmp_path, MIGRATIONS_RUN_ON_STARTUP=False)
    resp = app.test_client().get("/health/schema")
    assert resp.status_code == 503
    assert resp.get_json()["up_to_date"] is False


def test_startup_failure_refuses_to_start(tmp_path):
    # no core tables and no permission to create them
    with pytest.raises(MigrationError):
        make_app(tmp_path, MIGRATIONS_CREATE_CORE_TABLES=False)


def test_unsupported_database_rejected_at_startup(tmp_path):
    with pytest.raises(ConfigurationError):
        make_app(tmp_path, SQLALCHEMY_DATABASE_URI="mysql://root@localhost/melzao")


def test_admin_override_from_config(tmp_path):
    app = make_app(tmp_path, ADMIN_EMAIL="boss@example.com", ADMIN_PASSWORD="hunter22")
    with app.app_context():
        rows = get_adapter().query("SELECT email, name, password_hash FROM users")
    assert rows == [{
        "email": "boss@example.com",
        "name": "Administrador",
        "password_hash": stub_hasher("hunter22"),
    }]


# ---------------------------
# CLI
# ---------------------------
def test_cli_status(cli):
    result = cli.invoke(args=["db-status"])
    assert result.exit_code == 0
    assert "Dialect: embedded" in result.output
    assert "003_player_identities" in result.output
    assert "pending" not in result.output


def test_cli_upgrade_when_current(cli):
    result = cli.invoke(args=["db-upgrade"])
    assert result.exit_code == 0
    assert "already up to date" in result.output


def test_cli_rollback_then_upgrade(cli, client):
    result = cli.invoke(args=["db-rollback", "003_player_identities", "--yes"])
    assert result.exit_code == 0, result.output
    assert "Reversed 003_player_identities" in result.output
    assert client.get("/health/schema").status_code == 503

    result = cli.invoke(args=["db-upgrade"])
    assert result.exit_code == 0
    assert "Applied: 003_player_identities" in result.output
    assert client.get("/health/schema").status_code == 200


def test_cli_load_leaves_schema_to_the_command(tmp_path):
    # `flask <command>` builds the app while resolving the subcommand
    with click.Context(click.Group("flask")):
        app = make_app(tmp_path)
    with app.app_context():
        assert not SchemaIntrospector(get_adapter()).has_table("migrations")

    cli = app.test_cli_runner()
    result = cli.invoke(args=["db-status"])
    assert result.exit_code == 0
    assert result.output.count("pending") == 4

    result = cli.invoke(args=["db-upgrade"])
    assert result.exit_code == 0
    assert "Applied: 001_multi_user_schema" in result.output
    assert "004_level_honey_config" in result.output


def test_flask_run_still_migrates(tmp_path):
    with click.Context(click.Command("run")):
        app = make_app(tmp_path)
    with app.app_context():
        assert SchemaIntrospector(get_adapter()).has_table("migrations")


def test_cli_rollback_asks_first(cli):
    result = cli.invoke(args=["db-rollback", "003_player_identities"], input="n\n")
    assert result.exit_code != 0
    assert "Reversed" not in result.output


def test_cli_rollback_unknown(cli):
    result = cli.invoke(args=["db-rollback", "999_nope", "--yes"])
    assert result.exit_code != 0
    assert "no migration named" in result.output


def test_cli_create_admin_reactivates(app, cli):
    result = cli.invoke(args=["create-admin"])
    assert "unchanged" in result.output

    with app.app_context():
        get_adapter().execute("UPDATE users SET status = 'inactive'")
    result = cli.invoke(args=["create-admin"])
    assert result.exit_code == 0
    assert "reactivated" in result.output
    with app.app_context():
        assert get_adapter().query("SELECT status FROM users") == [{"status": "active"}]


def test_cli_create_admin_needs_schema(tmp_path):
    app = make_app(tmp_path, MIGRATIONS_RUN_ON_STARTUP=False)
    result = app.test_cli_runner().invoke(args=["create-admin"])
    assert result.exit_code != 0
    assert "users table missing" in result.output


# ---------------------------
# ensure_admin_user / config helpers
# ---------------------------
def test_ensure_admin_user(migrated, adapter):
    admin = AdminSeed(email="second@melzao.com", name="Segunda", password="pw-123456")
    assert ensure_admin_user(adapter, admin, stub_hasher) == CREATED
    assert ensure_admin_user(adapter, admin, stub_hasher) == UNCHANGED

    adapter.execute("UPDATE users SET status = 'pending' WHERE email = :e", {"e": admin.email})
    assert ensure_admin_user(adapter, admin, stub_hasher) == REACTIVATED

    row = adapter.query("SELECT role, status, password_hash FROM users WHERE email = :e",
                        {"e": admin.email})[0]
    assert row == {"role": "admin", "status": "active",
                   "password_hash": stub_hasher("pw-123456")}


def test_normalize_database_url():
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"
    assert normalize_database_url("sqlite:///x.db") == "sqlite:///x.db"
    assert normalize_database_url(None) is None


@pytest.mark.parametrize("raw, expected", [
    ("1", True), ("true", True), ("yes", True),
    ("0", False), ("false", False), ("off", False),
])
def test_env_flag(monkeypatch, raw, expected):
    monkeypatch.setenv("MELZAO_TEST_FLAG", raw)
    assert env_flag("MELZAO_TEST_FLAG", default=not expected) is expected


def test_env_flag_default(monkeypatch):
    monkeypatch.delenv("MELZAO_TEST_FLAG", raising=False)
    assert env_flag("MELZAO_TEST_FLAG", default=False) is False
