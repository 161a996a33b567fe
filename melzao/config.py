# melzao/config.py
import os


def normalize_database_url(url):
    """Hosting providers still hand out postgres://, which SQLAlchemy rejects."""
    if url and url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def env_flag(name, default=True):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off", "")


def _database_url():
    url = os.environ.get("DATABASE_URL")
    if url:
        return normalize_database_url(url)
    path = os.environ.get("DATABASE_PATH", "melzao.db")
    return f"sqlite:///{path}"


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Migrations
    MIGRATIONS_RUN_ON_STARTUP = env_flag("MIGRATIONS_RUN_ON_STARTUP", True)
    MIGRATIONS_CREATE_CORE_TABLES = env_flag("MIGRATIONS_CREATE_CORE_TABLES", True)

    # Default admin (seeded on a fresh store; see `flask create-admin`)
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL")
    ADMIN_NAME = os.environ.get("ADMIN_NAME")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD")
