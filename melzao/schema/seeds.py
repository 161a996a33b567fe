# melzao/schema/seeds.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .adapter import DatabaseAdapter
from .dialect import check_identifier
from .errors import SeedConflictError, StatementError

logger = logging.getLogger(__name__)

Hasher = Callable[[str], str]


# ---------------------------
# Seed content (versioned data)
# ---------------------------
@dataclass(frozen=True)
class CategorySeed:
    name: str
    description: str
    color_hex: str
    icon_name: str

    def row(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "color_hex": self.color_hex,
            "icon_name": self.icon_name,
        }


@dataclass(frozen=True)
class AdminSeed:
    email: str
    name: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class SeedData:
    version: str
    categories: Tuple[CategorySeed, ...]
    admin: AdminSeed
    level_curve: Tuple[int, ...]

    def category_rows(self) -> List[Dict[str, Any]]:
        return [c.row() for c in self.categories]

    def level_rows(self) -> List[Dict[str, int]]:
        return [{"level": lvl, "honey_value": honey}
                for lvl, honey in enumerate(self.level_curve, start=1)]

    def with_admin(self, email: Optional[str] = None, name: Optional[str] = None,
                   password: Optional[str] = None) -> "SeedData":
        admin = AdminSeed(
            email=email or self.admin.email,
            name=name or self.admin.name,
            password=password or self.admin.password,
        )
        return replace(self, admin=admin)


DEFAULT_CATEGORIES: Tuple[CategorySeed, ...] = (
    CategorySeed("LGBT+", "Questões sobre diversidade e inclusão LGBT+", "#FF6B35", "rainbow"),
    CategorySeed("História Queer", "Marcos históricos do movimento LGBT+", "#9B59B6", "history"),
    CategorySeed("Cultura Pop", "Representatividade na mídia e entretenimento", "#E74C3C", "tv"),
    CategorySeed("Direitos e Legislação", "Conquistas legais e direitos LGBT+", "#27AE60", "scale"),
    CategorySeed("Personalidades", "Figuras importantes da comunidade LGBT+", "#F39C12", "star"),
)

DEFAULT_LEVEL_CURVE: Tuple[int, ...] = (5, 10, 15, 20, 25, 35, 75, 125, 250, 500)

DEFAULT_SEED_DATA = SeedData(
    version="1",
    categories=DEFAULT_CATEGORIES,
    admin=AdminSeed(email="admin@melzao.com", name="Administrador", password="admin123"),
    level_curve=DEFAULT_LEVEL_CURVE,
)


def utc_timestamp() -> str:
    # same text shape as CURRENT_TIMESTAMP so stored values sort together
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


# ---------------------------
# Loader
# ---------------------------
class SeedLoader:
    """Inserts reference rows at most once, however often it runs."""

    def __init__(self, adapter: DatabaseAdapter, hasher: Optional[Hasher] = None):
        self.adapter = adapter
        if hasher is None:
            from ..security import hash_secret
            hasher = hash_secret
        self.hasher = hasher

    def count(self, table: str) -> int:
        rows = self.adapter.query(f"SELECT COUNT(*) AS n FROM {check_identifier(table)}")
        return int(rows[0]["n"]) if rows else 0

    def seed_if_empty(self, table: str, rows: Iterable[Mapping[str, Any]]) -> int:
        existing = self.count(table)
        if existing:
            logger.debug("%s already has %d rows; seed skipped", table, existing)
            return 0
        inserted = 0
        try:
            for row in rows:
                self._insert(table, row)
                inserted += 1
        except SeedConflictError as exc:
            # another instance seeded concurrently
            logger.info("%s (after %d inserted)", exc, inserted)
        if inserted:
            logger.info("Seeded %d rows into %s", inserted, table)
        return inserted

    def seed_if_absent_by_key(self, table: str, key: str, row: Mapping[str, Any]) -> bool:
        if key not in row:
            raise ValueError(f"seed row for {table} lacks key column {key!r}")
        columns = [check_identifier(c) for c in row]
        sql = self.adapter.dialect.insert_if_absent(check_identifier(table), columns, key)
        return self.adapter.execute(sql, dict(row)) > 0

    def seed_admin(self, admin: AdminSeed) -> bool:
        """Create the default admin when the users table is empty."""
        if self.count("users"):
            return False
        row = {
            "email": admin.email,
            "password_hash": self.hasher(admin.password),
            "name": admin.name,
            "role": "admin",
            "status": "active",
            "approved_at": utc_timestamp(),
        }
        created = self.seed_if_empty("users", [row]) > 0
        if created:
            logger.info("Default admin account created (%s)", admin.email)
        return created

    # -------- internals --------
    def _insert(self, table: str, row: Mapping[str, Any]) -> None:
        columns = [check_identifier(c) for c in row]
        sql = (f"INSERT INTO {check_identifier(table)} ({', '.join(columns)}) "
               f"VALUES ({', '.join(':' + c for c in columns)})")
        try:
            with self.adapter.savepoint():
                self.adapter.execute(sql, dict(row))
        except StatementError as exc:
            if not exc.unique_violation:
                raise
            raise SeedConflictError(table, exc) from exc
