# melzao/schema/units/m004_level_honey_config.py
from __future__ import annotations

import logging

from .base import MigrationUnit

logger = logging.getLogger(__name__)


class LevelHoneyConfig(MigrationUnit):
    """Honey reward per level (1..10), editable by admins."""

    name = "004_level_honey_config"
    description = "level_honey_config table seeded with the default honey curve"

    def is_applied(self) -> bool:
        if not self.ctx.introspector.has_table("level_honey_config"):
            return False
        wanted = {row["level"] for row in self.ctx.seed_data.level_rows()}
        rows = self.ctx.adapter.query("SELECT level FROM level_honey_config")
        return wanted <= {int(r["level"]) for r in rows}

    def apply(self) -> None:
        d = self.dialect
        self.create_table("level_honey_config", f"""
            level INTEGER PRIMARY KEY CHECK (level BETWEEN 1 AND 10),
            honey_value INTEGER NOT NULL DEFAULT 10 CHECK (honey_value >= 1),
            updated_at {d.timestamp_default()},
            updated_by INTEGER""")

        added = 0
        for row in self.ctx.seed_data.level_rows():
            # existing levels keep whatever value an admin set
            if self.ctx.seeds.seed_if_absent_by_key("level_honey_config", "level", row):
                added += 1
        if added:
            logger.info("[%s] seeded %d level rows", self.name, added)

    def reverse(self) -> None:
        self.drop_table("level_honey_config")
