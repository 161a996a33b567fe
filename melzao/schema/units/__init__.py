# melzao/schema/units/__init__.py
from __future__ import annotations

from typing import List, Sequence, Type

from .base import MigrationContext, MigrationUnit
from .m001_multi_user_schema import MultiUserSchema
from .m002_add_user_config_to_sessions import AddUserConfigToSessions
from .m003_player_identities import PlayerIdentities
from .m004_level_honey_config import LevelHoneyConfig

# Registration order is application order. Append only.
UNITS: Sequence[Type[MigrationUnit]] = (
    MultiUserSchema,
    AddUserConfigToSessions,
    PlayerIdentities,
    LevelHoneyConfig,
)


def build_units(ctx: MigrationContext,
                classes: Sequence[Type[MigrationUnit]] = UNITS) -> List[MigrationUnit]:
    return [cls(ctx) for cls in classes]


__all__ = [
    "UNITS",
    "build_units",
    "MigrationContext",
    "MigrationUnit",
    "MultiUserSchema",
    "AddUserConfigToSessions",
    "PlayerIdentities",
    "LevelHoneyConfig",
]
