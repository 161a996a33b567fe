# melzao/schema/units/m002_add_user_config_to_sessions.py
from __future__ import annotations

from .base import MigrationUnit

CONSTRAINTS = (
    ("fk_game_sessions_user", "FOREIGN KEY (user_id) REFERENCES users(id)"),
    ("fk_game_sessions_config", "FOREIGN KEY (config_id) REFERENCES user_game_configs(id)"),
)


class AddUserConfigToSessions(MigrationUnit):
    """Ties each game session to its host and the config it was played with."""

    name = "002_add_user_config_to_sessions"
    description = "game_sessions.user_id / config_id with foreign keys on the server"
    requires_tables = ("users", "user_game_configs", "game_sessions")

    def is_applied(self) -> bool:
        intro = self.ctx.introspector
        columns = intro.columns("game_sessions")
        if "user_id" not in columns or "config_id" not in columns:
            return False
        if self.dialect.supports_named_constraints:
            return all(intro.has_constraint("game_sessions", c) for c, _ in CONSTRAINTS)
        return True

    def apply(self) -> None:
        self.check_dependencies()
        # a previous run may have added one column and not the other
        self.add_column("game_sessions", "user_id", "INTEGER")
        self.add_column("game_sessions", "config_id", "INTEGER")
        self.create_index("idx_game_sessions_user", "game_sessions", "user_id")
        for constraint, definition in CONSTRAINTS:
            self.add_constraint("game_sessions", constraint, definition)

    def reverse(self) -> None:
        for constraint, _ in reversed(CONSTRAINTS):
            self.drop_constraint("game_sessions", constraint)
        self.drop_index("idx_game_sessions_user")
        self.drop_column("game_sessions", "config_id")
        self.drop_column("game_sessions", "user_id")
