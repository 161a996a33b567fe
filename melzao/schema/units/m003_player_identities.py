# melzao/schema/units/m003_player_identities.py
# Persistent player identities, so a participant keeps stats across sessions.
from __future__ import annotations

from .base import MigrationUnit


class PlayerIdentities(MigrationUnit):
    name = "003_player_identities"
    description = "player_identities table and participants.player_identity_id"
    requires_tables = ("users", "participants")

    def is_applied(self) -> bool:
        intro = self.ctx.introspector
        return (intro.has_table("player_identities")
                and intro.has_column("participants", "player_identity_id"))

    def apply(self) -> None:
        self.check_dependencies()
        d = self.dialect

        self.create_table("player_identities", f"""
            {d.autoincrement_primary_key()},
            handle TEXT UNIQUE NOT NULL,
            display_name TEXT NOT NULL,
            total_honey BIGINT DEFAULT 0,
            sessions_played INTEGER DEFAULT 0,
            best_level INTEGER DEFAULT 0,
            win_count INTEGER DEFAULT 0,
            total_answers INTEGER DEFAULT 0,
            correct_answers INTEGER DEFAULT 0,
            created_by INTEGER,
            first_seen {d.timestamp_default()},
            last_seen {d.timestamp_default()},
            FOREIGN KEY (created_by) REFERENCES users(id) ON DELETE SET NULL""")
        self.create_index("idx_player_identities_handle", "player_identities", "handle")

        # SQLite cannot drop a column that carries a REFERENCES clause, so the
        # link is only enforced on the server
        reference = d.inline_reference("player_identities", on_delete="SET NULL")
        self.add_column("participants", "player_identity_id", f"INTEGER{reference}")
        self.create_index("idx_participants_identity", "participants", "player_identity_id")

    def reverse(self) -> None:
        self.drop_index("idx_participants_identity")
        self.drop_column("participants", "player_identity_id")
        self.drop_index("idx_player_identities_handle")
        self.drop_table("player_identities")
