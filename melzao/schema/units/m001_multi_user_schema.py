# melzao/schema/units/m001_multi_user_schema.py
# Users, question categories, custom questions and per-user game configs.
# Also links game_sessions/answers to them and seeds the defaults.
from __future__ import annotations

from .base import MigrationUnit

ADDITIVE_COLUMNS = (
    ("game_sessions", "user_id", "INTEGER"),
    ("game_sessions", "config_id", "INTEGER"),
    ("answers", "question_source", "TEXT DEFAULT 'default'"),
    ("answers", "custom_question_id", "INTEGER"),
)


class MultiUserSchema(MigrationUnit):
    name = "001_multi_user_schema"
    description = "Users, categories, custom questions and per-user game configs"
    requires_tables = ("game_sessions", "answers")

    def is_applied(self) -> bool:
        return self.ctx.introspector.has_table("users")

    def apply(self) -> None:
        self.check_dependencies()
        d = self.dialect

        self.create_table("users", f"""
            {d.autoincrement_primary_key()},
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            name TEXT NOT NULL,
            role TEXT DEFAULT 'host' CHECK (role IN ('admin', 'host')),
            status TEXT DEFAULT 'pending' CHECK (status IN ('active', 'inactive', 'pending')),
            created_at {d.timestamp_default()},
            approved_at {d.timestamp_type()},
            approved_by INTEGER,
            last_login {d.timestamp_type()},
            profile_image TEXT,
            FOREIGN KEY (approved_by) REFERENCES users(id)""")
        self.create_index("idx_users_email", "users", "email")
        self.create_index("idx_users_status", "users", "status")
        self.create_index("idx_users_role", "users", "role")

        self.create_table("question_categories", f"""
            {d.autoincrement_primary_key()},
            name TEXT UNIQUE NOT NULL,
            description TEXT,
            color_hex TEXT DEFAULT '#FF6B35',
            icon_name TEXT,
            is_active {d.boolean_column(True)},
            created_by INTEGER,
            created_at {d.timestamp_default()},
            FOREIGN KEY (created_by) REFERENCES users(id)""")

        self.create_table("questions", f"""
            {d.autoincrement_primary_key()},
            question_id TEXT UNIQUE NOT NULL,
            category TEXT NOT NULL,
            question_text TEXT NOT NULL,
            options {d.json_column_type()} NOT NULL,
            correct_answer TEXT NOT NULL,
            level INTEGER NOT NULL CHECK (level BETWEEN 1 AND 10),
            honey_value INTEGER NOT NULL CHECK (honey_value >= 5),
            created_by INTEGER,
            is_active {d.boolean_column(True)},
            created_at {d.timestamp_default()},
            updated_at {d.timestamp_default()},
            usage_count INTEGER DEFAULT 0,
            difficulty_rating {d.decimal_type(3, 2)},
            explanation TEXT,
            FOREIGN KEY (created_by) REFERENCES users(id)""")
        self.create_index("idx_questions_level", "questions", "level")
        self.create_index("idx_questions_category", "questions", "category")
        self.create_index("idx_questions_creator", "questions", "created_by")
        self.create_index("idx_questions_active", "questions", "is_active")

        self.create_table("user_game_configs", f"""
            {d.autoincrement_primary_key()},
            user_id INTEGER NOT NULL,
            config_name TEXT NOT NULL DEFAULT 'Padrão',
            honey_multiplier {d.decimal_type(3, 2)} DEFAULT 1.0 CHECK (honey_multiplier BETWEEN 0.1 AND 5.0),
            time_limit INTEGER DEFAULT 30 CHECK (time_limit BETWEEN 10 AND 120),
            custom_questions_only {d.boolean_column(False)},
            allow_lifelines {d.boolean_column(True)},
            max_participants INTEGER DEFAULT 100,
            auto_advance {d.boolean_column(False)},
            theme_color TEXT DEFAULT '#FF6B35',
            created_at {d.timestamp_default()},
            is_default {d.boolean_column(False)},
            FOREIGN KEY (user_id) REFERENCES users(id),
            UNIQUE (user_id, config_name)""")

        for table, column, definition in ADDITIVE_COLUMNS:
            self.add_column(table, column, definition)
        self.create_index("idx_game_sessions_user", "game_sessions", "user_id")

        seed = self.ctx.seed_data
        self.ctx.seeds.seed_if_empty("question_categories", seed.category_rows())
        self.ctx.seeds.seed_admin(seed.admin)

    def reverse(self) -> None:
        self.drop_index("idx_game_sessions_user")
        for table, column, _ in reversed(ADDITIVE_COLUMNS):
            self.drop_column(table, column)
        for table in ("user_game_configs", "questions", "question_categories", "users"):
            self.drop_table(table)
