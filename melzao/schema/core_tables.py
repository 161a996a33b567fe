# melzao/schema/core_tables.py
# Tables owned by the game server itself. Production stores already have
# them; fresh stores get them here before any migration unit runs.
from __future__ import annotations

import logging
from typing import List

from .adapter import DatabaseAdapter
from .dialect import Dialect

logger = logging.getLogger(__name__)

CORE_TABLES = ("game_sessions", "participants", "answers")

CORE_INDEXES = (
    ("idx_participants_session", "participants", "session_id"),
    ("idx_answers_participant", "answers", "participant_id"),
    ("idx_answers_session", "answers", "session_id"),
    ("idx_game_sessions_date", "game_sessions", "started_at"),
)


def core_table_statements(d: Dialect) -> List[str]:
    return [
        f"""CREATE TABLE IF NOT EXISTS game_sessions (
            {d.autoincrement_primary_key()},
            session_id TEXT UNIQUE NOT NULL,
            started_at {d.timestamp_default()},
            ended_at {d.timestamp_type()},
            status TEXT DEFAULT 'active',
            total_participants INTEGER DEFAULT 0
        )""",
        f"""CREATE TABLE IF NOT EXISTS participants (
            {d.autoincrement_primary_key()},
            participant_id TEXT UNIQUE NOT NULL,
            session_id TEXT NOT NULL,
            name TEXT NOT NULL,
            joined_at {d.timestamp_default()},
            final_status TEXT,
            final_level INTEGER DEFAULT 0,
            total_earned INTEGER DEFAULT 0,
            FOREIGN KEY (session_id) REFERENCES game_sessions(session_id)
        )""",
        f"""CREATE TABLE IF NOT EXISTS answers (
            {d.autoincrement_primary_key()},
            participant_id TEXT NOT NULL,
            session_id TEXT NOT NULL,
            question_id TEXT NOT NULL,
            question_text TEXT NOT NULL,
            level INTEGER NOT NULL,
            selected_answer TEXT NOT NULL,
            correct_answer TEXT NOT NULL,
            is_correct BOOLEAN NOT NULL,
            honey_earned INTEGER DEFAULT 0,
            answered_at {d.timestamp_default()},
            FOREIGN KEY (participant_id) REFERENCES participants(participant_id),
            FOREIGN KEY (session_id) REFERENCES game_sessions(session_id)
        )""",
    ] + [
        f"CREATE INDEX IF NOT EXISTS {name} ON {table}({column})"
        for name, table, column in CORE_INDEXES
    ]


def ensure_core_tables(adapter: DatabaseAdapter) -> None:
    for statement in core_table_statements(adapter.dialect):
        adapter.create_if_absent(statement)
    logger.debug("Core game tables verified")
