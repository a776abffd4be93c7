"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable, Optional

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS surveys (
  id TEXT PRIMARY KEY,
  title TEXT NOT NULL DEFAULT '',
  survey_type TEXT NOT NULL DEFAULT 'employee_satisfaction',
  pacing TEXT NOT NULL DEFAULT 'coverage'
);
""",
    """
CREATE TABLE IF NOT EXISTS survey_themes (
  id TEXT PRIMARY KEY,
  survey_id TEXT,
  name TEXT NOT NULL,
  description TEXT NOT NULL DEFAULT '',
  survey_type TEXT NOT NULL DEFAULT 'employee_satisfaction',
  position INTEGER NOT NULL DEFAULT 0
);
""",
    """
CREATE TABLE IF NOT EXISTS conversation_sessions (
  id TEXT PRIMARY KEY,
  owner_kind TEXT NOT NULL,
  employee_id TEXT,
  public_link_id TEXT,
  survey_id TEXT,
  phase TEXT,
  selected_duration INTEGER,
  selected_theme_id TEXT,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS responses (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  conversation_session_id TEXT NOT NULL,
  survey_id TEXT,
  content TEXT NOT NULL,
  ai_response TEXT NOT NULL DEFAULT '',
  empathy TEXT,
  sentiment TEXT,
  sentiment_score INTEGER,
  theme_id TEXT,
  urgency_escalated INTEGER NOT NULL DEFAULT 0,
  urgency_score INTEGER,
  ai_analysis TEXT,
  created_at TEXT NOT NULL
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_responses_session
  ON responses (conversation_session_id, id);
""",
    """
CREATE TABLE IF NOT EXISTS escalation_log (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  response_id INTEGER NOT NULL UNIQUE,
  escalation_type TEXT NOT NULL,
  escalated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS audit_logs (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id TEXT NOT NULL,
  action_type TEXT NOT NULL,
  resource_type TEXT NOT NULL,
  resource_id TEXT NOT NULL,
  response_id INTEGER UNIQUE,
  metadata TEXT,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS response_signals (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  response_id INTEGER NOT NULL UNIQUE,
  survey_id TEXT,
  signal_text TEXT NOT NULL,
  dimension TEXT NOT NULL,
  facet TEXT NOT NULL,
  intensity INTEGER NOT NULL,
  sentiment TEXT NOT NULL,
  confidence REAL NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS api_tokens (
  token TEXT PRIMARY KEY,
  user_id TEXT NOT NULL
);
""",
]


def migrate(db_path: Optional[str] = None) -> None:
    """Apply schema migrations to the SQLite database."""

    if db_path is None:
        from config.settings import settings

        db_path = settings.DB_PATH
    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
