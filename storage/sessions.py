"""Persistence helpers for conversation sessions, surveys and caller tokens."""
from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from .models import ConversationSession, Survey
from .sqlite import get_conn

_SESSION_FIELDS = {"phase", "selected_duration", "selected_theme_id"}


def insert_session(session: ConversationSession) -> None:
    """Insert a conversation session row; existing ids are left untouched."""

    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        conn.execute(
            """INSERT OR IGNORE INTO conversation_sessions
               (id, owner_kind, employee_id, public_link_id, survey_id,
                phase, selected_duration, selected_theme_id, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                session.id,
                session.owner_kind,
                session.employee_id,
                session.public_link_id,
                session.survey_id,
                session.phase,
                session.selected_duration,
                session.selected_theme_id,
                timestamp,
            ),
        )


def fetch_session(conversation_id: str) -> Optional[ConversationSession]:
    with get_conn() as conn:
        row = conn.execute(
            """SELECT id, owner_kind, employee_id, public_link_id, survey_id,
                      phase, selected_duration, selected_theme_id
               FROM conversation_sessions WHERE id = ?""",
            (conversation_id,),
        ).fetchone()
    if row is None:
        return None
    return ConversationSession(**dict(row))


def update_session(conversation_id: str, **fields: Any) -> None:
    """Update mutable session columns (phase, duration, theme focus)."""

    unknown = set(fields) - _SESSION_FIELDS
    if unknown:
        raise ValueError(f"Unsupported session fields: {sorted(unknown)}")
    if not fields:
        return
    assignments = ", ".join(f"{name} = ?" for name in fields)
    with get_conn() as conn:
        conn.execute(
            f"UPDATE conversation_sessions SET {assignments} WHERE id = ?",
            (*fields.values(), conversation_id),
        )


def insert_survey(survey: Survey) -> None:
    with get_conn() as conn:
        conn.execute(
            "INSERT OR REPLACE INTO surveys (id, title, survey_type, pacing) VALUES (?, ?, ?, ?)",
            (survey.id, survey.title, survey.survey_type, survey.pacing),
        )


def fetch_survey(survey_id: str) -> Optional[Survey]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT id, title, survey_type, pacing FROM surveys WHERE id = ?",
            (survey_id,),
        ).fetchone()
    return Survey(**dict(row)) if row is not None else None


def insert_api_token(token: str, user_id: str) -> None:
    with get_conn() as conn:
        conn.execute("INSERT OR REPLACE INTO api_tokens (token, user_id) VALUES (?, ?)", (token, user_id))


def fetch_user_for_token(token: str) -> Optional[str]:
    with get_conn() as conn:
        row = conn.execute("SELECT user_id FROM api_tokens WHERE token = ?", (token,)).fetchone()
    return str(row["user_id"]) if row is not None else None
