"""Persistence helpers for interview turns (the ``responses`` table)."""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, List, Optional

from .models import Turn
from .sqlite import get_conn

# Classification columns are write-once: a later empty value never clears them.
_STICKY_FIELDS = {"theme_id", "sentiment", "sentiment_score", "urgency_score"}
_UPDATABLE_FIELDS = _STICKY_FIELDS | {"ai_response", "empathy", "urgency_escalated", "ai_analysis"}


def insert_turn(turn: Turn) -> int:
    """Insert a turn row and return its primary key."""

    timestamp = turn.created_at or dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO responses
               (conversation_session_id, survey_id, content, ai_response, empathy,
                sentiment, sentiment_score, theme_id, urgency_escalated, urgency_score,
                ai_analysis, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                turn.conversation_id,
                turn.survey_id,
                turn.content,
                turn.ai_response,
                turn.empathy,
                turn.sentiment,
                turn.sentiment_score,
                turn.theme_id,
                int(turn.urgency_escalated),
                turn.urgency_score,
                json.dumps(turn.ai_analysis),
                timestamp,
            ),
        )
        return int(cur.lastrowid)


def update_turn(turn_id: int, **fields: Any) -> None:
    """Update an existing turn in place.

    Classification columns keep their stored value when the update carries None,
    and ``urgency_escalated`` can only be raised, never lowered.
    """

    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported turn fields: {sorted(unknown)}")
    assignments: List[str] = []
    values: List[Any] = []
    for name, value in fields.items():
        if name in _STICKY_FIELDS:
            assignments.append(f"{name} = COALESCE(?, {name})")
        elif name == "urgency_escalated":
            assignments.append("urgency_escalated = MAX(urgency_escalated, ?)")
            value = int(bool(value))
        else:
            assignments.append(f"{name} = ?")
        if name == "ai_analysis":
            value = json.dumps(value or {})
        values.append(value)
    if not assignments:
        return
    with get_conn() as conn:
        conn.execute(
            f"UPDATE responses SET {', '.join(assignments)} WHERE id = ?",
            (*values, turn_id),
        )


def _row_to_turn(row: Any) -> Turn:
    data: Dict[str, Any] = dict(row)
    data["conversation_id"] = data.pop("conversation_session_id")
    data["urgency_escalated"] = bool(data.get("urgency_escalated"))
    raw_analysis = data.get("ai_analysis")
    data["ai_analysis"] = json.loads(raw_analysis) if raw_analysis else {}
    return Turn(**data)


_SELECT = """SELECT id, conversation_session_id, survey_id, content, ai_response, empathy,
                    sentiment, sentiment_score, theme_id, urgency_escalated, urgency_score,
                    ai_analysis, created_at
             FROM responses"""


def fetch_turn(turn_id: int) -> Optional[Turn]:
    with get_conn() as conn:
        row = conn.execute(f"{_SELECT} WHERE id = ?", (turn_id,)).fetchone()
    return _row_to_turn(row) if row is not None else None


def fetch_turns(conversation_id: str) -> List[Turn]:
    """Return every turn of a conversation, oldest first."""

    with get_conn() as conn:
        rows = conn.execute(
            f"{_SELECT} WHERE conversation_session_id = ? ORDER BY id ASC",
            (conversation_id,),
        ).fetchall()
    return [_row_to_turn(row) for row in rows]
