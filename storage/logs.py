"""Persistence helpers for escalation, audit and semantic-signal rows.

Each writer is keyed on the response id, so a retried enrichment step
leaves exactly one row behind.
"""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn


class AuditPayload(BaseModel):
    user_id: str
    action_type: str = "chat_message_sent"
    resource_type: str = "conversation_session"
    resource_id: str
    response_id: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SignalPayload(BaseModel):
    response_id: int
    survey_id: Optional[str] = None
    signal_text: str
    dimension: str
    facet: str
    intensity: int
    sentiment: str
    confidence: float


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def insert_escalation(response_id: int, escalation_type: str = "ai_detected") -> bool:
    """Record an escalation; returns False when one already exists for the turn."""

    with get_conn() as conn:
        cur = conn.execute(
            """INSERT OR IGNORE INTO escalation_log (response_id, escalation_type, escalated_at)
               VALUES (?, ?, ?)""",
            (response_id, escalation_type, _now()),
        )
        return cur.rowcount > 0


def insert_audit(**data: Any) -> bool:
    """Insert an audit row; returns False when the turn was already audited."""

    payload = AuditPayload(**data)
    with get_conn() as conn:
        cur = conn.execute(
            """INSERT OR IGNORE INTO audit_logs
               (user_id, action_type, resource_type, resource_id, response_id, metadata, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                payload.user_id,
                payload.action_type,
                payload.resource_type,
                payload.resource_id,
                payload.response_id,
                json.dumps(payload.metadata),
                _now(),
            ),
        )
        return cur.rowcount > 0


def upsert_signal(**data: Any) -> None:
    payload = SignalPayload(**data)
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO response_signals
               (response_id, survey_id, signal_text, dimension, facet, intensity, sentiment, confidence)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(response_id) DO UPDATE SET
                 signal_text = excluded.signal_text,
                 dimension = excluded.dimension,
                 facet = excluded.facet,
                 intensity = excluded.intensity,
                 sentiment = excluded.sentiment,
                 confidence = excluded.confidence""",
            (
                payload.response_id,
                payload.survey_id,
                payload.signal_text,
                payload.dimension,
                payload.facet,
                payload.intensity,
                payload.sentiment,
                payload.confidence,
            ),
        )
