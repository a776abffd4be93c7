"""Tests for the SQLite migration and store writes."""
from __future__ import annotations

import json
import sqlite3

from config.settings import settings
from storage.migrate import migrate
from storage.models import ConversationSession, Survey, Theme, Turn
from storage.store import SqliteStore


def _store_with_session() -> SqliteStore:
    store = SqliteStore()
    from storage.sessions import insert_survey
    from storage.themes import insert_theme

    insert_survey(Survey(id="s1", title="Pulse", pacing="duration"))
    insert_theme(Theme(id="t2", name="Growth"), survey_id="s1", position=1)
    insert_theme(Theme(id="t1", name="Workload"), survey_id="s1", position=0)
    store.create_session(ConversationSession(id="c1", owner_kind="employee", employee_id="u1", survey_id="s1"))
    return store


def test_migrate_is_idempotent(tmp_db):
    migrate(tmp_db)
    migrate(tmp_db)
    with sqlite3.connect(tmp_db) as conn:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    assert {"responses", "escalation_log", "audit_logs", "conversation_sessions", "response_signals"} <= tables


def test_session_and_theme_reads():
    store = _store_with_session()
    session = store.get_session("c1")
    assert session.employee_id == "u1" and session.phase is None
    store.update_session("c1", phase="interview", selected_duration=5)
    session = store.get_session("c1")
    assert (session.phase, session.selected_duration) == ("interview", 5)
    assert [t.id for t in store.themes_for_survey("s1")] == ["t1", "t2"]
    assert [t.id for t in store.themes_by_ids(["t2", "t1", "missing"])] == ["t2", "t1"]
    assert store.get_survey("s1").pacing == "duration"
    assert store.get_session("nope") is None


def test_turn_updates_are_sticky_and_monotonic():
    store = _store_with_session()
    turn_id = store.insert_turn(Turn(conversation_id="c1", survey_id="s1", content="hello", ai_response="q?"))
    store.update_turn(turn_id, theme_id="t1", sentiment="negative", sentiment_score=25, urgency_escalated=True)
    store.update_turn(turn_id, theme_id=None, sentiment=None, urgency_escalated=False)
    store.update_turn(turn_id, ai_analysis={"urgency_score": 4}, urgency_score=4)
    turn = store.list_turns("c1")[0]
    assert turn.theme_id == "t1"
    assert turn.sentiment == "negative"
    assert turn.urgency_escalated is True
    assert turn.ai_analysis == {"urgency_score": 4}


def test_turns_are_returned_oldest_first():
    store = _store_with_session()
    for text in ("one", "two", "three"):
        store.insert_turn(Turn(conversation_id="c1", content=text))
    assert [t.content for t in store.list_turns("c1")] == ["one", "two", "three"]


def test_log_writes_are_idempotent():
    store = _store_with_session()
    turn_id = store.insert_turn(Turn(conversation_id="c1", content="help"))
    assert store.insert_escalation(turn_id) is True
    assert store.insert_escalation(turn_id) is False
    assert store.insert_audit(user_id="u1", resource_id="c1", response_id=turn_id, metadata={"k": "v"}) is True
    assert store.insert_audit(user_id="u1", resource_id="c1", response_id=turn_id) is False
    signal = dict(signal_text="s", dimension="justice", facet="pay", intensity=5, sentiment="negative", confidence=0.5)
    store.upsert_signal(response_id=turn_id, **signal)
    store.upsert_signal(response_id=turn_id, **{**signal, "intensity": 7})
    with sqlite3.connect(settings.DB_PATH) as conn:
        assert conn.execute("SELECT COUNT(*) FROM escalation_log").fetchone()[0] == 1
        assert conn.execute("SELECT metadata FROM audit_logs").fetchone()[0] == json.dumps({"k": "v"})
        assert conn.execute("SELECT COUNT(*), MAX(intensity) FROM response_signals").fetchone() == (1, 7)


def test_token_lookup():
    from storage.sessions import insert_api_token

    store = SqliteStore()
    insert_api_token("tok", "u1")
    assert store.user_for_token("tok") == "u1"
    assert store.user_for_token("other") is None
