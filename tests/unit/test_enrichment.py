import sqlite3

from agents.types import FastClassification, SentimentResult
from config.settings import settings
from llm_gateway import LlmGatewayError
from services.enrichment import EnrichmentJob, EnrichmentPipeline
from storage.models import ConversationSession, Theme, Turn
from storage.store import SqliteStore

THEMES = [Theme(id="t1", name="Workload"), Theme(id="t2", name="Growth")]


def _setup():
    store = SqliteStore()
    store.create_session(ConversationSession(id="c1", owner_kind="employee", employee_id="u1"))
    turn_id = store.insert_turn(Turn(conversation_id="c1", content="Meetings eat my whole week", ai_response="q?"))
    job = EnrichmentJob(turn_id=turn_id, conversation_id="c1", survey_id="s1", content="Meetings eat my whole week", themes=THEMES, user_id="u1")
    return store, turn_id, job


def _count(table):
    with sqlite3.connect(settings.DB_PATH) as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def test_pipeline_classifies_and_writes_everything(fake_models):
    fake_models.theme_name = "Workload"
    fake_models.urgency = "urgent"
    store, turn_id, job = _setup()

    report = EnrichmentPipeline(store, max_workers=2).run(job)

    assert report.failures == []
    assert report.escalated and report.audited
    turn = store.list_turns("c1")[0]
    assert turn.sentiment == "negative" and turn.sentiment_score == 25
    assert turn.theme_id == "t1"
    assert turn.urgency_escalated is True
    assert turn.urgency_score == 2
    assert turn.ai_analysis["suggested_followup"] == "Ask about staffing"
    assert (_count("escalation_log"), _count("audit_logs"), _count("response_signals")) == (1, 1, 1)
    assert {t["span"] for t in report.timings} == {"sentiment", "theme", "urgency", "analysis", "signal"}
    assert turn_id == turn.id


def test_pipeline_is_idempotent(fake_models):
    fake_models.urgency = "urgent"
    store, _, job = _setup()
    pipeline = EnrichmentPipeline(store)
    pipeline(job)
    second = pipeline(job)
    assert second.escalated is False and second.audited is False
    assert (_count("escalation_log"), _count("audit_logs"), _count("response_signals")) == (1, 1, 1)


def test_precomputed_classification_skips_fast_classifiers(fake_models):
    store, _, job = _setup()
    job.classified = FastClassification(
        sentiment=SentimentResult(sentiment="positive", score=75), theme_id="t2", urgent=False
    )
    report = EnrichmentPipeline(store).run(job)
    assert fake_models.calls["classifier"] == []
    assert report.theme_id == "t2"
    turn = store.list_turns("c1")[0]
    assert (turn.sentiment, turn.theme_id, turn.urgency_escalated) == ("positive", "t2", False)
    assert _count("escalation_log") == 0


def test_failed_step_does_not_block_others(fake_models):
    fake_models.fail["analysis"] = LlmGatewayError("down")
    store, _, job = _setup()
    report = EnrichmentPipeline(store).run(job)
    assert "analysis" in report.failures and "signal" in report.failures
    turn = store.list_turns("c1")[0]
    assert turn.sentiment == "negative"
    assert turn.ai_analysis == {}
    assert _count("audit_logs") == 1


def test_course_surveys_and_anonymous_callers_skip_signal_and_audit(fake_models):
    store, _, job = _setup()
    job.survey_type = "course_evaluation"
    job.user_id = None
    report = EnrichmentPipeline(store).run(job)
    assert report.signal is None and report.audited is False
    assert all(call["tool"]["name"] != "extract_semantic_signal" for call in fake_models.calls["analysis"])
    assert (_count("audit_logs"), _count("response_signals")) == (0, 0)
