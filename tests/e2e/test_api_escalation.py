import sqlite3

from fastapi.testclient import TestClient

from api_server import create_app
from config.settings import settings
from storage.seed import seed


def test_urgent_public_link_turn_is_escalated(fake_models):
    seed(pacing="coverage")
    fake_models.urgency = "urgent"
    fake_models.analysis["urgency_score"] = 5

    with TestClient(create_app(bind_models=False)) as client:
        assert client.get("/healthz").json() == {"status": "ok"}
        cid = "demo-public-conversation"
        intro = client.post(
            "/api/chat",
            json={"conversationId": cid, "messages": [{"role": "user", "content": "[START_CONVERSATION]"}]},
        )
        assert intro.status_code == 200
        assert intro.json()["phase"] == "interview"

        resp = client.post(
            "/api/chat",
            json={
                "conversationId": cid,
                "messages": [
                    {"role": "assistant", "content": intro.json()["message"]},
                    {"role": "user", "content": "My manager keeps threatening me"},
                ],
            },
        )
        assert resp.status_code == 200

    conn = sqlite3.connect(settings.DB_PATH)
    try:
        escalations = conn.execute("SELECT COUNT(*) FROM escalation_log").fetchone()[0]
        row = conn.execute("SELECT urgency_escalated, urgency_score FROM responses").fetchone()
        audits = conn.execute("SELECT COUNT(*) FROM audit_logs").fetchone()[0]
    finally:
        conn.close()
    assert escalations == 1
    assert row == (1, 5)
    assert audits == 0
