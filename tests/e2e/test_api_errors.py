from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.routes import router
from llm_gateway import LlmGatewayError
from orchestrator.errors import GENERIC_CLIENT_MESSAGE
from storage.seed import DEMO_TOKEN, seed

app = FastAPI()
app.include_router(router)
client = TestClient(app)

AUTH = {"Authorization": f"Bearer {DEMO_TOKEN}"}


def _body(content, cid="demo-conversation", **extra):
    return {"conversationId": cid, "messages": [{"role": "user", "content": content}], **extra}


def test_invalid_bodies_are_400(fake_models):
    seed(pacing="coverage")
    assert client.post("/api/chat", json={"messages": []}, headers=AUTH).status_code == 400
    assert client.post("/api/chat", json=_body(""), headers=AUTH).status_code == 400
    too_long = client.post("/api/chat", json=_body("x" * 2001), headers=AUTH)
    assert too_long.status_code == 400
    assert too_long.json() == {"error": "Message too long"}
    noisy = client.post("/api/chat", json=_body("{[<|>]}" * 3), headers=AUTH)
    assert noisy.status_code == 400


def test_unknown_or_foreign_conversations_are_403(fake_models):
    seed(pacing="coverage")
    assert client.post("/api/chat", json=_body("hi", cid="nope"), headers=AUTH).status_code == 403
    assert client.post("/api/chat", json=_body("hi")).status_code == 403
    wrong = client.post("/api/chat", json=_body("hi"), headers={"Authorization": "Bearer wrong"})
    assert wrong.status_code == 403
    assert wrong.json() == {"error": "Unauthorized"}


def test_model_outage_is_500_without_details(fake_models):
    seed(pacing="coverage")
    fake_models.fail["interviewer"] = LlmGatewayError("upstream 503: secret detail")
    resp = client.post("/api/chat", json=_body("hello there"), headers=AUTH)
    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_CLIENT_MESSAGE}


def test_preview_rate_limit_is_429(fake_models):
    body = {"conversationId": "preview-e2e", "messages": [{"role": "user", "content": "[START_CONVERSATION]"}]}
    headers = {"x-forwarded-for": "203.0.113.9, 10.0.0.1"}
    for _ in range(5):
        assert client.post("/api/chat", json=body, headers=headers).status_code == 200
    limited = client.post("/api/chat", json=body, headers=headers)
    assert limited.status_code == 429
    assert "Too many requests" in limited.json()["error"]
    other_ip = client.post("/api/chat", json=body, headers={"x-forwarded-for": "198.51.100.7"})
    assert other_ip.status_code == 200
