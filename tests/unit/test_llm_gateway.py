import json
from typing import Any, Dict, List

import pytest

from config.registry import ANALYSIS_KEY, CLASSIFIER_KEY, INTERVIEWER_KEY, get_model
from config.settings import Settings
from llm_gateway import GatewayRoute, LlmGatewayError, bind_default_models, call_tool, complete, strip_code_fences

ROUTE = GatewayRoute(base_url="https://gateway.test", endpoint="/v1/chat/completions", timeout_s=5, api_key_env="TEST_KEY")


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeClient:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.requests: List[Dict[str, Any]] = []

    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> FakeResponse:
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return self.response


def _chat(content: str) -> Dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_complete_sends_schema_and_returns_text(monkeypatch):
    monkeypatch.setenv("TEST_KEY", "secret")
    client = FakeClient(FakeResponse(200, _chat("hello")))
    text = complete("m1", [{"role": "user", "content": "hi"}], 0.8, 180, route=ROUTE, client=client)
    assert text == "hello"
    sent = client.requests[0]
    assert sent["url"] == "https://gateway.test/v1/chat/completions"
    assert sent["json"] == {
        "model": "m1",
        "messages": [{"role": "user", "content": "hi"}],
        "temperature": 0.8,
        "max_tokens": 180,
    }
    assert sent["headers"]["Authorization"] == "Bearer secret"


@pytest.mark.parametrize(
    "response",
    [FakeResponse(500, text="boom"), FakeResponse(429, text="slow down"), FakeResponse(200, None), FakeResponse(200, {"x": 1})],
)
def test_failures_are_opaque_gateway_errors(response):
    with pytest.raises(LlmGatewayError):
        complete("m1", [{"role": "user", "content": "hi"}], 0.2, 10, route=ROUTE, client=FakeClient(response))


def test_transport_error_is_wrapped():
    class Exploding:
        def post(self, *args, **kwargs):
            raise ConnectionError("refused")

    with pytest.raises(LlmGatewayError):
        complete("m1", [{"role": "user", "content": "hi"}], 0.2, 10, route=ROUTE, client=Exploding())


def test_call_tool_decodes_arguments():
    args = {"urgency_score": 3}
    payload = {
        "choices": [
            {
                "message": {
                    "tool_calls": [
                        {"type": "function", "function": {"name": "analyze_response", "arguments": json.dumps(args)}}
                    ]
                }
            }
        ]
    }
    client = FakeClient(FakeResponse(200, payload))
    tool = {"name": "analyze_response", "description": "d", "parameters": {"type": "object"}}
    assert call_tool("m1", [{"role": "user", "content": "x"}], tool, route=ROUTE, client=client) == args
    sent = client.requests[0]["json"]
    assert sent["tool_choice"] == {"type": "function", "function": {"name": "analyze_response"}}
    assert sent["tools"][0]["function"]["name"] == "analyze_response"


def test_call_tool_without_tool_call_fails():
    client = FakeClient(FakeResponse(200, _chat("plain")))
    with pytest.raises(LlmGatewayError):
        call_tool("m1", [{"role": "user", "content": "x"}], {"name": "t"}, route=ROUTE, client=client)


def test_bind_default_models_uses_configured_models():
    client = FakeClient(FakeResponse(200, _chat("ok")))
    cfg = Settings(INTERVIEW_MODEL="big", CLASSIFIER_MODEL="small")
    bind_default_models(cfg, client=client)
    get_model(INTERVIEWER_KEY)(messages=[{"role": "user", "content": "a"}], temperature=0.8, max_tokens=10)
    get_model(CLASSIFIER_KEY)(messages=[{"role": "user", "content": "b"}], temperature=0.1, max_tokens=10)
    assert [r["json"]["model"] for r in client.requests] == ["big", "small"]
    assert callable(get_model(ANALYSIS_KEY))


@pytest.mark.parametrize(
    "raw,expected",
    [
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```{"a": 1}```', '{"a": 1}'),
        ('{"a": 1}', '{"a": 1}'),
    ],
)
def test_strip_code_fences(raw, expected):
    assert strip_code_fences(raw) == expected


class RecordingHttpxClient:
    instances: List["RecordingHttpxClient"] = []

    def __init__(self, timeout: float) -> None:
        self.closed = 0
        RecordingHttpxClient.instances.append(self)

    def post(self, url: str, json: Dict[str, Any], headers: Dict[str, str]) -> Any:
        import httpx

        raise httpx.ConnectTimeout("timed out")

    def close(self) -> None:
        self.closed += 1


def test_default_client_closed_when_transport_fails(monkeypatch):
    import httpx

    RecordingHttpxClient.instances = []
    monkeypatch.setattr(httpx, "Client", RecordingHttpxClient)
    with pytest.raises(LlmGatewayError):
        complete("m1", [{"role": "user", "content": "hi"}], 0.2, 10, route=ROUTE)
    assert [c.closed for c in RecordingHttpxClient.instances] == [1]
