from __future__ import annotations  # Chat-completion gateway for the interview engine

import json
import logging
import os
import re
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple

from pydantic import BaseModel, Field

from config.registry import ANALYSIS_KEY, CLASSIFIER_KEY, INTERVIEWER_KEY, SUMMARY_KEY, bind_model
from config.settings import Settings, settings as default_settings


logger = logging.getLogger(__name__)  # Module logger setup

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class LlmGatewayError(RuntimeError):  # Opaque upstream failure
    pass


class GatewayRoute(BaseModel):  # Endpoint configuration for the model provider
    base_url: str
    endpoint: str
    timeout_s: float = Field(ge=0.1)
    api_key_env: Optional[str] = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_settings(cls, cfg: Settings) -> "GatewayRoute":
        return cls(
            base_url=cfg.LLM_BASE_URL,
            endpoint=cfg.LLM_ENDPOINT,
            timeout_s=cfg.LLM_TIMEOUT_S,
            api_key_env=cfg.LLM_API_KEY_ENV,
        )


def complete(
    model: str,
    messages: Sequence[Dict[str, str]],
    temperature: float,
    max_tokens: int,
    *,
    route: GatewayRoute,
    client: Optional[HttpClient] = None,
) -> str:  # Issue a chat-completion request and return the message text
    payload: Dict[str, Any] = {
        "model": model,
        "messages": _normalize_messages(messages),
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    data = _send(payload, route=route, client=client)
    return _extract_content(data)


def call_tool(
    model: str,
    messages: Sequence[Dict[str, str]],
    tool: Dict[str, Any],
    *,
    route: GatewayRoute,
    client: Optional[HttpClient] = None,
) -> Dict[str, Any]:  # Force a single function tool call and return its decoded arguments
    name = tool["name"]
    payload: Dict[str, Any] = {
        "model": model,
        "messages": _normalize_messages(messages),
        "tools": [{"type": "function", "function": tool}],
        "tool_choice": {"type": "function", "function": {"name": name}},
    }
    data = _send(payload, route=route, client=client)
    return _extract_tool_arguments(data, name)


def bind_default_models(cfg: Optional[Settings] = None, client: Optional[HttpClient] = None) -> None:
    """Bind gateway-backed callables for every model-backed role."""

    cfg = cfg or default_settings
    route = GatewayRoute.from_settings(cfg)

    def _completion(model: str) -> Callable[..., str]:
        def _invoke(*, messages: Sequence[Dict[str, str]], temperature: float, max_tokens: int) -> str:
            return complete(model, messages, temperature, max_tokens, route=route, client=client)

        return _invoke

    def _analysis(*, messages: Sequence[Dict[str, str]], tool: Dict[str, Any]) -> Dict[str, Any]:
        return call_tool(cfg.CLASSIFIER_MODEL, messages, tool, route=route, client=client)

    bind_model(INTERVIEWER_KEY, _completion(cfg.INTERVIEW_MODEL))
    bind_model(CLASSIFIER_KEY, _completion(cfg.CLASSIFIER_MODEL))
    bind_model(SUMMARY_KEY, _completion(cfg.CLASSIFIER_MODEL))
    bind_model(ANALYSIS_KEY, _analysis)


def _send(payload: Dict[str, Any], *, route: GatewayRoute, client: Optional[HttpClient]) -> Any:
    headers = {"Content-Type": "application/json"}
    if route.api_key_env:
        api_key = os.getenv(route.api_key_env)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
    headers.update(route.extra_headers)
    messages = payload.get("messages", [])
    # participant text stays out of the logs; sizes only
    logger.info(
        "LLM request model=%s messages=%d chars=%d tool=%s",
        payload.get("model"),
        len(messages),
        sum(len(m["content"]) for m in messages),
        "tools" in payload,
    )
    try:
        response, close_cb = _post(f"{route.base_url}{route.endpoint}", payload, headers, route.timeout_s, client)
    except Exception as exc:  # noqa: BLE001
        logger.error("LLM transport failure: %s", exc)
        raise LlmGatewayError("LLM transport failed") from exc
    try:
        if response.status_code >= 400:
            logger.error("LLM error status: %s body=%s", response.status_code, _safe_text(response))
            raise LlmGatewayError(f"LLM returned status {response.status_code}")
        try:
            data = response.json()
        except Exception as exc:  # noqa: BLE001
            logger.error("Invalid JSON payload from LLM: %s", exc)
            raise LlmGatewayError("LLM payload was not JSON") from exc
    finally:
        _close_safely(close_cb)
    logger.info("LLM request done model=%s", payload.get("model"))
    return data


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        return client.post(url, json=payload, headers=headers, timeout=timeout), None
    import httpx

    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _safe_text(response: HttpResponse) -> str:
    try:
        return response.text[:200]
    except Exception:  # noqa: BLE001
        return ""


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> list[Dict[str, str]]:  # Ensure message payload shape
    normalized: list[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        content = str(item.get("content", ""))
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": content})
    return normalized


def _first_message(data: Any) -> Dict[str, Any]:
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                return message
    raise LlmGatewayError("LLM response missing choices")


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict) and isinstance(data.get("content"), str):
        return data["content"]
    content = _first_message(data).get("content")
    if isinstance(content, str):
        return content
    raise LlmGatewayError("LLM response missing content")


def _extract_tool_arguments(data: Any, name: str) -> Dict[str, Any]:  # Decode the forced tool call arguments
    calls = _first_message(data).get("tool_calls") or []
    for call in calls:
        function = call.get("function") if isinstance(call, dict) else None
        if not isinstance(function, dict):
            continue
        if function.get("name") not in (None, name):
            continue
        arguments = function.get("arguments")
        if isinstance(arguments, dict):
            return arguments
        if isinstance(arguments, str):
            try:
                decoded = json.loads(arguments)
            except json.JSONDecodeError as exc:
                raise LlmGatewayError("Tool arguments were not JSON") from exc
            if isinstance(decoded, dict):
                return decoded
    raise LlmGatewayError(f"LLM response missing tool call '{name}'")


def strip_code_fences(content: str) -> str:  # Remove common markdown fences from LLM output
    text = content.strip()
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()
