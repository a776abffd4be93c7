from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    GatewayRoute,
    HttpClient,
    HttpResponse,
    LlmGatewayError,
    bind_default_models,
    call_tool,
    complete,
    strip_code_fences,
)

__all__ = [
    "GatewayRoute",
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "bind_default_models",
    "call_tool",
    "complete",
    "strip_code_fences",
]
