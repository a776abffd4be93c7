"""Layered parser turning the interviewer model's near-JSON output into a reply."""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from agents.types import ParsedReply, ParseFallback, ParseSuccess
from llm_gateway import strip_code_fences

GENERIC_CONTINUATION = "Thank you for sharing. Could you tell me a bit more about that?"
MIN_FRAGMENT_LENGTH = 5

_EMBEDDED_OBJECT = re.compile(r"\{[\s\S]*\"question\"[\s\S]*\}")
_QUESTION_FRAGMENT = re.compile(r"\"question\"\s*:\s*\"([^\"]+)")
_EMPATHY_FRAGMENT = re.compile(r"\"empathy\"\s*:\s*\"([^\"]+)\"")
_TRAILING_JUNK = re.compile(r"[\"}]+$")


def _text_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _from_json(candidate: str) -> Optional[ParseSuccess]:
    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(parsed, dict):
        return None
    question = _text_or_none(parsed.get("question"))
    if question is None:
        return None
    return ParseSuccess(empathy=_text_or_none(parsed.get("empathy")), question=question)


def parse_reply(raw: Optional[str]) -> ParsedReply:
    """Recover ``{empathy, question}`` from model text; never raises.

    Strategies, first success wins: fenced/bare JSON, the first embedded
    ``{...}`` carrying ``"question"``, a regex over a truncated ``"question"``
    fragment, the generic continuation when JSON debris remains, and finally
    the raw text itself.
    """

    text = raw if isinstance(raw, str) else ""

    direct = _from_json(strip_code_fences(text))
    if direct is not None:
        return direct

    embedded = _EMBEDDED_OBJECT.search(text)
    if embedded:
        result = _from_json(embedded.group(0))
        if result is not None:
            return result.model_copy(update={"strategy": "embedded"})

    fragment = _QUESTION_FRAGMENT.search(text)
    if fragment:
        question = _TRAILING_JUNK.sub("", fragment.group(1)).strip()
        if len(question) > MIN_FRAGMENT_LENGTH:
            empathy = _EMPATHY_FRAGMENT.search(text)
            return ParseSuccess(
                empathy=_text_or_none(empathy.group(1)) if empathy else None,
                question=question,
                strategy="fragment",
            )

    if "{" in text or '"question"' in text:
        return ParseFallback(question=GENERIC_CONTINUATION, strategy="generic")

    plain = text.strip()
    if not plain:
        return ParseFallback(question=GENERIC_CONTINUATION, strategy="generic")
    return ParseFallback(question=plain, strategy="plain_text")


__all__ = ["GENERIC_CONTINUATION", "parse_reply"]
