"""Validation and sanitisation of inbound participant text."""
from __future__ import annotations

import re
from typing import Any, Optional, Sequence

from config.settings import settings
from orchestrator.errors import InvalidInput

INTRODUCTION_SENTINEL = "[START_CONVERSATION]"

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_MARKUP_TAG = re.compile(r"<[^>]*>")
_SPECIAL_CHARS = re.compile(r"[<>{}\[\]\\|`]")


def is_introduction_trigger(messages: Any) -> bool:
    """True when the sentinel is the sole, first message of the conversation."""

    if not isinstance(messages, list) or len(messages) != 1:
        return False
    first = messages[0]
    content = first.get("content") if isinstance(first, dict) else getattr(first, "content", None)
    return content == INTRODUCTION_SENTINEL


def sanitize_content(content: str, max_special_chars: Optional[int] = None) -> str:
    """Strip script blocks and markup, then reject injection-shaped leftovers."""

    limit = settings.MAX_SPECIAL_CHARS if max_special_chars is None else max_special_chars
    sanitized = _SCRIPT_BLOCK.sub("", content)
    sanitized = _MARKUP_TAG.sub("", sanitized)
    if len(_SPECIAL_CHARS.findall(sanitized)) > limit:
        raise InvalidInput("Message contains too many special characters", reason="too many special characters")
    return sanitized.strip()


def validate_input(
    conversation_id: Any,
    messages: Any,
    content: Any,
    *,
    max_length: Optional[int] = None,
) -> str:
    """Check the request shape and return the sanitised last message."""

    if not conversation_id or not isinstance(conversation_id, str):
        raise InvalidInput("Invalid or missing conversationId", reason="invalid conversationId")
    if not isinstance(messages, (list, tuple)) or len(messages) == 0:
        raise InvalidInput("Invalid or empty messages array", reason="invalid messages")
    if not content or not isinstance(content, str):
        raise InvalidInput("Invalid message content", reason="invalid content")
    limit = settings.MAX_MESSAGE_LENGTH if max_length is None else max_length
    if len(content) > limit:
        raise InvalidInput("Message too long", reason="message too long")
    sanitized = sanitize_content(content)
    if not sanitized:
        raise InvalidInput("Message cannot be empty after sanitization", reason="empty after sanitization")
    return sanitized


def last_content(messages: Sequence[Any]) -> Any:
    if not messages:
        return None
    last = messages[-1]
    return last.get("content") if isinstance(last, dict) else getattr(last, "content", None)


__all__ = [
    "INTRODUCTION_SENTINEL",
    "is_introduction_trigger",
    "last_content",
    "sanitize_content",
    "validate_input",
]
